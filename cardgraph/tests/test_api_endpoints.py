"""API endpoint tests: FastAPI routes over a repository backed by FakeGraph.

Verifies status codes and response shapes; no real Neo4j connection is made.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from cardgraph import main
from cardgraph.database import GraphConnection
from cardgraph.main import app, get_repository
from cardgraph.repository import CardRepository
from cardgraph.tests.conftest import FakeDriver, FakeGraph


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# HEALTH
# =============================================================================

class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}


# =============================================================================
# CATEGORIES & CARDS
# =============================================================================

class TestListEndpoints:
    def test_categories(self, client):
        resp = client.get("/api/categories")
        assert resp.status_code == 200
        assert resp.json() == [1, 2, 3, 7]

    def test_categories_skip_nodes_without_id(self, settings, cache):
        graph = FakeGraph(category_ids=[1, 2, None])
        repo = CardRepository(GraphConnection(settings, cache=cache, driver=FakeDriver(graph)))
        app.dependency_overrides[get_repository] = lambda: repo
        try:
            resp = TestClient(app).get("/api/categories")
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 200
        assert resp.json() == [1, 2]

    def test_cards(self, client):
        resp = client.get("/api/cards")
        assert resp.status_code == 200
        assert resp.json() == [1, 2, 3, 7]


class TestCardEndpoint:
    def test_card_shape(self, client):
        resp = client.get("/api/cards/7")
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == 7
        assert len(data["sporsmal"]) == 2
        assert data["sporsmal"][0]["alternativer"][0]["alternativ_tiltak_info"] == []
        assert data["rammeverk"] == []
        assert data["lokal_ids"] == []

    def test_unknown_card_is_404(self, client):
        resp = client.get("/api/cards/404")
        assert resp.status_code == 404
        assert "not found" in resp.json()["detail"]

    @pytest.mark.parametrize("bad_id", ["0", "-1", "abc", "9223372036854775808"])
    def test_invalid_id_is_400(self, client, driver, bad_id):
        resp = client.get(f"/api/cards/{bad_id}")
        assert resp.status_code == 400
        assert driver.sessions_opened == 0


# =============================================================================
# STATE
# =============================================================================

class TestStateEndpoint:
    def test_update_state(self, client):
        resp = client.put("/api/cards/2/state", json={"state": "avhuket"})
        assert resp.status_code == 200
        assert resp.json() == {"id": 2, "state": "avhuket"}

    def test_update_then_fetch(self, client):
        assert client.get("/api/cards/7").json()["state"] == "ikke_avhuket"
        client.put("/api/cards/7/state", json={"state": "avhuket"})
        assert client.get("/api/cards/7").json()["state"] == "avhuket"

    @pytest.mark.parametrize("body", [{"state": "done"}, {"state": None}, {}, {"state": 1}, {"state": ["avhuket"]}])
    def test_invalid_state_is_400(self, client, driver, body):
        resp = client.put("/api/cards/2/state", json=body)
        assert resp.status_code == 400
        assert "avhuket" in resp.json()["detail"]
        assert driver.sessions_opened == 0

    def test_invalid_id_is_400(self, client):
        resp = client.put("/api/cards/abc/state", json={"state": "avhuket"})
        assert resp.status_code == 400

    def test_unknown_card_is_404(self, client):
        resp = client.put("/api/cards/999/state", json={"state": "ikke_avhuket"})
        assert resp.status_code == 404
        assert "not found" in resp.json()["detail"]


# =============================================================================
# POINTS & ADMIN
# =============================================================================

class TestPointsEndpoint:
    def test_points(self, client):
        resp = client.get("/api/points")
        assert resp.status_code == 200
        assert resp.json() == {"points": 22}


class TestClearCacheEndpoint:
    def test_clear_keeps_cards(self, client, cache):
        client.get("/api/cards")
        client.get("/api/cards/7")

        resp = client.post("/api/admin/clear-cache")

        assert resp.status_code == 200
        assert resp.json() == {"message": "Cache cleared successfully"}
        assert cache.keys() == ["card_7"]

    def test_full_clear(self, client, cache):
        client.get("/api/cards/7")
        resp = client.post("/api/admin/clear-cache?full=true")
        assert resp.status_code == 200
        assert len(cache) == 0


# =============================================================================
# ERRORS & FALLBACKS
# =============================================================================

class TestErrorHandling:
    def test_unknown_api_route_is_404(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "API endpoint not found"}

    def test_database_error_is_500(self):
        broken = MagicMock()
        broken.get_all_cards.side_effect = RuntimeError("connection reset")
        app.dependency_overrides[get_repository] = lambda: broken
        try:
            resp = TestClient(app, raise_server_exceptions=False).get("/api/cards")
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 500
        assert resp.json() == {"detail": "An internal server error occurred."}


class TestFrontendFallback:
    def test_missing_frontend(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(main, "STATIC_DIR", tmp_path)
        resp = client.get("/some/client/route")
        assert resp.status_code == 404
        assert "Frontend not found" in resp.text

    def test_index_served_for_client_routes(self, client, tmp_path, monkeypatch):
        (tmp_path / "index.html").write_text("<html>kort</html>")
        monkeypatch.setattr(main, "STATIC_DIR", tmp_path)

        resp = client.get("/kort/7")

        assert resp.status_code == 200
        assert "kort" in resp.text

    def test_static_file_served(self, client, tmp_path, monkeypatch):
        (tmp_path / "index.html").write_text("<html></html>")
        (tmp_path / "manifest.json").write_text('{"name": "kort"}')
        monkeypatch.setattr(main, "STATIC_DIR", tmp_path)

        resp = client.get("/manifest.json")

        assert resp.json() == {"name": "kort"}
