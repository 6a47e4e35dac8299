"""Shared fixtures for the cardgraph test suite.

The Neo4j driver is replaced by FakeDriver, which answers queries from an
in-memory FakeGraph and counts sessions, so cache behaviour can be checked
by looking at how many round trips reached the "database".
"""

import copy

import pytest

from cardgraph.config import Settings
from cardgraph.database import GraphConnection
from cardgraph.query_cache import QueryCache
from cardgraph.repository import CardRepository


# =============================================================================
# FAKE DRIVER
# =============================================================================

class FakeRecord:
    """Stands in for neo4j.Record: only ``data()`` is used."""

    def __init__(self, data: dict):
        self._data = data

    def data(self):
        return copy.deepcopy(self._data)


class FakeSession:
    def __init__(self, driver):
        self.driver = driver
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        if not self.closed:
            self.closed = True
            self.driver.open_sessions -= 1

    def run(self, query, params=None):
        params = params or {}
        self.driver.queries.append((query, params))
        return [FakeRecord(row) for row in self.driver.responder(query, params)]


class FakeDriver:
    def __init__(self, responder):
        self.responder = responder
        self.queries = []
        self.sessions_opened = 0
        self.open_sessions = 0
        self.databases = []
        self.closed = False

    def session(self, database=None):
        self.sessions_opened += 1
        self.open_sessions += 1
        self.databases.append(database)
        return FakeSession(self)

    def verify_connectivity(self):
        return None

    def close(self):
        self.closed = True


# =============================================================================
# FAKE GRAPH
# =============================================================================

def make_card_row(card_id, state="ikke_avhuket", questions=None,
                  frameworks=None, lokal_ids=None, poeng=0, bonus_poeng=None):
    return {
        "id": card_id,
        "kategori_tekst": f"Kategori {card_id}",
        "kategori_beskrivelse": f"Beskrivelse {card_id}",
        "kategori_kort": f"Kort {card_id}",
        "state": state,
        "sporsmal_med_alternativer": questions if questions is not None else [],
        "direkte_rammeverk": frameworks if frameworks is not None else [],
        "dekkede_tiltak_lokal_id": lokal_ids if lokal_ids is not None else [],
        "_poeng": poeng,
        "_bonus_poeng": bonus_poeng,
    }


def two_question_card(card_id=7):
    """Card with two questions, one alternative each, no measures."""
    questions = []
    for n in (1, 2):
        questions.append({
            "sporsmal_tekst": f"Spørsmål {n}?",
            "alternativer": [{
                "alternativ_tekst": f"Alternativ {n}",
                "alternativ_beskrivelse": None,
                "alternativ_hva": None,
                "alternativ_hvordan": None,
                "alternativ_tiltak_info": [],
            }],
        })
    return make_card_row(card_id, questions=questions)


class FakeGraph:
    """Answers the repository's queries from a dict of card rows."""

    def __init__(self, cards=None, category_ids=None):
        self.cards = {row["id"]: row for row in (cards or [])}
        self.category_ids = category_ids

    def _public(self, row):
        return {k: v for k, v in row.items() if not k.startswith("_")}

    def __call__(self, query, params):
        if "RETURN 1 AS test" in query:
            return [{"test": 1}]
        if "SET k.state" in query:
            row = self.cards.get(params["cardId"])
            if row is None:
                return []
            row["state"] = params["state"]
            return [{"id": row["id"], "state": row["state"]}]
        if "sum(" in query:
            checked = [r for r in self.cards.values() if r["state"] == params["state"]]
            if not checked:
                return [{"points": None}]
            return [{"points": sum((r["_poeng"] or 0) + (r["_bonus_poeng"] or 0) for r in checked)}]
        if "sporsmal_med_alternativer" in query:
            row = self.cards.get(params["cardId"])
            return [self._public(row)] if row else []
        if "ORDER BY id" in query:
            ids = self.category_ids if self.category_ids is not None else list(self.cards)
            if "IS NOT NULL" in query:
                ids = [i for i in ids if i is not None]
            return [{"id": i} for i in sorted(ids, key=lambda i: (i is None, i or 0))]
        return []


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings():
    return Settings(
        neo4j_uri="bolt://test:7687",
        neo4j_user="neo4j",
        neo4j_password="test",
        neo4j_database="kort",
    )


@pytest.fixture
def graph():
    return FakeGraph(cards=[
        make_card_row(1, state="avhuket", poeng=10, bonus_poeng=5),
        make_card_row(2, state="ikke_avhuket", poeng=20),
        make_card_row(3, state="avhuket", poeng=7, bonus_poeng=None),
        two_question_card(7),
    ])


@pytest.fixture
def driver(graph):
    return FakeDriver(graph)


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def connection(settings, cache, driver):
    return GraphConnection(settings, cache=cache, driver=driver)


@pytest.fixture
def repo(connection):
    return CardRepository(connection)
