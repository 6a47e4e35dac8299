import logging
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from cardgraph.config import load_settings
from cardgraph.database import GraphConnection
from cardgraph.errors import CardNotFoundError, ValidationError
from cardgraph.models import MessageResponse, PointsResponse, StateUpdateRequest, StateUpdateResponse
from cardgraph.query_cache import QueryCache
from cardgraph.repository import CardRepository, validate_card_id

settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

db = GraphConnection(settings, cache=QueryCache())
repository = CardRepository(db)

app = FastAPI(title="Card Graph API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_repository() -> CardRepository:
    return repository


@app.on_event("startup")
async def startup_event():
    """Fail fast on missing credentials, then check the database is reachable."""
    settings.validate_credentials()
    db.warmup()
    logger.info("API available at http://%s:%s/api", settings.host, settings.port)
    logger.info("Serving frontend from: %s", settings.static_dir)


@app.on_event("shutdown")
async def shutdown_event():
    db.close()


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "An internal server error occurred."})


@app.get("/health")
async def health():
    return {"status": "healthy"}


# =============================================================================
# CATEGORIES & CARDS
# =============================================================================

@app.get("/api/categories", response_model=list[int])
def get_categories(repo: CardRepository = Depends(get_repository)):
    """All category ids, ascending."""
    return repo.get_all_category_ids()


@app.get("/api/cards", response_model=list[int])
def get_cards(repo: CardRepository = Depends(get_repository)):
    """All card ids, ascending."""
    return repo.get_all_cards()


@app.get("/api/cards/{card_id}")
def get_card(card_id: str, repo: CardRepository = Depends(get_repository)):
    try:
        card = repo.get_card_by_id(card_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if card is None:
        raise HTTPException(status_code=404, detail=f"Card with ID {card_id} not found")
    return card


@app.put("/api/cards/{card_id}/state", response_model=StateUpdateResponse)
def update_card_state(card_id: str, request: StateUpdateRequest,
                      repo: CardRepository = Depends(get_repository)):
    """Set a card to 'avhuket' or 'ikke_avhuket'."""
    try:
        return repo.update_card_state(validate_card_id(card_id), request.state)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# POINTS
# =============================================================================

@app.get("/api/points", response_model=PointsResponse)
def get_points(repo: CardRepository = Depends(get_repository)):
    return PointsResponse(points=repo.calculate_points())


# =============================================================================
# ADMIN
# =============================================================================

@app.post("/api/admin/clear-cache", response_model=MessageResponse)
def clear_cache(full: bool = False, repo: CardRepository = Depends(get_repository)):
    """Clear the id-list caches; ``?full=true`` drops cached cards as well."""
    repo.clear_cache(full=full)
    return MessageResponse(message="Cache cleared successfully")


@app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
async def api_not_found(path: str, request: Request):
    logger.warning("API route not found: %s %s", request.method, request.url.path)
    raise HTTPException(status_code=404, detail="API endpoint not found")


# =============================================================================
# FRONTEND
# =============================================================================

STATIC_DIR = Path(settings.static_dir)
if (STATIC_DIR / "static").exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR / "static")), name="static")


@app.get("/{path:path}", include_in_schema=False)
async def frontend(path: str):
    """Serve a built frontend file, falling back to index.html for client-side routes."""
    if path:
        candidate = (STATIC_DIR / path).resolve()
        if candidate.is_file() and STATIC_DIR.resolve() in candidate.parents:
            return FileResponse(candidate)
    index = STATIC_DIR / "index.html"
    if index.exists():
        return FileResponse(index, media_type="text/html")
    return PlainTextResponse("Frontend not found. Have you built the client app?", status_code=404)


def run():
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
