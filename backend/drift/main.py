"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from drift.config import get_settings
from drift.db.session import SessionLocal, engine
from drift.models.base import Base
from drift.routers import analytics, conversations, entities, lists, navigation
from drift.services.index_cache import SqlIndexCache
from drift.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)


def _ensure_schema() -> None:
    """Create the cache table when migrations have not been run."""

    try:
        Base.metadata.create_all(engine)
    except Exception:
        logger.exception("Index cache schema setup failed; persistence will be best-effort only.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    _ensure_schema()
    app.state.sessions = SessionRegistry(cache=SqlIndexCache(SessionLocal))
    yield
    app.state.sessions.close_all()


settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(conversations.router, tags=["conversations"])
app.include_router(entities.router, tags=["entities"])
app.include_router(navigation.router, tags=["navigation"])
app.include_router(lists.router, tags=["lists"])
app.include_router(analytics.router, tags=["analytics"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
