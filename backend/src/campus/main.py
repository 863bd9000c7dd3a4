"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)
    uvicorn_logger.propagate = False

from campus import __version__  # noqa: E402
from campus.api.deps import get_settings, get_store  # noqa: E402
from campus.api.errors import register_exception_handlers  # noqa: E402
from campus.api.routers import (  # noqa: E402
    chat,
    comments,
    leaderboard,
    notifications,
    posts,
    search,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup:
    - Ensures the data directory exists
    - Opens the database and applies migrations
    - Reports how many posts are searchable
    """
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Data directory: %s", settings.data_dir)

    if get_store().count_embedded() == 0:
        logger.warning("No posts have embeddings yet; search will report an empty index")

    logger.info(
        "Campus Connect started (provider=%s, model=%s, environment=%s)",
        settings.llm_provider,
        settings.llm_model,
        settings.environment,
    )

    yield


app = FastAPI(
    title="Campus Connect",
    description="College community forum with semantic search and a community-grounded assistant",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(search.router)
app.include_router(chat.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(notifications.router)
app.include_router(notifications.ws_router)
app.include_router(leaderboard.router)
