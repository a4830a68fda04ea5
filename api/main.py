"""FastAPI application for the UNMASK dashboard.

Provides the REST API the dashboard uses to import and browse messages,
chat with the relationship agents, run vectorization, and read insight
reports.

Usage:
    uvicorn api.main:app --reload --port 8600

Documentation:
    - Swagger UI: http://localhost:8600/docs
    - ReDoc: http://localhost:8600/redoc
    - OpenAPI JSON: http://localhost:8600/openapi.json
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.errors import register_exception_handlers
from api.ratelimit import limiter, rate_limit_exceeded_handler
from unmask import __version__
from unmask.config import get_config

logger = logging.getLogger(__name__)

API_TITLE = "UNMASK API"
API_DESCRIPTION = """
# UNMASK - Relationship Analytics API

UNMASK imports text-message exports, groups them into conversation chunks,
and answers questions about the relationship through a set of specialist
agents (coaching, patterns, conflict, emotional health, memory search).

## Features

- **Messages**: Import CSV exports, browse, filter, search and edit messages
- **Chat**: Intent-routed agent chat and retrieval-augmented answers
- **Vectorization**: Chunk conversations and store their embeddings
- **Insights**: Health score, patterns, timeline and dashboard statistics
- **Tracking**: Relationship tracker rows and relationship events

Without an OpenAI key every endpoint still works: embeddings fall back to an
offline hash embedding and agents answer with data summaries.
"""

API_TAGS_METADATA = [
    {"name": "health", "description": "Service health and status checks."},
    {"name": "chat", "description": "Agent-routed chat and retrieval-augmented answers."},
    {"name": "agents", "description": "Intent classification and the agent registry."},
    {"name": "messages", "description": "Stored text messages."},
    {"name": "conversations", "description": "Conversation chunks and their aggregates."},
    {"name": "insights", "description": "Health score, patterns, timeline and summaries."},
    {"name": "dashboard", "description": "Dashboard statistics."},
    {"name": "vectorize", "description": "Conversation chunking, embedding and search."},
    {"name": "tracking", "description": "Relationship tracker rows and events."},
    {"name": "import", "description": "CSV message import."},
]


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncIterator[None]:
    """Open the database on startup and close it on shutdown."""
    from unmask.db import get_db, reset_db

    db = get_db()
    logger.info("UNMASK API started (database: %s)", db.db_path)

    yield

    reset_db()


def _configure_middleware(app_instance: FastAPI) -> None:
    """Configure middleware for the FastAPI application."""
    app_instance.add_middleware(
        CORSMiddleware,
        allow_origins=get_config().server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app_instance.add_middleware(GZipMiddleware, minimum_size=500)
    app_instance.add_middleware(SlowAPIMiddleware)

    @app_instance.middleware("http")
    async def timing_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time
        response.headers["X-Response-Time"] = f"{duration:.4f}s"
        return response


def _register_routers(app_instance: FastAPI) -> None:
    """Register API routers."""
    from api.routers.agents import router as agents_router
    from api.routers.chat import router as chat_router
    from api.routers.conversations import router as conversations_router
    from api.routers.dashboard import router as dashboard_router
    from api.routers.events import router as events_router
    from api.routers.health import router as health_router
    from api.routers.import_csv import router as import_router
    from api.routers.insights import router as insights_router
    from api.routers.messages import router as messages_router
    from api.routers.tracker import router as tracker_router
    from api.routers.vectorize import router as vectorize_router

    app_instance.include_router(health_router)
    app_instance.include_router(chat_router)
    app_instance.include_router(agents_router)
    app_instance.include_router(messages_router)
    app_instance.include_router(conversations_router)
    app_instance.include_router(insights_router)
    app_instance.include_router(dashboard_router)
    app_instance.include_router(vectorize_router)
    app_instance.include_router(tracker_router)
    app_instance.include_router(events_router)
    app_instance.include_router(import_router)


def create_app() -> FastAPI:
    """Application factory for creating configured FastAPI instances."""
    app_instance = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=API_TAGS_METADATA,
        lifespan=lifespan,
    )

    app_instance.state.limiter = limiter
    app_instance.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    _configure_middleware(app_instance)
    _register_routers(app_instance)
    register_exception_handlers(app_instance)

    return app_instance


app = create_app()
