"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads templates and picks the answer store once
  - CORS middleware
  - Global exception handlers (SDK ValueError → 404/409/400, SaveError → 502)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``triage-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from triage_db.engine import Database
from triage_forms.answer_store import InMemoryAnswerStore
from triage_forms.errors import SaveError
from triage_forms.template import TemplateStore

from triage_server.config import ServerSettings, load_settings
from triage_server.errors import (
    generic_error_handler,
    key_error_handler,
    save_error_handler,
    value_error_handler,
)
from triage_server.registry import SessionRegistry
from triage_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load YAML templates into a ``TemplateStore``
      2. Build the configured ``AnswerStore`` and the session registry
      3. Stash them on ``app.state`` for dependency injection

    Shutdown:
      1. Let in-flight saves finish and close every session
      2. Dispose the database connection pool
    """
    settings: ServerSettings = app.state.settings

    # --- Load templates ---
    templates = TemplateStore(template_dir=settings.template_dir)
    templates.load()

    # --- Answer store ---
    database: Database | None = None
    if settings.answer_store == "memory":
        answer_store = InMemoryAnswerStore()
    else:
        database = Database(settings.database)
        answer_store = database.answer_store()
    logger.info("Using %s answer store", settings.answer_store)

    app.state.templates = templates
    app.state.database = database
    app.state.answer_store = answer_store
    app.state.registry = SessionRegistry(answer_store, autosave=settings.autosave)

    yield

    # --- Shutdown ---
    await app.state.registry.close_all()
    if database is not None:
        await database.dispose()


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Triage Form API Server",
        description="REST API for the technology triage form engine",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(SaveError, save_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity when PostgreSQL is used."""
        database: Database | None = app.state.database
        if database is None:
            return {"status": "ok", "answer_store": "memory"}
        try:
            await database.ping()
            return {"status": "ok", "answer_store": "postgres"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn triage_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``triage-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "triage_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
