"""
Import collaborator service.

Serves the header extraction, mapping lookup, review and commit routes the
import pipeline calls. Run with any ASGI server, e.g.
``uvicorn entity_import.main:app``.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import imports, mapping
from .core.config import settings
from .core.logging_config import configure_logging
from .db.session import create_tables

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

SERVICE_NAME = "entity-import-api"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the entity, template and project tables before serving."""
    if os.getenv("SKIP_DB_INIT") == "1":
        logger.info("SKIP_DB_INIT=1; not touching %s", settings.database_url)
    else:
        try:
            create_tables()
        except Exception:
            logger.exception("Could not create import tables")
            raise
        logger.info("Import tables ready")
    yield
    logger.info("%s shutting down", SERVICE_NAME)


app = FastAPI(
    title="Entity Import API",
    version=VERSION,
    description="Header extraction, review and commit operations for bulk entity and template imports",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(mapping.router)
app.include_router(imports.router)


@app.get("/")
async def root():
    return {"message": "Entity Import API", "version": VERSION}


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }
