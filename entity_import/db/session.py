import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from entity_import.core.config import settings

logger = logging.getLogger(__name__)

_engine = None


def _report_connection_failure(exc: Exception) -> None:
    """Log high-signal diagnostics when the store cannot be reached."""
    logger.warning("Could not connect to database: %s", exc)
    logger.warning("The service will start but database operations will fail until the connection succeeds.")

    try:
        url = make_url(settings.database_url)
    except Exception as parse_error:  # pragma: no cover
        logger.warning("Unable to parse DATABASE_URL (%s); skipping detailed diagnostics.", parse_error)
        return

    logger.warning(
        "Database connection settings: dialect=%s driver=%s host=%s database=%s",
        url.get_backend_name(),
        url.get_driver_name() or "default",
        url.host or "localhost",
        url.database,
    )


def build_engine(database_url: str):
    """Create an engine, sharing a single connection for in-memory SQLite."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


def get_engine():
    global _engine
    if _engine is None:
        try:
            _engine = build_engine(settings.database_url)
            # Test connection eagerly so failures surface immediately.
            with _engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            _report_connection_failure(e)
            # Keep the engine so callers can proceed (may still fail later).
            _engine = build_engine(settings.database_url)
    return _engine


# Don't create engine at import time
SessionLocal = None

Base = declarative_base()


def get_session_local():
    global SessionLocal
    if SessionLocal is None:
        engine = get_engine()
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SessionLocal


def get_db():
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine=None) -> None:
    """Create the entity, template and project tables if they don't exist."""
    from entity_import.db import models  # noqa: F401  (registers the models on Base)

    Base.metadata.create_all(bind=engine or get_engine())
