"""
Pytest configuration and fixtures for the import pipeline tests.

Collaborator tests run against an in-memory SQLite store created per test;
pipeline tests use the in-memory RPC fake from ``tests/utils``.
"""

import os

# The collaborator app must not touch the configured database during tests.
os.environ.setdefault("SKIP_DB_INIT", "1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from entity_import.db.models import Project, Template
from entity_import.db.session import build_engine, create_tables, get_db
from entity_import.main import app
from tests.utils.fake_rpc import FakeImportRpcClient

IDENTITY = "0000-0002-1825-0097"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def override_db(engine):
    """Point the app's ``get_db`` dependency at the per-test engine."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def api_client(override_db):
    client = TestClient(app, headers={"X-User-Identity": IDENTITY})
    yield client
    client.close()


@pytest.fixture
def seeded(db_session):
    """A project and a template owned by another user, as the catalog would hold them."""
    project = Project(id="p1", name="Field Study", owner="someone-else")
    template = Template(
        id="t1",
        name="Size",
        description="Physical dimensions",
        owner="someone-else",
        values=[
            {"id": "v1", "name": "Width", "type": "number", "data": 0},
            {"id": "v2", "name": "Height", "type": "number", "data": 0},
        ],
    )
    db_session.add_all([project, template])
    db_session.commit()
    return {"project": project, "template": template}


@pytest.fixture
def fake_rpc():
    return FakeImportRpcClient()
