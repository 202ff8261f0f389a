"""Pytest configuration and fixtures."""

import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["AUTH_STRATEGY"] = "api_key"
os.environ["API_KEY"] = "test-key"
os.environ["PUBLIC_BASE_URL"] = "http://fly.test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from flylinks import auth, database, factory, models


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite database so that several threads can share it."""
    engine = database.make_engine(f"sqlite:///{tmp_path / 'flylinks.db'}")
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with session_factory() as db:
        factory.ensure_code_factory(db)
    return session_factory


@pytest.fixture
def db(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def client(session_factory):
    from flylinks.main import app

    def get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[database.get_db] = get_test_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def api_headers():
    return {"X-API-Key": "test-key"}


@pytest.fixture
def token_headers():
    """Bearer headers for a named user."""
    def make(user):
        return {"Authorization": f"Bearer {auth.create_access_token({'sub': user})}"}
    return make
