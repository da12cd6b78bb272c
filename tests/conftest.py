import sys
import os
import pytest
from fastapi.testclient import TestClient

# make sure the repository root is on sys.path for test collection
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from backend.qrlinks.config import Settings
from backend.qrlinks.db import create_db_engine, make_session_factory, init_db
from backend.qrlinks.main import create_app

TEST_SALT = "test-salt"


@pytest.fixture
def settings(tmp_path):
    # A dedicated sqlite file per test keeps tests independent
    return Settings(database_url=f"sqlite:///{tmp_path / 'test.db'}", ip_salt=TEST_SALT)


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the context runs the lifespan (engine, tables, scan recorder)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def create_qr(client):
    def _create(**fields):
        payload = {"destination_url": "https://example.com/landing"}
        payload.update(fields)
        r = client.post("/api/qrcodes", json=payload)
        assert r.status_code == 201, r.text
        return r.json()
    return _create
