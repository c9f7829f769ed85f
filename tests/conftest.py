import os

# Keep the module-level engine off the filesystem; requests use the fixture engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from church_admin.database import get_db, init_db, sqlite_pragmas
from church_admin.main import create_app
from church_admin.services.storage import get_storage


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    sqlite_pragmas(eng)
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def client(engine):
    app = create_app()

    def _get_db():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: None
    # No context manager: the startup hook would create tables on the default engine
    return TestClient(app)


@pytest.fixture()
def make_member(client):
    def _make(first="Abel", last="Tesfaye", **extra):
        body = {"firstName": first, "lastName": last}
        body.update(extra)
        r = client.post("/api/members", json=body)
        assert r.status_code == 200, r.text
        return r.json()["member"]

    return _make


@pytest.fixture()
def make_zone(client):
    def _make(name="Central Zone", **extra):
        body = {"name": name, "leaderName": "John Smith"}
        body.update(extra)
        r = client.post("/api/zones", json=body)
        assert r.status_code == 201, r.text
        return r.json()["zone"]

    return _make
