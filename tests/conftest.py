"""Shared fixtures for the lineage browser test suite."""
import pytest
import kuzu
from fastapi.testclient import TestClient

from lineage.db import _init_schema, _migrate, get_conn
from lineage.cache import PersonCache
from lineage import records


class FailingConnection:
    """Stands in for a kuzu connection whose database has gone away."""

    def execute(self, *args, **kwargs):
        raise RuntimeError("IO exception: could not open database file")


# ── Database fixtures ──

@pytest.fixture
def db_path(tmp_path):
    """Temp directory for a fresh KuzuDB."""
    return tmp_path / "test_db"


@pytest.fixture
def db(db_path):
    """Initialized KuzuDB with full schema + migrations."""
    database = kuzu.Database(str(db_path))
    _init_schema(database)
    _migrate(database)
    return database


@pytest.fixture
def conn(db):
    """KuzuDB connection for unit tests."""
    return kuzu.Connection(db)


@pytest.fixture
def failing_conn():
    return FailingConnection()


# ── Record fixtures ──

@pytest.fixture
def record():
    """Factory for in-memory person records, shaped like records.get_person() output."""
    def _record(pid, father=None, mother=None, **overrides):
        person = {
            "id": pid,
            "slug": pid.lower(),
            "name": pid,
            "type": "PERSON",
            "gender": None,
            "father_id": father,
            "mother_id": mother,
            "is_canonical": True,
            "status": "APPROVED",
        }
        person.update(overrides)
        return person
    return _record


@pytest.fixture
def make_person(conn):
    """Factory for stored people; approved and canonical unless told otherwise."""
    def _make(slug, name=None, status="APPROVED", **fields):
        return records.create_person(conn, slug, name or slug.title(), status=status, **fields)
    return _make


@pytest.fixture
def abc_family(make_person):
    """A (no parents); B father=A; C father=A, mother=an id no record has."""
    a = make_person("a", "A")
    b = make_person("b", "B", father_id=a["id"])
    c = make_person("c", "C", father_id=a["id"], mother_id="unknown-id-x")
    return {"a": a, "b": b, "c": c}


# ── FastAPI app fixtures ──

@pytest.fixture
def person_cache():
    return PersonCache(max_entries=8)


@pytest.fixture
def app_with_db(db, person_cache):
    """FastAPI app with dependency overrides pointing at the test DB and a private cache."""
    from lineage.main import app, get_person_cache

    def override_get_conn():
        c = kuzu.Connection(db)
        try:
            yield c
        finally:
            c.close()

    app.dependency_overrides[get_conn] = override_get_conn
    app.dependency_overrides[get_person_cache] = lambda: person_cache
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_with_db):
    return TestClient(app_with_db, raise_server_exceptions=False)


@pytest.fixture
def failing_client(app_with_db):
    """Client whose record store raises on every query."""
    app_with_db.dependency_overrides[get_conn] = lambda: FailingConnection()
    return TestClient(app_with_db, raise_server_exceptions=False)
