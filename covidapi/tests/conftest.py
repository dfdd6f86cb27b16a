"""Pytest configuration and shared fixtures."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import pytest
import asyncio
import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from covidapi.app.database import Base, get_db
from covidapi.app.main import app
from covidapi.app.models import CaseSnapshotRow
from covidapi.app.routers.data import get_scraper
from covidapi.app.warehouse import SnapshotWarehouse


# No-op lifespan so the ASGI client doesn't try to connect to the real DB
@asynccontextmanager
async def _noop_lifespan(app):
    yield


app.router.lifespan_context = _noop_lifespan


class AsyncSessionAdapter:
    """Tiny async facade over a sync SQLAlchemy session for tests."""

    def __init__(self, session: Session):
        self._session = session

    async def execute(self, *args: Any, **kwargs: Any):
        return self._session.execute(*args, **kwargs)

    async def commit(self) -> None:
        self._session.commit()

    async def flush(self) -> None:
        self._session.flush()

    async def rollback(self) -> None:
        self._session.rollback()

    async def close(self) -> None:
        self._session.close()

    def add(self, instance: Any) -> None:
        self._session.add(instance)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def add_snapshot_rows(session, updated_at, ingested_at=None, country="India", states=("Delhi",), base=100):
    """Insert one stored row set (country row + state rows) for ``updated_at``."""
    ingested_at = ingested_at or updated_at
    session.add(CaseSnapshotRow(
        country_name=country,
        state_name=None,
        active=base,
        cured=base // 2,
        deaths=base // 20,
        migrated=0,
        total=base + base // 2 + base // 20,
        updated_at=updated_at,
        ingested_at=ingested_at,
    ))
    for i, state in enumerate(states):
        session.add(CaseSnapshotRow(
            country_name=country,
            state_name=state,
            active=10 + i,
            cured=2,
            deaths=0,
            migrated=0,
            total=12 + i,
            updated_at=updated_at,
            ingested_at=ingested_at,
        ))


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    test_db = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{test_db}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    adapted = AsyncSessionAdapter(session)
    try:
        yield adapted
    finally:
        session.close()


@pytest.fixture(scope="function")
def warehouse(db_session):
    return SnapshotWarehouse(db_session)


@pytest.fixture(scope="function")
def seeded_db(session_factory):
    """Three stored snapshots: T0 < T1 < T2."""
    session = session_factory()
    try:
        add_snapshot_rows(session, utc(2020, 4, 1, 10, 0, 0), base=100)
        add_snapshot_rows(session, utc(2020, 4, 1, 12, 0, 0), states=("Delhi", "Kerala"), base=200)
        add_snapshot_rows(session, utc(2020, 4, 1, 14, 0, 0), states=("Delhi", "Kerala", "Goa"), base=300)
        session.commit()
        yield
    finally:
        session.close()


@pytest.fixture
def store_snapshot(session_factory):
    """Persist a row set directly, bypassing the write path."""

    def _store(updated_at, **kwargs):
        session = session_factory()
        try:
            add_snapshot_rows(session, updated_at, **kwargs)
            session.commit()
        finally:
            session.close()

    return _store


def _override_get_db_with_factory(session_factory):
    async def override_get_db():
        session = session_factory()
        adapted = AsyncSessionAdapter(session)
        try:
            yield adapted
            await adapted.commit()
        except Exception:
            await adapted.rollback()
            raise
        finally:
            await adapted.close()

    return override_get_db


class SyncASGIClient:
    def request(self, method: str, path: str, **kwargs):
        async def _request():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
                return await c.request(method, path, **kwargs)

        return asyncio.run(_request())

    def get(self, path: str, **kwargs):
        return self.request("GET", path, **kwargs)

    def put(self, path: str, **kwargs):
        return self.request("PUT", path, **kwargs)


@pytest.fixture
def client(session_factory):
    """FastAPI test client with overridden database dependency."""
    app.dependency_overrides[get_db] = _override_get_db_with_factory(session_factory)
    try:
        yield SyncASGIClient()
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded_client(session_factory, seeded_db):
    """FastAPI test client backed by a seeded database."""
    app.dependency_overrides[get_db] = _override_get_db_with_factory(session_factory)
    try:
        yield SyncASGIClient()
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def override_scraper():
    """Install a stand-in scraper for the /v1/data/current routes."""

    def _install(scraper):
        async def _get_scraper():
            yield scraper

        app.dependency_overrides[get_scraper] = _get_scraper

    return _install


@pytest.fixture
def india_payload():
    return {
        "name": "India",
        "updatedAt": "2020-04-01T10:00:00Z",
        "cases": {"active": 100, "cured": 50, "deaths": 5, "migrated": 0, "total": 155},
        "states": [
            {"name": "Delhi", "cases": {"active": 10, "cured": 2, "deaths": 0, "migrated": 0, "total": 12}},
        ],
    }
