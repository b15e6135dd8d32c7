"""Shared pytest fixtures for nestset tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from nestset.api.router import get_service
from nestset.db.connection import Database
from nestset.main import app
from nestset.service import NestedSetService
from tests.fixtures import FOREST_SCHEMA


@pytest.fixture
async def db():
    """In-memory single-tree database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def forest_db():
    """In-memory database whose table carries a tree column."""
    database = await Database.connect(":memory:", FOREST_SCHEMA)
    yield database
    await database.close()


@pytest.fixture
async def service(db):
    """NestedSetService in single-tree mode."""
    return NestedSetService(db)


@pytest.fixture
async def forest_service(forest_db):
    """NestedSetService in forest mode."""
    return NestedSetService(forest_db, FOREST_SCHEMA)


@pytest.fixture
async def client(forest_service):
    """Async test client with the in-memory forest service wired into the app."""
    app.dependency_overrides[get_service] = lambda: forest_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
