"""nestset FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from nestset import __version__
from nestset.api.router import get_service
from nestset.api.router import router as nodes_router
from nestset.config import database_path_from_env, schema_from_env
from nestset.db.connection import Database
from nestset.service import NestedSetService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    load_dotenv(Path.cwd() / ".env")

    schema = schema_from_env()
    db = await Database.connect(database_path_from_env(), schema)

    service = NestedSetService(db, schema)
    app.dependency_overrides[get_service] = lambda: service

    app.state.db = db
    yield

    await db.close()


app = FastAPI(
    title="nestset",
    description="Nested-set trees and forests stored in one SQLite table",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(nodes_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}
