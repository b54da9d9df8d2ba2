import asyncio

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.db.base import Base, create_engine, create_session_maker
from app.core.db.schemas import Card, Tag, CardTag  # noqa: F401
from app.core.db_services import CardService
from main import create_app


async def _create_schema(url: str) -> None:
    engine = create_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@pytest.fixture
def database_url(tmp_path):
    """Fresh SQLite file with the card schema, one per test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'cards.db'}"
    asyncio.run(_create_schema(url))
    return url


@pytest.fixture
def test_client(database_url, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    app = create_app(Settings())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def run_service(database_url):
    """Run ``fn(service)`` on its own engine and session, return its result."""

    def _run(fn):
        async def _main():
            engine = create_engine(database_url)
            try:
                async with create_session_maker(engine)() as session:
                    return await fn(CardService(session))
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run
