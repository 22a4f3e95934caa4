"""Shared pytest fixtures."""

from pathlib import Path
from typing import AsyncGenerator, Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.config import Settings
from task_manager.db import Database
from task_manager.main import create_app


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """A fresh SQLite file per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}"


@pytest.fixture
async def database(database_url: str) -> AsyncGenerator[Database, None]:
    database = Database(database_url)
    await database.open()
    yield database
    await database.close()


@pytest.fixture
async def db(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def settings(database_url: str) -> Settings:
    return Settings(database_url=database_url)


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """HTTP client with the app lifespan (store open/close) running."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_task(client: TestClient) -> Callable[..., Dict]:
    """POST a task and return the response body."""

    def _create(**overrides) -> Dict:
        payload = {"title": "Default task", **overrides}
        response = client.post("/api/tasks", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
