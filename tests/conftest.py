"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")

# Query builder methods that return the builder itself
QUERY_METHODS = ("select", "eq", "in_", "gte", "lt", "order", "limit", "maybe_single")


def build_supabase_client(tables: dict[str, Any]) -> MagicMock:
    """Build a mocked Supabase client that serves fixed data per table.

    Every query chain on a table ends in `execute()` returning the table's
    data, whatever filters were applied.

    Args:
        tables: Response data by table name.

    Returns:
        MagicMock: Client whose `table(name)` calls are recorded.
    """
    client = MagicMock()

    def table(name: str) -> MagicMock:
        query = MagicMock(name=f"query[{name}]")
        for method in QUERY_METHODS:
            getattr(query, method).return_value = query
        response = MagicMock()
        response.data = tables.get(name, [])
        query.execute.return_value = response
        return query

    client.table.side_effect = table
    return client


@pytest.fixture
def supabase_tables() -> Callable[[dict[str, Any]], MagicMock]:
    """Provide the mocked Supabase client factory."""
    return build_supabase_client


@pytest.fixture(autouse=True)
def reset_schedule_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test a fresh application schedule cache."""
    monkeypatch.setattr("pricing_engine.services.schedule_cache._schedule_cache", None)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from pricing_engine.core.config import get_settings

    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client for the health checks.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("pricing_engine.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from pricing_engine.main import app

    with TestClient(app) as test_client:
        yield test_client
