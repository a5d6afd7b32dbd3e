"""Pytest configuration and fixtures for Sirius tests.

The database session is a mock: services and routers are exercised
against scripted `execute` results, so no PostgreSQL instance is needed.
"""

from datetime import datetime
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sirius.auth.jwt import create_access_token
from sirius.auth.permissions import ADMIN
from sirius.database import get_db
from sirius.main import app
from sirius.models.wizard import Wizard


# ── Mock database ────────────────────────────────────────────────

def build_result(
    *,
    scalar: Any = None,
    scalars: list | None = None,
    rows: list | None = None,
) -> MagicMock:
    """A stand-in for an AsyncSession.execute() result."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.all.return_value = rows or []
    return result


class Savepoint:
    """Async context manager standing in for AsyncSession.begin_nested()."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def make_result():
    return build_result


@pytest.fixture
def mock_db() -> MagicMock:
    db = MagicMock()
    db.execute = AsyncMock(return_value=build_result())
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.delete = AsyncMock()
    db.refresh = AsyncMock()
    db.begin_nested = MagicMock(side_effect=lambda: Savepoint())
    db.add = MagicMock()
    db.add_all = MagicMock()
    return db


@pytest.fixture
def make_wizard():
    def _make(
        type: str = "report_workers_duplicate_ssn",
        current_step: str | None = "run",
        data: dict | None = None,
        **kwargs,
    ) -> Wizard:
        return Wizard(
            id=kwargs.pop("id", "wiz-1"),
            date=kwargs.pop("date", datetime(2024, 3, 1, 12, 0)),
            type=type,
            status=kwargs.pop("status", "in_progress"),
            current_step=current_step,
            entity_id=kwargs.pop("entity_id", None),
            data=data if data is not None else {},
        )

    return _make


# ── HTTP client ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(mock_db) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency replaced by `mock_db`."""

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Auth ─────────────────────────────────────────────────────────

@pytest.fixture
def token_for():
    def _token(*permissions: str) -> dict:
        token = create_access_token(
            user_id="user-1", permissions=list(permissions), name="Test User"
        )
        return {"Authorization": f"Bearer {token}"}

    return _token


@pytest.fixture
def auth_headers(token_for) -> dict:
    return token_for(ADMIN)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
