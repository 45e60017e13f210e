import uuid
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401  (configure all mappers)
from app.core.database import get_db
from app.core.rate_limit import limiter
from app.dependencies import get_ai_service, get_current_user
from app.main import app as fastapi_app
from app.services.ai_service import AIService


@pytest.fixture
def current_user():
    return SimpleNamespace(
        id=uuid.uuid4(),
        email="demo@notium.app",
        full_name="Demo User",
        avatar_url=None,
        is_active=True,
        email_verified=False,
        subscription_tier="free",
        ai_tokens_used=0,
        ai_tokens_limit=100_000,
        created_at=datetime(2026, 1, 1),
        last_login=None,
    )


@pytest.fixture
def db_session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def ai_service():
    return AsyncMock(spec=AIService)


@pytest.fixture
def client(current_user, db_session, ai_service):
    """TestClient with auth, database and AI service replaced. Lifespan hooks do not run."""
    limiter.reset()

    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_current_user] = lambda: current_user
    fastapi_app.dependency_overrides[get_ai_service] = lambda: ai_service

    yield TestClient(fastapi_app, raise_server_exceptions=False)

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db_session):
    limiter.reset()

    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db

    yield TestClient(fastapi_app, raise_server_exceptions=False)

    fastapi_app.dependency_overrides.clear()


def scalar_result(value):
    """Result mock for `scalar_one_or_none()` / `scalar()` lookups."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def rows_result(items):
    """Result mock for `scalars().all()` and `all()` listings."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    result.all.return_value = items
    return result
