"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Deterministic settings for the whole session, set before any app import
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-with-at-least-32-chars")
os.environ.setdefault("QUOTA_STORE_BACKEND", "memory")
os.environ.setdefault("APP_NAMESPACE", "test-app")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ANTHROPIC_API_KEY", "")
os.environ.setdefault("SENTRY_DSN", "")

import pytest
from typing import Any, AsyncGenerator, Callable
from unittest.mock import AsyncMock

from httpx import AsyncClient, ASGITransport

# Import after path is set
from adapters.identity.jwt_verifier import JWTIdentityVerifier
from core.domain.subscription import subscription_status_path, usage_counter_path
from core.interfaces.services import AnalysisOracle
from core.security import TokenService
from infrastructure.config import get_settings
from infrastructure.store.memory_store import InMemoryQuotaStore

settings = get_settings()
token_service = TokenService(secret_key=settings.jwt_secret_key)

NAMESPACE = settings.app_namespace

SAMPLE_ANALYSIS_RESULT: dict[str, Any] = {
    "predicted_footprint_tCO2e": 842.5,
    "explanation_of_problems": "Fleet diesel use dominates emissions.",
    "solution_plan": [
        {
            "area": "Logistics",
            "action": "Switch 50% fleet to electric",
            "reduction_estimate_tCO2e": 210.0,
        }
    ],
    "breakdown_chart_data": [
        {"source": "Electricity", "tCO2e": 300.0},
        {"source": "Travel", "tCO2e": 142.5},
        {"source": "Freight", "tCO2e": 400.0},
    ],
}

SAMPLE_ANALYSIS_DATA: dict[str, Any] = {
    "employees": 120,
    "electricity_kwh": 450000,
    "fleet_vehicles": 14,
}


def status_path(user_id: str) -> str:
    return subscription_status_path(NAMESPACE, user_id)


def usage_path(user_id: str) -> str:
    return usage_counter_path(NAMESPACE, user_id)


class FakeOracle(AnalysisOracle):
    """Analysis oracle returning a canned result or raising a given error."""

    def __init__(self, result: dict[str, Any] | None = None, error: Exception | None = None):
        self.result = result if result is not None else SAMPLE_ANALYSIS_RESULT
        self.error = error
        self.calls: list[Any] = []

    async def analyze(self, analysis_data: Any) -> dict[str, Any]:
        self.calls.append(analysis_data)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def memory_store() -> InMemoryQuotaStore:
    """Empty in-memory quota store."""
    return InMemoryQuotaStore()


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def identity_verifier() -> JWTIdentityVerifier:
    return JWTIdentityVerifier(token_service)


@pytest.fixture
def user_id() -> str:
    return "user-123"


@pytest.fixture
def auth_headers_for() -> Callable[[str], dict]:
    """Factory producing authentication headers for an arbitrary user id."""

    def _headers(user_id: str) -> dict:
        access_token = token_service.create_access_token(user_id=user_id)
        return {"Authorization": f"Bearer {access_token}"}

    return _headers


@pytest.fixture
def auth_headers(auth_headers_for, user_id: str) -> dict:
    """Generate authentication headers for the test user."""
    return auth_headers_for(user_id)


@pytest.fixture
def failing_store() -> AsyncMock:
    """Quota store whose every call fails with a StorageError."""
    from core.exceptions import StorageError

    store = AsyncMock()
    store.get.side_effect = StorageError("store down")
    store.merge_set.side_effect = StorageError("store down")
    store.ping.return_value = False
    return store


@pytest.fixture
async def async_client(
    memory_store: InMemoryQuotaStore,
    fake_oracle: FakeOracle,
    identity_verifier: JWTIdentityVerifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client wired to in-memory collaborators."""
    # Import app here to avoid circular imports
    from api.dependencies import get_analysis_oracle, get_identity_verifier, get_quota_store
    from main import app

    app.dependency_overrides[get_quota_store] = lambda: memory_store
    app.dependency_overrides[get_analysis_oracle] = lambda: fake_oracle
    app.dependency_overrides[get_identity_verifier] = lambda: identity_verifier

    # Reset rate limiter state between tests to prevent cross-test 429s
    if hasattr(app.state, "limiter"):
        app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
