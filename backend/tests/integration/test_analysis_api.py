"""
Integration tests for the analysis endpoint.

Tests POST /api/v1/analysis end to end against the in-memory quota store
and a canned analysis oracle:
- Success response shape and free-tier charging
- Missing token / missing data
- Invalid tokens
- Gate denials (limit reached, store failure)
- AI failures after quota was charged
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from core.domain.subscription import subscription_status_path, usage_counter_path
from core.exceptions import OracleError
from infrastructure.config import get_settings
from infrastructure.store.memory_store import InMemoryQuotaStore

pytestmark = pytest.mark.asyncio

URL = "/api/v1/analysis"
DATA = {"employees": 120, "electricity_kwh": 450000, "fleet_vehicles": 14}


def _usage_path(user_id: str) -> str:
    return usage_counter_path(get_settings().app_namespace, user_id)


def _status_path(user_id: str) -> str:
    return subscription_status_path(get_settings().app_namespace, user_id)


class TestAnalysisSuccess:
    """Admitted requests."""

    async def test_free_user_first_analysis(
        self, async_client: AsyncClient, auth_headers, memory_store, fake_oracle, user_id
    ):
        """A new user is admitted, charged once and gets the AI result."""
        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Free tier usage: 1/5 analyses used."
        assert body["result"] == fake_oracle.result
        assert fake_oracle.calls == [DATA]
        assert memory_store.snapshot()[_usage_path(user_id)]["count"] == 1

    async def test_pro_user_is_not_charged(
        self, async_client: AsyncClient, auth_headers, memory_store, user_id
    ):
        """Active pro users bypass the counter entirely."""
        await memory_store.merge_set(_status_path(user_id), {"tier": "pro", "status": "active"})
        await memory_store.merge_set(_usage_path(user_id), {"count": 5})

        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Pro subscription active."
        assert memory_store.snapshot()[_usage_path(user_id)]["count"] == 5

    async def test_response_carries_request_id(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert "X-Request-ID" in response.headers
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestAnalysisValidation:
    """400 responses."""

    async def test_missing_token(self, async_client: AsyncClient, fake_oracle):
        response = await async_client.post(URL, json={"data": DATA})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Missing authorization token or analysis data."}
        assert fake_oracle.calls == []

    async def test_non_bearer_header_counts_as_missing(self, async_client: AsyncClient):
        response = await async_client.post(
            URL, json={"data": DATA}, headers={"Authorization": "Basic dXNlcjpwYXNz"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.parametrize(
        "body",
        [{}, {"data": None}, {"data": False}, {"data": 0}, {"data": ""}, {"other": 1}],
    )
    async def test_missing_data(
        self, async_client: AsyncClient, auth_headers, memory_store, fake_oracle, body
    ):
        response = await async_client.post(URL, json=body, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Missing authorization token or analysis data."
        assert memory_store.snapshot() == {}
        assert fake_oracle.calls == []

    @pytest.mark.parametrize("data", [{}, []])
    async def test_empty_container_data_is_analyzed(
        self, async_client: AsyncClient, auth_headers, memory_store, fake_oracle, user_id, data
    ):
        response = await async_client.post(URL, json={"data": data}, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert fake_oracle.calls == [data]
        assert memory_store.snapshot()[_usage_path(user_id)]["count"] == 1

    async def test_invalid_json_body(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post(
            URL,
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_validation_precedes_authentication(self, async_client: AsyncClient):
        """A bad token with no data is a 400, not a 401."""
        response = await async_client.post(
            URL, json={}, headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestAnalysisAuthentication:
    """401 responses."""

    async def test_invalid_token(self, async_client: AsyncClient, memory_store, fake_oracle):
        """A rejected token never reaches the gate or the oracle."""
        response = await async_client.post(
            URL, json={"data": DATA}, headers={"Authorization": "Bearer not-a-real-token"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Unauthorized: Invalid authentication token."}
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert memory_store.snapshot() == {}
        assert fake_oracle.calls == []


class TestAnalysisAuthorization:
    """403 responses."""

    async def test_free_limit_reached(
        self, async_client: AsyncClient, auth_headers, memory_store, fake_oracle, user_id
    ):
        await memory_store.merge_set(_usage_path(user_id), {"count": 5})

        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        error = response.json()["error"]
        assert error.startswith("Free tier limit of 5 analyses exceeded. Please upgrade to Pro.")
        assert "5/5" in error
        assert fake_oracle.calls == []
        assert memory_store.snapshot()[_usage_path(user_id)]["count"] == 5

    async def test_sixth_request_denied(
        self, async_client: AsyncClient, auth_headers, memory_store, user_id
    ):
        """Five admitted requests, then a denial."""
        codes = []
        for _ in range(6):
            response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)
            codes.append(response.status_code)

        assert codes == [200] * 5 + [403]
        assert memory_store.snapshot()[_usage_path(user_id)]["count"] == 5

    async def test_cancelled_pro_is_limited(
        self, async_client: AsyncClient, auth_headers, memory_store, user_id
    ):
        await memory_store.merge_set(_status_path(user_id), {"tier": "pro", "status": "cancelled"})
        await memory_store.merge_set(_usage_path(user_id), {"count": 7})

        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_store_failure_denies(
        self, async_client: AsyncClient, auth_headers, failing_store, fake_oracle
    ):
        """The gate denies closed when the quota store is unreachable."""
        from api.dependencies import get_quota_store
        from main import app

        app.dependency_overrides[get_quota_store] = lambda: failing_store

        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"error": "Internal server error during authorization check."}
        assert fake_oracle.calls == []


class TestAnalysisOracleFailure:
    """500 responses."""

    @pytest.mark.parametrize(
        "error",
        [OracleError("AI returned malformed JSON"), RuntimeError("socket closed")],
    )
    async def test_oracle_failure_still_charges(
        self, async_client: AsyncClient, auth_headers, memory_store, fake_oracle, user_id, error
    ):
        fake_oracle.error = error

        response = await async_client.post(URL, json={"data": DATA}, headers=auth_headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Failed to generate AI analysis."}
        assert memory_store.snapshot()[_usage_path(user_id)]["count"] == 1


class TestOtherUsers:
    async def test_counters_are_per_user(
        self, async_client: AsyncClient, auth_headers_for, memory_store
    ):
        await memory_store.merge_set(_usage_path("exhausted"), {"count": 5})

        denied = await async_client.post(
            URL, json={"data": DATA}, headers=auth_headers_for("exhausted")
        )
        admitted = await async_client.post(
            URL, json={"data": DATA}, headers=auth_headers_for("fresh")
        )

        assert denied.status_code == status.HTTP_403_FORBIDDEN
        assert admitted.status_code == status.HTTP_200_OK
        assert memory_store.snapshot()[_usage_path("fresh")]["count"] == 1
