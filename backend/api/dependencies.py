"""
API dependencies: collaborator construction and caller authentication.

Every collaborator is resolved through FastAPI's dependency system so tests
can swap any of them with ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header

from adapters.ai.anthropic_adapter import AnthropicAnalysisService
from adapters.identity import create_identity_verifier
from core.exceptions import AuthenticationError
from core.interfaces.repositories import QuotaStore
from core.interfaces.services import AnalysisOracle, IdentityVerifier
from infrastructure.config.settings import settings
from infrastructure.store import create_quota_store
from services.analysis_orchestrator import AnalysisOrchestrator
from services.subscription_gate import SubscriptionGate
from services.usage_ledger import UsageLedgerUpdater

_quota_store: QuotaStore | None = None


def get_quota_store() -> QuotaStore:
    """Return the process-wide quota store, creating it on first use."""
    global _quota_store
    if _quota_store is None:
        _quota_store = create_quota_store(settings)
    return _quota_store


async def close_quota_store() -> None:
    """Close the process-wide quota store if one was created."""
    global _quota_store
    if _quota_store is not None:
        await _quota_store.close()
        _quota_store = None


@lru_cache
def get_identity_verifier() -> IdentityVerifier:
    return create_identity_verifier(settings)


@lru_cache
def get_analysis_oracle() -> AnalysisOracle:
    return AnthropicAnalysisService()


def get_subscription_gate(
    store: Annotated[QuotaStore, Depends(get_quota_store)],
) -> SubscriptionGate:
    return SubscriptionGate(
        store=store,
        namespace=settings.app_namespace,
        free_tier_limit=settings.free_tier_limit,
    )


def get_usage_ledger(
    store: Annotated[QuotaStore, Depends(get_quota_store)],
) -> UsageLedgerUpdater:
    return UsageLedgerUpdater(store=store, namespace=settings.app_namespace)


def get_analysis_orchestrator(
    identity_verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    gate: Annotated[SubscriptionGate, Depends(get_subscription_gate)],
    oracle: Annotated[AnalysisOracle, Depends(get_analysis_oracle)],
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        identity_verifier=identity_verifier,
        gate=gate,
        oracle=oracle,
        oracle_timeout=settings.oracle_timeout_seconds,
    )


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


async def get_current_subject(
    identity_verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    Dependency resolving the authenticated caller's subject id.

    Raises:
        AuthenticationError: If the header is missing or the token is rejected
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Not authenticated")
    return await identity_verifier.verify(token)
