"""Subscription domain entities."""
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional


class SubscriptionTier(StrEnum):
    """Available subscription tiers."""
    FREE = "free"
    PRO = "pro"


class SubscriptionState(StrEnum):
    """Lifecycle states written to the subscription document."""
    UNKNOWN = "unknown"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PaymentEventType(StrEnum):
    """PayPal subscription events the ledger reacts to."""
    SUBSCRIPTION_ACTIVATED = "BILLING.SUBSCRIPTION.ACTIVATED"
    SUBSCRIPTION_CANCELLED = "BILLING.SUBSCRIPTION.CANCELLED"
    SUBSCRIPTION_EXPIRED = "BILLING.SUBSCRIPTION.EXPIRED"


def subscription_status_path(namespace: str, subject_id: str) -> str:
    """Store path of a user's subscription status document."""
    return f"artifacts/{namespace}/users/{subject_id}/subscriptions/status"


def usage_counter_path(namespace: str, subject_id: str) -> str:
    """Store path of a user's analysis usage counter document."""
    return f"artifacts/{namespace}/users/{subject_id}/usage/analysis_count"


@dataclass
class SubscriptionStatus:
    """Subscription status document.

    ``tier == pro`` only counts while ``status == active``; see ``is_active_pro``.
    """

    tier: SubscriptionTier = SubscriptionTier.FREE
    status: str = SubscriptionState.UNKNOWN.value
    paypal_id: Optional[str] = None
    updated_at: Optional[datetime | str] = None

    @classmethod
    def from_document(cls, doc: Optional[dict[str, Any]]) -> "SubscriptionStatus":
        """Build from a stored document; an absent document yields the free default."""
        if not doc:
            return cls()
        try:
            tier = SubscriptionTier(doc.get("tier") or SubscriptionTier.FREE.value)
        except ValueError:
            tier = SubscriptionTier.FREE
        return cls(
            tier=tier,
            status=str(doc.get("status") or SubscriptionState.UNKNOWN.value),
            paypal_id=doc.get("paypal_id"),
            updated_at=doc.get("updated_at"),
        )

    @property
    def is_active_pro(self) -> bool:
        return self.tier == SubscriptionTier.PRO and self.status == SubscriptionState.ACTIVE


@dataclass
class UsageCounter:
    """Usage counter document. ``count`` never decreases."""

    count: int = 0
    last_use: Optional[datetime | str] = None

    @classmethod
    def from_document(cls, doc: Optional[dict[str, Any]]) -> "UsageCounter":
        """Build from a stored document; an absent document yields ``count=0``.

        Raises:
            ValueError: If the stored count is not a non-negative integer
        """
        if not doc:
            return cls()
        raw = doc.get("count", 0)
        if isinstance(raw, bool) or not isinstance(raw, (int, str)):
            raise ValueError(f"Invalid usage count: {raw!r}")
        count = int(raw)
        if count < 0:
            raise ValueError(f"Negative usage count: {count}")
        return cls(count=count, last_use=doc.get("last_use"))


@dataclass(frozen=True)
class AccessDecision:
    """Per-request admission decision produced by the subscription gate."""

    can_proceed: bool
    reason: str


@dataclass(frozen=True)
class PaymentEvent:
    """Verified payment-provider event handed to the usage ledger."""

    event_type: str
    subject_id: str
    provider_subscription_id: Optional[str] = None
