# Domain Entities
# Pure business objects with no external dependencies
from .subscription import (
    AccessDecision,
    PaymentEvent,
    PaymentEventType,
    SubscriptionState,
    SubscriptionStatus,
    SubscriptionTier,
    UsageCounter,
    subscription_status_path,
    usage_counter_path,
)

__all__ = [
    "AccessDecision",
    "PaymentEvent",
    "PaymentEventType",
    "SubscriptionState",
    "SubscriptionStatus",
    "SubscriptionTier",
    "UsageCounter",
    "subscription_status_path",
    "usage_counter_path",
]
