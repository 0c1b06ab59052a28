"""
Usage ledger updater.

Maps verified payment events onto the subscription status document.
Writes are merge-writes, so fields a transition does not name (for example
``paypal_id`` on a cancellation) are left as they were. Redelivered events
re-apply the same transition; no event-id de-duplication is done.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.domain.subscription import (
    PaymentEvent,
    PaymentEventType,
    SubscriptionState,
    SubscriptionTier,
    subscription_status_path,
)
from core.exceptions import WebhookShapeError, WebhookStorageError
from core.interfaces.repositories import SERVER_TIMESTAMP, QuotaStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of applying one payment event."""

    event_type: str
    subject_id: str
    applied: bool
    tier: Optional[str] = None
    status: Optional[str] = None


# event_type -> (tier, status)
TRANSITIONS: dict[str, tuple[SubscriptionTier, SubscriptionState]] = {
    PaymentEventType.SUBSCRIPTION_ACTIVATED.value: (
        SubscriptionTier.PRO,
        SubscriptionState.ACTIVE,
    ),
    PaymentEventType.SUBSCRIPTION_CANCELLED.value: (
        SubscriptionTier.FREE,
        SubscriptionState.CANCELLED,
    ),
    PaymentEventType.SUBSCRIPTION_EXPIRED.value: (
        SubscriptionTier.FREE,
        SubscriptionState.EXPIRED,
    ),
}


def build_transition_fields(event: PaymentEvent) -> dict[str, Any] | None:
    """Return the fields to merge for ``event``, or None for a no-op event."""
    transition = TRANSITIONS.get(event.event_type)
    if transition is None:
        return None

    tier, state = transition
    fields: dict[str, Any] = {
        "tier": tier.value,
        "status": state.value,
        "updated_at": SERVER_TIMESTAMP,
    }
    if event.event_type == PaymentEventType.SUBSCRIPTION_ACTIVATED:
        # Stamped at activation; the billing period end is not in the payload
        fields["expires_at"] = SERVER_TIMESTAMP
        if event.provider_subscription_id:
            fields["paypal_id"] = event.provider_subscription_id
    return fields


class UsageLedgerUpdater:
    """Applies payment events to subscription status documents."""

    def __init__(self, store: QuotaStore, namespace: str):
        self.store = store
        self.namespace = namespace

    async def apply(self, event: PaymentEvent) -> LedgerResult:
        """
        Apply one payment event.

        Returns:
            LedgerResult; ``applied`` is False for acknowledged no-op events

        Raises:
            WebhookShapeError: If the event has no subject
            WebhookStorageError: If the store write fails (retryable)
        """
        if not event.subject_id:
            raise WebhookShapeError("Missing user ID in payload")

        logger.info(
            "Processing PayPal event: %s for User ID: %s",
            event.event_type,
            event.subject_id,
            extra={"event_type": event.event_type, "user_id": event.subject_id},
        )

        fields = build_transition_fields(event)
        if fields is None:
            logger.info(
                "Received acknowledged event: %s. No tier change required.", event.event_type
            )
            return LedgerResult(
                event_type=event.event_type,
                subject_id=event.subject_id,
                applied=False,
            )

        path = subscription_status_path(self.namespace, event.subject_id)
        try:
            await self.store.merge_set(path, fields)
        except Exception as e:
            logger.error(
                "Subscription update failed for user %s: %s",
                event.subject_id,
                e,
                exc_info=True,
                extra={"user_id": event.subject_id},
            )
            raise WebhookStorageError() from e

        if fields["tier"] == SubscriptionTier.PRO.value:
            logger.info("User %s upgraded to PRO.", event.subject_id)
        else:
            logger.info(
                "User %s downgraded to FREE due to %s.", event.subject_id, event.event_type
            )

        return LedgerResult(
            event_type=event.event_type,
            subject_id=event.subject_id,
            applied=True,
            tier=fields["tier"],
            status=fields["status"],
        )
