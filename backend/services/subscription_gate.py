"""
Subscription gate.

Decides per request whether a caller may run an analysis, and charges one
unit of free-tier quota for every admitted non-pro request.

The charge is a plain read-then-merge: two concurrent requests of the same
user can read the same count and both write ``count + 1``. No compare-and-set
or transaction is taken; the store only guarantees single-document atomicity.
"""

import asyncio
import logging

from core.domain.subscription import (
    AccessDecision,
    SubscriptionStatus,
    UsageCounter,
    subscription_status_path,
    usage_counter_path,
)
from core.interfaces.repositories import SERVER_TIMESTAMP, QuotaStore
from core.plans import (
    FREE_TIER_LIMIT,
    GATE_ERROR_MESSAGE,
    MISSING_USER_MESSAGE,
    PRO_ACTIVE_MESSAGE,
    free_usage_message,
    limit_exceeded_message,
)

logger = logging.getLogger(__name__)


class SubscriptionGate:
    """Applies tier and free-tier limit policy to one subject."""

    def __init__(
        self,
        store: QuotaStore,
        namespace: str,
        free_tier_limit: int = FREE_TIER_LIMIT,
    ):
        self.store = store
        self.namespace = namespace
        self.free_tier_limit = free_tier_limit

    async def evaluate(self, subject_id: str | None) -> AccessDecision:
        """
        Decide whether ``subject_id`` may proceed.

        Policy, in order: active pro admits without charge; a free-tier count
        under the limit is incremented and admitted; anything else is denied.
        Storage faults deny.
        """
        if not subject_id:
            return AccessDecision(can_proceed=False, reason=MISSING_USER_MESSAGE)

        status_path = subscription_status_path(self.namespace, subject_id)
        usage_path = usage_counter_path(self.namespace, subject_id)

        try:
            status_doc, usage_doc = await asyncio.gather(
                self.store.get(status_path),
                self.store.get(usage_path),
            )
            status = SubscriptionStatus.from_document(status_doc)
            usage = UsageCounter.from_document(usage_doc)

            if status.is_active_pro:
                return AccessDecision(can_proceed=True, reason=PRO_ACTIVE_MESSAGE)

            if usage.count < self.free_tier_limit:
                new_count = usage.count + 1
                await self.store.merge_set(
                    usage_path,
                    {"count": new_count, "last_use": SERVER_TIMESTAMP},
                )
                return AccessDecision(
                    can_proceed=True,
                    reason=free_usage_message(new_count, self.free_tier_limit),
                )

            return AccessDecision(
                can_proceed=False,
                reason=limit_exceeded_message(usage.count, self.free_tier_limit),
            )

        except Exception as e:
            logger.error(
                "Error checking subscription for user %s: %s",
                subject_id,
                e,
                exc_info=True,
                extra={"user_id": subject_id},
            )
            return AccessDecision(can_proceed=False, reason=GATE_ERROR_MESSAGE)
