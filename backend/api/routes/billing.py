"""
Billing and subscription API routes.
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from adapters.payments.paypal_adapter import parse_webhook_body
from api.dependencies import get_current_subject, get_quota_store, get_usage_ledger
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.analysis import ErrorResponse
from api.schemas.billing import SubscriptionSummary
from core.domain.subscription import (
    SubscriptionStatus,
    UsageCounter,
    subscription_status_path,
    usage_counter_path,
)
from core.exceptions import StorageError
from core.interfaces.repositories import QuotaStore
from infrastructure.config.settings import settings
from services.usage_ledger import UsageLedgerUpdater

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.get(
    "/subscription",
    response_model=SubscriptionSummary,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_subscription_status(
    subject_id: Annotated[str, Depends(get_current_subject)],
    store: Annotated[QuotaStore, Depends(get_quota_store)],
):
    """Get the current user's subscription status and free-tier usage. Read-only."""
    try:
        status_doc, usage_doc = await asyncio.gather(
            store.get(subscription_status_path(settings.app_namespace, subject_id)),
            store.get(usage_counter_path(settings.app_namespace, subject_id)),
        )
        subscription = SubscriptionStatus.from_document(status_doc)
        usage = UsageCounter.from_document(usage_doc)
    except ValueError as e:
        raise StorageError(f"Undecodable quota document: {e}") from e

    limit = settings.free_tier_limit
    is_pro = subscription.is_active_pro

    return SubscriptionSummary(
        subscription_tier=subscription.tier.value,
        subscription_status=subscription.status,
        is_pro=is_pro,
        paypal_subscription_id=subscription.paypal_id,
        analyses_used=usage.count,
        free_tier_limit=limit,
        analyses_remaining=None if is_pro else max(limit - usage.count, 0),
        last_use=usage.last_use,
        updated_at=subscription.updated_at,
    )


@router.post(
    "/webhook",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed payload; do not retry"},
        500: {"model": ErrorResponse, "description": "Store write failed; retry"},
    },
)
@limiter.limit(get_rate_limit("webhook"))
async def handle_webhook(
    request: Request,
    ledger: Annotated[UsageLedgerUpdater, Depends(get_usage_ledger)],
):
    """
    Handle PayPal subscription webhook events.

    - BILLING.SUBSCRIPTION.ACTIVATED: upgrade to pro/active
    - BILLING.SUBSCRIPTION.CANCELLED: downgrade to free/cancelled
    - BILLING.SUBSCRIPTION.EXPIRED: downgrade to free/expired
    - anything else: acknowledged without a write

    PayPal needs a 2xx to stop redelivering; a 500 asks it to retry.
    """
    body = await request.body()
    event = parse_webhook_body(body)

    result = await ledger.apply(event)

    logger.info(
        "Webhook processed: event=%s user_id=%s applied=%s",
        result.event_type,
        result.subject_id,
        result.applied,
        extra={"event_type": result.event_type, "user_id": result.subject_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
