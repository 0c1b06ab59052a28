"""
PayPal webhook adapter.

Parses PayPal subscription webhook payloads into PaymentEvent objects.
The caller's user id travels through checkout as ``custom_id`` and comes back
either on the subscriber object or on the resource itself.

Signature verification is not done here; it must happen upstream before the
payload reaches this module.
"""

import json
import logging
from typing import Any

from core.domain.subscription import PaymentEvent
from core.exceptions import WebhookShapeError

logger = logging.getLogger(__name__)


class PayPalWebhookError(WebhookShapeError):
    """Raised when a PayPal webhook payload cannot be parsed."""

    pass


def extract_subject_id(resource: Any) -> str | None:
    """Return the user id from ``resource.subscriber.custom_id`` or ``resource.custom_id``."""
    if not isinstance(resource, dict):
        return None

    subscriber = resource.get("subscriber")
    if isinstance(subscriber, dict):
        custom_id = subscriber.get("custom_id")
        if isinstance(custom_id, str) and custom_id.strip():
            return custom_id.strip()

    custom_id = resource.get("custom_id")
    if isinstance(custom_id, str) and custom_id.strip():
        return custom_id.strip()

    return None


def parse_webhook_event(payload: Any) -> PaymentEvent:
    """
    Parse a decoded webhook payload into a PaymentEvent.

    Args:
        payload: Webhook body decoded from JSON

    Returns:
        PaymentEvent for the ledger

    Raises:
        PayPalWebhookError: If event_type or the user id is missing
    """
    if not isinstance(payload, dict):
        raise PayPalWebhookError("Invalid webhook structure")

    event_type = payload.get("event_type")
    if not isinstance(event_type, str) or not event_type.strip():
        logger.error("Invalid PayPal webhook structure: Missing event_type")
        raise PayPalWebhookError("Invalid webhook structure")
    event_type = event_type.strip()

    resource = payload.get("resource")
    subject_id = extract_subject_id(resource)
    if not subject_id:
        logger.error("Could not extract user ID from PayPal payload for event: %s", event_type)
        raise PayPalWebhookError("Missing user ID in payload")

    subscription_id = resource.get("id")
    return PaymentEvent(
        event_type=event_type,
        subject_id=subject_id,
        provider_subscription_id=str(subscription_id) if subscription_id else None,
    )


def parse_webhook_body(body: bytes) -> PaymentEvent:
    """Decode a raw webhook body and parse it.

    Raises:
        PayPalWebhookError: If the body is not JSON or the payload is malformed
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        logger.error("Invalid JSON in webhook payload: %s", e)
        raise PayPalWebhookError("Invalid webhook payload") from e
    return parse_webhook_event(payload)
