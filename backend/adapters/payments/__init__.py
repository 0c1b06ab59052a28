"""Payment adapters for subscription webhooks."""

from .paypal_adapter import (
    PayPalWebhookError,
    extract_subject_id,
    parse_webhook_body,
    parse_webhook_event,
)

__all__ = [
    "PayPalWebhookError",
    "extract_subject_id",
    "parse_webhook_body",
    "parse_webhook_event",
]
