"""
Billing and subscription request/response schemas.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SubscriptionSummary(BaseModel):
    """Current subscription status and free-tier usage for a user."""

    subscription_tier: str = Field(..., description="Stored subscription tier (free, pro)")
    subscription_status: str = Field(
        ..., description="Stored subscription status (unknown, active, cancelled, expired)"
    )
    is_pro: bool = Field(..., description="Whether the user currently has an active Pro subscription")
    paypal_subscription_id: str | None = Field(None, description="PayPal subscription ID")
    analyses_used: int = Field(0, description="Free-tier analyses consumed so far")
    free_tier_limit: int = Field(..., description="Free-tier analysis allowance")
    analyses_remaining: int | None = Field(
        None, description="Free-tier analyses left (null for Pro users)"
    )
    last_use: datetime | None = Field(None, description="Time of the last charged analysis")
    updated_at: datetime | None = Field(None, description="Time of the last subscription change")
