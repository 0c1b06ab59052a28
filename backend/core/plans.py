"""
Plan configuration for subscription tiers.

This module is the single source of truth for quota limits and the
user-facing gate messages. It lives in core/ so both service and API layers
can import from it without creating circular dependencies.
"""

# Analyses a free-tier user may run before being asked to upgrade
FREE_TIER_LIMIT = 5

# Gate reasons
MISSING_USER_MESSAGE = "User ID is required for authorization."
PRO_ACTIVE_MESSAGE = "Pro subscription active."
GATE_ERROR_MESSAGE = "Internal server error during authorization check."


def free_usage_message(used: int, limit: int = FREE_TIER_LIMIT) -> str:
    """Admission reason for a free-tier request that consumed one unit."""
    return f"Free tier usage: {used}/{limit} analyses used."


def limit_exceeded_message(used: int, limit: int = FREE_TIER_LIMIT) -> str:
    """Denial reason once the free tier is exhausted."""
    return (
        f"Free tier limit of {limit} analyses exceeded. Please upgrade to Pro. "
        f"({used}/{limit} analyses used)"
    )

