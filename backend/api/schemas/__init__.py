"""
API request and response schemas.
"""

from .analysis import AnalysisRequest, AnalysisResponse, ErrorResponse
from .billing import SubscriptionSummary

__all__ = [
    "AnalysisRequest",
    "AnalysisResponse",
    "ErrorResponse",
    "SubscriptionSummary",
]
