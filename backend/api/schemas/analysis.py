"""
Analysis request/response schemas.
"""

from typing import Any

from pydantic import BaseModel, Field


class AnalysisRequest(BaseModel):
    """Body of an analysis request."""

    data: Any = Field(None, description="Operational data to analyze")

    model_config = {
        "json_schema_extra": {
            "example": {
                "data": {
                    "employees": 120,
                    "electricity_kwh": 450000,
                    "fleet_vehicles": 14,
                    "annual_flights": 80,
                }
            }
        }
    }


class AnalysisResponse(BaseModel):
    """Successful analysis response."""

    success: bool = Field(True, description="Always true on a 200 response")
    message: str = Field(..., description="Subscription gate admission message (usage status)")
    result: dict[str, Any] = Field(..., description="Structured AI analysis result")


class ErrorResponse(BaseModel):
    """Error response body used by every failing endpoint."""

    error: str = Field(..., description="Human-readable error message")
