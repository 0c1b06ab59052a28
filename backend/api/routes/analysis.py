"""
AI analysis route.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request

from api.dependencies import extract_bearer_token, get_analysis_orchestrator
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.analysis import AnalysisRequest, AnalysisResponse, ErrorResponse
from services.analysis_orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


async def _read_analysis_data(request: Request) -> Any:
    """Return ``data`` from the JSON body, or None when the body is unusable."""
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        logger.warning("Analysis request body is not valid JSON")
        return None
    if not isinstance(payload, dict):
        return None
    return AnalysisRequest.model_validate(payload).data


@router.post(
    "/analysis",
    response_model=AnalysisResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing token or analysis data"},
        401: {"model": ErrorResponse, "description": "Invalid authentication token"},
        403: {"model": ErrorResponse, "description": "Subscription gate denied the request"},
        500: {"model": ErrorResponse, "description": "AI analysis failed"},
    },
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": AnalysisRequest.model_json_schema()}
            },
            "required": True,
        }
    },
)
@limiter.limit(get_rate_limit("analysis"))
async def run_analysis(
    request: Request,
    orchestrator: Annotated[AnalysisOrchestrator, Depends(get_analysis_orchestrator)],
    authorization: Annotated[str | None, Header()] = None,
):
    """
    Run an AI carbon-footprint analysis.

    Requires ``Authorization: Bearer <token>`` and a body of the form
    ``{"data": {...}}``. Free-tier users are charged one analysis when the
    request is admitted, even if the AI call then fails.
    """
    token = extract_bearer_token(authorization)
    analysis_data = await _read_analysis_data(request)

    outcome = await orchestrator.run(token, analysis_data)

    logger.info(
        "Analysis completed for user %s",
        outcome.subject_id,
        extra={"user_id": outcome.subject_id},
    )
    return AnalysisResponse(success=True, message=outcome.message, result=outcome.result)
