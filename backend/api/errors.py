"""
Mapping from the relay error taxonomy to HTTP responses.

Every error body has the shape ``{"error": <public message>}``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from core.exceptions import (
    AuthenticationError,
    AuthorizationDenied,
    OracleError,
    RelayError,
    StorageError,
    ValidationError,
    WebhookShapeError,
    WebhookStorageError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[RelayError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationDenied: status.HTTP_403_FORBIDDEN,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OracleError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    WebhookShapeError: status.HTTP_400_BAD_REQUEST,
    WebhookStorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(exc: RelayError) -> int:
    """Return the status code for ``exc``, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    status_code = status_code_for(exc)
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    if status_code >= 500:
        logger.error(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc
        )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.to_public_message()},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelayError, relay_error_handler)
