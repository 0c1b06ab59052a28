"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import get_quota_store
from core.interfaces.repositories import QuotaStore
from infrastructure.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/store")
async def health_check_store(store: Annotated[QuotaStore, Depends(get_quota_store)]):
    """Health check with quota store connectivity."""
    try:
        reachable = await asyncio.wait_for(store.ping(), timeout=5.0)
        store_status = "connected" if reachable else "error: store unreachable"
    except TimeoutError:
        logger.error("Health check store timeout")
        store_status = "error: store timeout"
    except Exception as e:
        logger.error("Health check store error: %s", str(e))
        store_status = "error: store check failed"

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "store_backend": settings.quota_store_backend,
        "store": store_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }
