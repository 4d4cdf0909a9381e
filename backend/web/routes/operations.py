"""Operations endpoints (liveness and backing-store reachability)."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter
import structlog

from storage.ports import StoreError

from ..wiring import get_services
from .security import private_json

operations_router = APIRouter(tags=["Operations"])
logger = structlog.get_logger("trainwithus.web.operations")


@operations_router.get("/health")
async def health():
    """
    Report whether the backing store answers a trivial read.

    Returns 200 `{status: "healthy"}` or 503 `{status: "unhealthy", detail}`.
    """
    try:
        services = get_services()
        await asyncio.to_thread(services.records.ping)
    except (RuntimeError, StoreError) as exc:
        logger.warning("health_check_failed", error=str(exc))
        return private_json({"status": "unhealthy", "detail": str(exc)}, status_code=503)
    return private_json({"status": "healthy"})
