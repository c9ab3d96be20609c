"""Health and readiness endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from fastapi import APIRouter

from ..config import get_settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict:
    """Liveness probe endpoint; also reports which backends are configured."""
    settings = get_settings()
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "orders": settings.ORDER_BACKEND,
        "storage": settings.STORAGE_BACKEND,
        "paymentsEmulated": settings.PAYMENT_GATEWAY_EMULATE or not settings.PAYMENT_GATEWAY_URL,
    }
