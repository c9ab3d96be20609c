"""Runtime config endpoint for frontend consumption."""
from __future__ import annotations

from fastapi import APIRouter

from ..config import get_settings
from ..models import Limits

router = APIRouter(tags=["config"])


@router.get("/config", response_model=Limits)
async def get_config() -> Limits:
    """Expose non-sensitive upload limits so the client can pre-check files."""
    settings = get_settings()
    return Limits(
        maxFiles=settings.MAX_FILES,
        maxSizeMb=settings.MAX_SIZE_MB,
        acceptedMime=settings.ACCEPTED_MIME,
    )
