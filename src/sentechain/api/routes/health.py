"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from sentechain import __version__
from sentechain.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    settings = get_settings()
    store = getattr(request.app.state, "user_store", None)
    return {
        "status": "ok",
        "service": "sentechain",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "storage": store.name if store is not None else "uninitialized",
        "config": settings.get_safe_dict(),
    }
