# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints for health, readiness and metrics.
Pure HTTP layer with no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from roster.core.config import settings
from roster.core.dependencies import get_history_repo, get_notifier, get_registry

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_events": get_registry().count(),
        "pending_notifications": len(get_notifier().pending()),
        "history": {
            "total": get_history_repo().count(),
            "by_type": get_history_repo().count_by_type(),
        },
    }


@router.get("/health/ready")
def readiness_check():
    """Readiness probe. Reports which collaborators are configured."""
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "chat_configured": bool(settings.DISCORD_TOKEN),
        "ledger_configured": bool(settings.SHEET_ID),
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
