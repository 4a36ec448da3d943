"""
Health check endpoints.

- /healthz: Liveness probe (always 200 if service alive)
- /readyz: Readiness probe (200 only if sheet logging is configured and accepting work)
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Request, Response, status

from src.sheetlog.config import get_settings

logger = structlog.get_logger(__name__)

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get(
    "/healthz",
    status_code=200,
    summary="Liveness probe",
)
async def liveness_check() -> Dict[str, Any]:
    """
    Liveness probe - always returns 200 if service is alive.
    """
    return {
        "status": "alive",
        "timestamp": _now(),
        "service": "sheetlog",
        "version": "0.1.0",
    }


@router.get(
    "/readyz",
    summary="Readiness probe",
    description="""
    Readiness probe endpoint.

    Returns 200 only if:
    - Service-account email, private key, sheet id and sheet name are configured
    - The background task registry is accepting work

    Returns 503 Service Unavailable otherwise. The greeting itself is served
    either way; this only reports whether rows can be written.
    """,
)
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    """
    Readiness probe - returns 200 only if sheet logging can run.
    """
    settings = getattr(request.app.state, "settings", None) or get_settings()
    failed_checks: List[str] = []

    missing = settings.google.missing_fields()
    if missing:
        failed_checks.append("google_config")

    background = getattr(request.app.state, "background", None)
    if background is None or not background.accepting:
        failed_checks.append("background_tasks")

    checks = {
        "google_config": {"status": "unhealthy" if missing else "healthy", "missing": missing},
        "background_tasks": {
            "status": "unhealthy" if "background_tasks" in failed_checks else "healthy",
            "pending": background.pending if background is not None else 0,
        },
    }

    if failed_checks:
        logger.warning("Readiness check failed", failed_checks=failed_checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "timestamp": _now(),
            "checks": checks,
            "failed_checks": failed_checks,
        }

    response.status_code = status.HTTP_200_OK
    return {
        "status": "ready",
        "timestamp": _now(),
        "checks": checks,
    }
