"""
Catch-all greeting endpoint.

Every method and path gets the same plaintext greeting. Before returning,
the handler registers a background task that logs the request to the sheet.
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from src.sheetlog.config import get_settings
from src.sheetlog.models.records import RequestInfo

logger = structlog.get_logger(__name__)

router = APIRouter()


def schedule_request_log(request: Request) -> None:
    """Hand the logging coroutine to the host's wait_until hook."""
    state = request.app.state
    request_logger = getattr(state, "request_logger", None)
    background = getattr(state, "background", None)

    if request_logger is None or background is None:
        logger.warning("Request logging not initialized", path=request.url.path)
        return

    info = RequestInfo(method=request.method, url=str(request.url))
    background.wait_until(
        request_logger.log_request(info, received_at=datetime.now(timezone.utc))
    )


async def greet(request: Request) -> PlainTextResponse:
    """
    Return the fixed greeting, logging the request in the background.

    The response never depends on the outcome of the logging task.
    """
    try:
        schedule_request_log(request)
    except Exception as e:
        logger.error(
            "Failed to schedule request log",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )

    metrics = getattr(request.app.state, "metrics", None)
    if metrics:
        metrics.record_request(request.method)

    settings = getattr(request.app.state, "settings", None) or get_settings()
    return PlainTextResponse(settings.greeting, status_code=200)


# No method set: extension methods such as PURGE match as well
router.add_route("/{path:path}", greet, include_in_schema=False)
