"""
Request logging pipeline.

Orchestrates one best-effort sheet write per inbound request:
1. Decode and import the service-account key
2. Sign the token-request assertion
3. Exchange the assertion for an access token
4. Append the row

Each stage reports a StageResult; the first failure short-circuits the
rest. log_request() is the only public boundary and never raises.
"""

import inspect
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Generic, Optional, TypeVar

import aiohttp
import structlog

from src.sheetlog.config import Settings
from src.sheetlog.models.credentials import ServiceCredential
from src.sheetlog.models.records import LogRecord, RequestInfo
from src.sheetlog.core.assertion import sign_assertion
from src.sheetlog.core.constants import GoogleEndpoints
from src.sheetlog.core.exceptions import SheetLogException
from src.sheetlog.core.keys import decode_private_key, load_signing_key
from src.sheetlog.core.metrics import MetricsCollector
from src.sheetlog.core.sheets_client import SheetsAppendClient
from src.sheetlog.core.token_client import TokenExchangeClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")

STAGE_DECODE_KEY = "decode_key"
STAGE_SIGN_ASSERTION = "sign_assertion"
STAGE_EXCHANGE_TOKEN = "exchange_token"
STAGE_APPEND_ROW = "append_row"


@dataclass
class StageResult(Generic[T]):
    """Outcome of a single pipeline stage."""
    stage: str
    value: Optional[T] = None
    error: Optional[SheetLogException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class LoggingResult:
    """Outcome of one logging attempt."""
    success: bool
    failed_stage: Optional[str] = None
    error: Optional[SheetLogException] = None
    duration_ms: float = 0.0


async def _run_stage(stage: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> StageResult[Any]:
    """Run a stage, converting domain errors into a failed StageResult."""
    try:
        value = func(*args, **kwargs)
        if inspect.isawaitable(value):
            value = await value
        return StageResult(stage=stage, value=value)
    except SheetLogException as e:
        return StageResult(stage=stage, error=e)


class RequestLogger:
    """
    Writes one row per inbound request to the configured sheet.

    Nothing is shared between attempts except the pooled HTTP session;
    each attempt signs its own assertion and fetches its own token.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[aiohttp.ClientSession] = None,
        metrics: Optional[MetricsCollector] = None,
        endpoints: Optional[GoogleEndpoints] = None,
    ):
        self.settings = settings
        self.credential = ServiceCredential.from_settings(settings.google)
        self.endpoints = endpoints or settings.http.endpoints()
        self.metrics = metrics
        self.session = session
        self._owns_session = False

        logger.info(
            "Request logger initialized",
            token_url=self.endpoints.token_url,
            sheets_base_url=self.endpoints.sheets_base_url,
            missing_config=settings.google.missing_fields(),
        )

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.settings.http.timeout_seconds)

    async def start(self) -> None:
        """Open the pooled HTTP session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(timeout=self._client_timeout())
        self._owns_session = True
        logger.info("Request logger started")

    async def stop(self) -> None:
        """Close the pooled HTTP session if this logger opened it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None
            self._owns_session = False

        logger.info("Request logger stopped")

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self.session is not None:
            yield self.session
            return

        # Not started: use a throwaway session for this attempt
        async with aiohttp.ClientSession(timeout=self._client_timeout()) as session:
            yield session

    async def run(self, record: LogRecord) -> LoggingResult:
        """
        Run the pipeline for one record.

        Domain failures come back as an unsuccessful LoggingResult.
        Anything else propagates to the caller.
        """
        start = time.perf_counter()

        def finish(failed: Optional[StageResult[Any]] = None) -> LoggingResult:
            duration_ms = (time.perf_counter() - start) * 1000
            if failed is None:
                return LoggingResult(success=True, duration_ms=duration_ms)
            return LoggingResult(
                success=False,
                failed_stage=failed.stage,
                error=failed.error,
                duration_ms=duration_ms,
            )

        key = await _run_stage(
            STAGE_DECODE_KEY,
            lambda: load_signing_key(decode_private_key(self.credential.private_key_pem)),
        )
        if not key.ok:
            return finish(key)

        assertion = await _run_stage(
            STAGE_SIGN_ASSERTION,
            sign_assertion,
            self.credential.client_email,
            key.value,
            endpoints=self.endpoints,
        )
        if not assertion.ok:
            return finish(assertion)

        async with self._session_scope() as session:
            token = await _run_stage(
                STAGE_EXCHANGE_TOKEN,
                TokenExchangeClient(session, self.endpoints).exchange_for_access_token,
                assertion.value,
            )
            if not token.ok:
                return finish(token)

            appended = await _run_stage(
                STAGE_APPEND_ROW,
                SheetsAppendClient(session, self.endpoints).append_row,
                self.settings.google.sheet_id,
                self.settings.google.sheet_name,
                token.value,
                record,
            )
            if not appended.ok:
                return finish(appended)

        return finish()

    async def log_request(self, request: RequestInfo, received_at: Optional[datetime] = None) -> None:
        """
        Log the request to the sheet. Never raises; failures are only logged.
        """
        try:
            record = LogRecord.from_request(request, now=received_at)
            result = await self.run(record)
        except Exception as e:
            logger.error(
                "Failed to log request to sheet",
                stage="unexpected",
                error=str(e),
                error_type=type(e).__name__,
                method=request.method,
                url=request.url,
                exc_info=True,
            )
            if self.metrics:
                self.metrics.record_log_result(False, 0.0, stage="unexpected", error_type=type(e).__name__)
            return

        if result.success:
            logger.debug(
                "Request logged to sheet",
                method=record.method,
                url=record.url,
                duration_ms=round(result.duration_ms, 2),
            )
        else:
            error = result.error
            logger.warning(
                "Failed to log request to sheet",
                stage=result.failed_stage,
                error=str(error),
                error_type=type(error).__name__,
                error_code=error.error_code if error else None,
                details=error.details if error else {},
                method=record.method,
                url=record.url,
            )

        if self.metrics:
            self.metrics.record_log_result(
                result.success,
                result.duration_ms / 1000,
                stage=result.failed_stage,
                error_type=type(result.error).__name__ if result.error else None,
            )
