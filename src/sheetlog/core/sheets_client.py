"""
Sheets API append client.

Appends one row per call via:

    POST /v4/spreadsheets/{sheet_id}/values/{sheet_name}!A1:append?valueInputOption=RAW
"""

import asyncio
from urllib.parse import quote

import aiohttp
import structlog
from yarl import URL

from src.sheetlog.models.records import LogRecord
from src.sheetlog.core.constants import DEFAULT_ENDPOINTS, GoogleEndpoints
from src.sheetlog.core.exceptions import ApiError, ConfigError, TransportError

logger = structlog.get_logger(__name__)

# Characters encodeURIComponent leaves alone besides the ones quote() always keeps
_URI_COMPONENT_SAFE = "!*'()"


def encode_sheet_name(sheet_name: str) -> str:
    """Percent-encode a sheet name for use as a single URL path component."""
    return quote(sheet_name, safe=_URI_COMPONENT_SAFE)


class SheetsAppendClient:
    """Authenticated row appends against the Sheets values API."""

    def __init__(self, session: aiohttp.ClientSession, endpoints: GoogleEndpoints = DEFAULT_ENDPOINTS):
        self.session = session
        self.endpoints = endpoints

    def append_url(self, sheet_id: str, sheet_name: str) -> str:
        """Fully encoded append endpoint URL for the given sheet/tab."""
        return (
            f"{self.endpoints.sheets_base_url}/v4/spreadsheets/{sheet_id}"
            f"/values/{encode_sheet_name(sheet_name)}!A1:append"
            f"?valueInputOption={self.endpoints.value_input_option}"
        )

    async def append_row(self, sheet_id: str, sheet_name: str, token: str, record: LogRecord) -> None:
        """
        Append the record as one row.

        Raises:
            ConfigError: Missing sheet id or sheet name.
            ApiError: The Sheets API answered with a non-2xx status.
            TransportError: The Sheets API could not be reached.
        """
        if not sheet_id or not sheet_name:
            raise ConfigError(
                "missing sheet configuration",
                details={"sheet_id_set": bool(sheet_id), "sheet_name_set": bool(sheet_name)},
            )

        url = self.append_url(sheet_id, sheet_name)
        payload = {
            "values": [record.as_row()],
            "majorDimension": "ROWS",
        }
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        try:
            # URL is already percent-encoded; keep yarl from re-quoting it
            async with self.session.post(URL(url, encoded=True), json=payload, headers=headers) as response:
                status = response.status
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError("sheets endpoint unreachable", url=url, cause=e) from e

        if not 200 <= status < 300:
            logger.warning("Sheets API returned error", status=status, error=body[:200])
            raise ApiError(status, body)

        logger.debug("Row appended", sheet_id=sheet_id, sheet_name=sheet_name)
