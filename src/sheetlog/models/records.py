"""
Request snapshot and sheet row models.

- RequestInfo is captured on the request path, before the response is returned
- LogRecord is the row appended to the sheet: timestamp, method, url
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def isoformat_utc(moment: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RequestInfo(BaseModel):
    """The parts of an inbound request that get logged."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="HTTP method of the inbound request")
    url: str = Field(description="Full URL of the inbound request")


class LogRecord(BaseModel):
    """One row in the request log sheet."""

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(description="ISO-8601 UTC timestamp, e.g. 2026-10-18T09:30:00.123Z")
    method: str
    url: str

    @classmethod
    def from_request(cls, info: RequestInfo, now: Optional[datetime] = None) -> "LogRecord":
        """Stamp a request snapshot with the current (or given) time."""
        moment = now or datetime.now(timezone.utc)
        return cls(timestamp=isoformat_utc(moment), method=info.method, url=info.url)

    def as_row(self) -> List[str]:
        """Cell values in sheet column order."""
        return [self.timestamp, self.method, self.url]
