"""
Tests for request snapshots and sheet rows.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.sheetlog.models.records import LogRecord, RequestInfo, isoformat_utc


class TestLogRecord:
    """Test LogRecord construction and row layout."""

    def test_from_request_stamps_given_time(self) -> None:
        info = RequestInfo(method="DELETE", url="https://edge.example.com/items/7")
        record = LogRecord.from_request(info, now=datetime(2026, 10, 18, 9, 30, 0, 123456, tzinfo=timezone.utc))

        assert record.timestamp == "2026-10-18T09:30:00.123Z"
        assert record.as_row() == ["2026-10-18T09:30:00.123Z", "DELETE", "https://edge.example.com/items/7"]

    def test_from_request_defaults_to_now(self) -> None:
        before = datetime.now(timezone.utc).replace(microsecond=0)
        record = LogRecord.from_request(RequestInfo(method="GET", url="http://x/"))

        stamped = datetime.fromisoformat(record.timestamp.replace("Z", "+00:00"))
        assert stamped >= before
        assert record.timestamp.endswith("Z")

    def test_records_are_immutable(self) -> None:
        record = LogRecord(timestamp="t", method="GET", url="u")

        with pytest.raises(ValidationError):
            record.method = "POST"  # type: ignore[misc]


class TestIsoformatUtc:
    """Test timestamp formatting."""

    def test_converts_offsets_to_utc(self) -> None:
        moment = datetime(2026, 10, 18, 11, 30, tzinfo=timezone(timedelta(hours=2)))

        assert isoformat_utc(moment) == "2026-10-18T09:30:00.000Z"

    def test_naive_is_treated_as_utc(self) -> None:
        assert isoformat_utc(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05.000Z"
