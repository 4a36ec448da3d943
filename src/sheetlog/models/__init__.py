"""
Pydantic data models package.

Contains the data models for:
- Service-account credentials
- Inbound request snapshots and sheet rows
"""

from src.sheetlog.models.credentials import ServiceCredential
from src.sheetlog.models.records import LogRecord, RequestInfo

__all__ = [
    "ServiceCredential",
    "RequestInfo",
    "LogRecord",
]
