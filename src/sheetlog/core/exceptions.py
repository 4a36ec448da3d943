"""
Custom exceptions for SheetLog service.

Every failure on the sheet logging path maps to one of these types so the
request logger can report it with a stable error code and structured details.
"""

from typing import Any, Dict, Optional


class SheetLogException(Exception):
    """Base exception for SheetLog service."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ConfigError(SheetLogException):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            error_code="config_error",
            details=details,
        )


class SigningError(SheetLogException):
    """Raised when the signing primitive fails to produce an assertion."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        details = {}
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"

        super().__init__(
            message=message,
            error_code="signing_error",
            details=details,
        )
        self.cause = cause


class TransportError(SheetLogException):
    """Raised when an endpoint cannot be reached at the network level."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if url:
            details["url"] = url
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"

        super().__init__(
            message=message,
            error_code="transport_error",
            details=details,
        )
        self.url = url
        self.cause = cause


class RemoteStatusError(SheetLogException):
    """Base for errors raised when a remote endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status: int, body: str, error_code: str) -> None:
        super().__init__(
            message=f"{message}: {status} {body}",
            error_code=error_code,
            details={"status": status, "body": body},
        )
        self.status = status
        self.body = body


class AuthError(RemoteStatusError):
    """Raised when the token endpoint refuses the signed assertion."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(
            message="Failed to obtain access token",
            status=status,
            body=body,
            error_code="auth_error",
        )


class ApiError(RemoteStatusError):
    """Raised when the Sheets API refuses the append."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(
            message="Failed to append row",
            status=status,
            body=body,
            error_code="api_error",
        )
