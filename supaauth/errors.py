"""
SupaAuth Error Classes

Every failure surfaced by the client is a SupaAuthError subclass carrying
enough detail (status + message, or the underlying cause) to act on.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class SupaAuthError(Exception):
    """Base error class for the SupaAuth client."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(SupaAuthError):
    """Configuration error (missing environment variable, empty setting)."""

    def __init__(
        self,
        message: str,
        variable: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if variable:
            merged["variable"] = variable
        super().__init__("CONFIGURATION_ERROR", message, 0, merged)
        self.variable = variable


class SerializationError(SupaAuthError):
    """Payload could not be encoded to, or decoded from, JSON."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("SERIALIZATION_ERROR", message, 0, details)


class NetworkError(SupaAuthError):
    """Network error (connection issues, DNS, TLS, timeouts)."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ):
        super().__init__("NETWORK_ERROR", message, 0, details)
        self.retryable = retryable


class HeaderError(SupaAuthError):
    """A key or token cannot be used as an HTTP header value."""

    def __init__(self, header: str, message: Optional[str] = None):
        super().__init__(
            "INVALID_HEADER",
            message or f"Invalid characters in value for header {header!r}",
            0,
            {"header": header},
        )
        self.header = header


class AuthError(SupaAuthError):
    """The auth server rejected the request.

    ``status_code`` is the HTTP status of the response and ``message`` is
    either the ``message`` of the server's error body or, when the body is
    not a recognised error envelope, the raw response text.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(error_code or "AUTH_ERROR", message, status_code, details)
        self.error_code = error_code

    def __repr__(self) -> str:
        return f"AuthError(status_code={self.status_code!r}, message={self.message!r})"


class UrlParseError(SupaAuthError):
    """An OAuth authorize URL could not be constructed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("URL_PARSE_ERROR", message, 0, details)


def is_supaauth_error(error: Any) -> bool:
    """Check if error is a SupaAuthError."""
    return isinstance(error, SupaAuthError)


def is_retryable_error(error: Any) -> bool:
    """Check if error is worth retrying. The client itself never retries."""
    if isinstance(error, NetworkError):
        return error.retryable
    if isinstance(error, AuthError):
        return error.status_code == 429 or 500 <= error.status_code < 600
    return False
