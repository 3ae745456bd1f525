"""
Exception classes for the DoH domain checker.

All exceptions inherit from DohCheckerError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class DohCheckerError(Exception):
    """Base exception for all DoH domain checker errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DohCheckerError):
    """Raised when the base name or TLD list supplied by the caller is malformed."""

    pass


class ConfigurationError(DohCheckerError):
    """Raised for invalid provider or system configuration. Never retried."""

    pass


class MethodNotAllowedError(ConfigurationError):
    """Raised when a DoH request uses a method other than GET or POST."""

    pass


class TransportError(DohCheckerError):
    """Base class for failures while talking to a DoH provider."""

    pass


class NetworkError(TransportError):
    """Raised when the DoH endpoint cannot be reached."""

    pass


class DohTimeoutError(TransportError):
    """Raised when a DoH provider does not answer within the deadline."""

    pass


class DnsProtocolError(TransportError):
    """Raised on a non-2xx HTTP status or an unparseable DoH envelope."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        http_status_code: Optional[int] = None,
    ) -> None:
        super().__init__(code, message, details)
        self.http_status_code = http_status_code
