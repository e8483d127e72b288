"""
Shared error handling for the IP Info Gateway.
"""

from typing import Dict, Any, Optional


class GatewayException(Exception):
    """Base exception for gateway services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FetchError(GatewayException):
    """Upstream fetch failed; the caller gets no fresh record."""

    def __init__(self, message: str = "Upstream fetch failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "FETCH_ERROR"):
        super().__init__(code, message, details)


class NetworkError(FetchError):
    """The upstream could not be reached or answered with a failure status."""

    def __init__(self, message: str = "Upstream unreachable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="UPSTREAM_NETWORK_ERROR")


class ParseError(FetchError):
    """The upstream response did not match the expected schema."""

    def __init__(self, message: str = "Malformed upstream response", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="UPSTREAM_PARSE_ERROR")
