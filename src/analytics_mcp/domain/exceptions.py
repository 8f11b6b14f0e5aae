from __future__ import annotations


class AnalyticsMcpError(Exception):
    """Base exception for all school analytics MCP errors."""


class KeySerializationError(AnalyticsMcpError):
    """Raised when cache parameters cannot be turned into a stable key."""


class ApiError(AnalyticsMcpError):
    """Raised when the upstream school API returns an unexpected HTTP error status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"Upstream API error ({status_code})")


class ValidationError(AnalyticsMcpError):
    """Raised when input parameters fail validation before any network call."""
