"""Authentication errors."""

from __future__ import annotations


class AuthError(Exception):
    """Authentication-related error."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status = status
        self.details = details or {}


class ConfigError(AuthError):
    """Required credential or setting is missing or malformed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, error_code="config_error", details=details)


class ExchangeError(AuthError):
    """Token endpoint answered with a non-success status."""


class NetworkError(AuthError):
    """No response could be obtained from the token endpoint."""
