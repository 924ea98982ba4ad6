"""Token state and exchange results shared by all auth providers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from .errors import ConfigError


# Tokens expiring within this window are treated as already expired.
EXPIRY_BUFFER_SECONDS = 60

# Lifetime assumed when a token endpoint does not report `expires_in`.
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36 Edg/140.0.0.0"
)


@dataclass
class TokenState:
    """In-memory token cache owned by one auth provider."""

    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: float | None = None  # Unix timestamp

    def is_valid(self, now: float, buffer: float = EXPIRY_BUFFER_SECONDS) -> bool:
        """Check if the access token can be used for the next call.

        Unknown expiry counts as valid.
        """
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return self.expires_at > now + buffer

    def update(
        self,
        access_token: str,
        expires_at: float | None,
        refresh_token: str | None = None,
    ) -> None:
        """Replace the access token and expiry together.

        The refresh token is only replaced when a new one is supplied.
        """
        self.access_token = access_token
        self.expires_at = expires_at
        if refresh_token:
            self.refresh_token = refresh_token

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None


@dataclass
class AuthResult:
    """Outcome of a token exchange.

    Exchanges never raise for expected failures; they return one of these.
    """

    success: bool
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str | None = None
    error: str | None = None
    error_description: str | None = None
    status: int | None = None
    note: str | None = None

    @classmethod
    def failure(
        cls,
        error: str,
        error_description: str | None = None,
        status: int | None = None,
    ) -> "AuthResult":
        return cls(
            success=False,
            error=error,
            error_description=error_description,
            status=status,
        )

    @property
    def message(self) -> str:
        """Human-readable failure description."""
        return self.error_description or self.error or "unknown error"


def extract_base_url(server_url: str) -> str:
    """Reduce a server URL to `scheme://host[:port]`.

    The web UI often hands out URLs with a `/#` fragment route; that is
    stripped before parsing.

    Raises:
        ConfigError: If the URL has no scheme or host
    """
    if not server_url:
        raise ConfigError("Server URL is required")

    cleaned = server_url.replace("/#", "")
    parsed = urlparse(cleaned)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(
            f"Invalid server URL: {server_url!r}",
            details={"server_url": server_url},
        )
    return f"{parsed.scheme}://{parsed.netloc}"


def parse_error_body(text: str) -> tuple[str, str | None]:
    """Pull `error`/`error_description` out of a token endpoint error body.

    Bodies that are not JSON objects are reported as `unknown` with the raw
    text as description.
    """
    try:
        data: Any = json.loads(text)
    except ValueError:
        return "unknown", text
    if not isinstance(data, dict):
        return "unknown", text
    return data.get("error") or "unknown", data.get("error_description")


def parse_expires_in(value: Any) -> int | None:
    """Coerce an `expires_in` field to whole seconds.

    Missing or junk values give None (lifetime unknown); non-positive values
    give 0 so the token counts as already expired.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    return max(seconds, 0)
