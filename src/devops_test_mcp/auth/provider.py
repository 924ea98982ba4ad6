"""Base class for bearer-token providers.

Both auth schemes share the same cache, expiry policy and header contract;
subclasses only decide how a fresh token is obtained.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import httpx

from .errors import ExchangeError, NetworkError
from .tokens import AuthResult, EXPIRY_BUFFER_SECONDS, TokenState

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class AuthProvider(ABC):
    """Owns a TokenState and hands out `Authorization` header values.

    Usage:
        auth = DirectTokenAuth(server_url=..., personal_access_token=...)
        headers = {"Authorization": await auth.get_authorization_header()}

    Concurrent callers that find the cache stale queue on a lock, so only one
    exchange is in flight per provider.
    """

    #: Short name used in logs and status output.
    scheme = "token"

    def __init__(
        self,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.clock: Clock = clock or time.time
        self.state = TokenState()
        self._transport = transport
        self._timeout = timeout
        self._lock = asyncio.Lock()

    @property
    @abstractmethod
    def token_endpoint(self) -> str:
        """URL the scheme exchanges credentials at."""

    def _http_client(self) -> httpx.AsyncClient:
        """New client for a single token request."""
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _expiry_from(self, expires_in: int | None) -> float | None:
        if expires_in is None:
            return None
        return self.clock() + expires_in

    def has_valid_token(self) -> bool:
        """True if a cached token exists and is not within 60s of expiry."""
        return self.state.is_valid(self.clock(), EXPIRY_BUFFER_SECONDS)

    @abstractmethod
    async def _obtain_token(self) -> AuthResult:
        """Run the scheme-specific exchange for a stale or empty cache."""

    async def get_access_token(self) -> AuthResult:
        """Get a usable access token, exchanging only when needed."""
        if self.has_valid_token():
            logger.debug("Using cached %s access token", self.scheme)
            return AuthResult(success=True, access_token=self.state.access_token)

        async with self._lock:
            # Another caller may have finished an exchange while we waited.
            if self.has_valid_token():
                logger.debug("Using %s access token obtained by concurrent caller", self.scheme)
                return AuthResult(success=True, access_token=self.state.access_token)

            logger.info("Access token expired or missing, obtaining new %s token", self.scheme)
            return await self._obtain_token()

    async def get_authorization_header(self) -> str:
        """Get the `Authorization` header value for downstream requests.

        Raises:
            ExchangeError: If the token endpoint rejected every attempt
            NetworkError: If the token endpoint could not be reached
        """
        result = await self.get_access_token()
        if result.success and result.access_token:
            return f"Bearer {result.access_token}"

        message = f"Authentication failed: {result.message}"
        error_cls = NetworkError if result.error == "network_error" else ExchangeError
        raise error_cls(
            message,
            error_code=result.error,
            status=result.status,
            details={"error_description": result.error_description},
        )

    def clear_tokens(self) -> None:
        """Drop all cached tokens."""
        self.state.clear()
        logger.info("Cleared cached %s tokens", self.scheme)

    def get_status(self) -> dict:
        """Describe the cache without exposing token values."""
        expires_at = self.state.expires_at
        return {
            "scheme": self.scheme,
            "token_endpoint": self.token_endpoint,
            "has_access_token": bool(self.state.access_token),
            "has_refresh_token": bool(self.state.refresh_token),
            "expires_in_seconds": (
                max(0, int(expires_at - self.clock())) if expires_at is not None else None
            ),
            "valid": self.has_valid_token(),
        }
