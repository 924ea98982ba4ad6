"""Personal access token authentication via the server's `/rest/tokens` endpoint.

The personal access token is already presentable as a bearer credential, so
the exchange step is optional: when the endpoint refuses to mint (401/403) or
cannot be reached, the personal token itself is cached as the access token.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ConfigError
from .provider import AuthProvider, Clock
from .tokens import (
    AuthResult,
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    USER_AGENT,
    extract_base_url,
    parse_error_body,
    parse_expires_in,
)

logger = logging.getLogger(__name__)

BYPASS_STATUSES = (401, 403)


class DirectTokenAuth(AuthProvider):
    """Personal access token exchange with soft-fail fallbacks.

    Usage:
        auth = DirectTokenAuth(
            server_url="https://devops.example.com/test",
            personal_access_token="pat_...",
        )
        header = await auth.get_authorization_header()
    """

    scheme = "direct"

    def __init__(
        self,
        server_url: str,
        personal_access_token: str | None,
        allow_unexchanged_fallback: bool = True,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        super().__init__(clock=clock, transport=transport, timeout=timeout)
        self.server_url = server_url
        self.personal_access_token = personal_access_token
        self.allow_unexchanged_fallback = allow_unexchanged_fallback

        self.base_url = extract_base_url(server_url)
        self._token_endpoint = f"{self.base_url}/rest/tokens"

        logger.info(
            "Direct token auth initialized (endpoint=%s, personal_token=%s)",
            self._token_endpoint,
            "set" if personal_access_token else "unset",
        )

    @property
    def token_endpoint(self) -> str:
        return self._token_endpoint

    def _use_personal_token(self, note: str) -> AuthResult:
        """Cache the personal token itself with the default lifetime."""
        self.state.update(
            access_token=self.personal_access_token,
            expires_at=self._expiry_from(DEFAULT_TOKEN_LIFETIME_SECONDS),
        )
        return AuthResult(
            success=True,
            access_token=self.state.access_token,
            expires_in=DEFAULT_TOKEN_LIFETIME_SECONDS,
            token_type="Bearer",
            note=note,
        )

    async def authenticate_with_personal_token(self) -> AuthResult:
        """Exchange the personal access token for an access token.

        Raises:
            ConfigError: If no personal access token is configured
        """
        if not self.personal_access_token:
            raise ConfigError("Personal access token is required for authentication")

        logger.info("Requesting access token from %s", self._token_endpoint)

        try:
            async with self._http_client() as client:
                response = await client.post(
                    self._token_endpoint,
                    json={},
                    headers={
                        "Accept": "application/json",
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.personal_access_token}",
                        "User-Agent": USER_AGENT,
                    },
                )
        except httpx.HTTPError as e:
            if not self.allow_unexchanged_fallback:
                logger.warning("Network error during token exchange: %s", e)
                return AuthResult.failure("network_error", str(e) or type(e).__name__)
            logger.warning(
                "Network error during token exchange (%s), using personal access token directly",
                e,
            )
            return self._use_personal_token(
                "Token endpoint unreachable; using personal access token directly (network error fallback)"
            )

        if response.is_success:
            try:
                data: Any = response.json()
            except ValueError:
                data = {}
            if not isinstance(data, dict):
                data = {}

            # The endpoint may only validate the personal token instead of minting one.
            token = data.get("access_token") or data.get("token") or self.personal_access_token
            expires_in = parse_expires_in(data.get("expires_in")) or DEFAULT_TOKEN_LIFETIME_SECONDS
            self.state.update(access_token=token, expires_at=self._expiry_from(expires_in))
            logger.info("Token exchange succeeded (expires_in=%s)", expires_in)
            return AuthResult(
                success=True,
                access_token=token,
                expires_in=expires_in,
                token_type=data.get("token_type") or "Bearer",
            )

        if response.status_code in BYPASS_STATUSES and self.allow_unexchanged_fallback:
            logger.warning(
                "Token endpoint returned %s, using personal access token directly",
                response.status_code,
            )
            return self._use_personal_token(
                f"Token exchange bypassed after HTTP {response.status_code}; "
                "using personal access token directly"
            )

        error, description = parse_error_body(response.text)
        logger.warning(
            "Token exchange failed: %s %s (%s)", response.status_code, error, description
        )
        return AuthResult.failure(error, description, status=response.status_code)

    async def _obtain_token(self) -> AuthResult:
        return await self.authenticate_with_personal_token()
