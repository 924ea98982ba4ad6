"""Keycloak-style identity broker authentication.

Exchanges a long-lived offline token for short-lived access tokens using the
OAuth2 `refresh_token` grant:

1. First call: offline token -> access token + rotating refresh token
2. Expired access token: refresh token -> new access token
3. Refresh rejected or unreachable: back to the offline token
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ConfigError
from .provider import AuthProvider, Clock
from .tokens import (
    AuthResult,
    USER_AGENT,
    extract_base_url,
    parse_error_body,
    parse_expires_in,
)

logger = logging.getLogger(__name__)

DEFAULT_REALM = "devops-automation"


class BrokeredAuth(AuthProvider):
    """Offline-token exchange against an identity broker's token endpoint.

    Usage:
        auth = BrokeredAuth(
            server_url="https://devops.example.com/test/#/projects",
            client_id="testserver",
            client_secret="secret",
            offline_token="eyJ...",
        )
        header = await auth.get_authorization_header()
    """

    scheme = "brokered"

    def __init__(
        self,
        server_url: str,
        client_id: str | None,
        offline_token: str | None,
        client_secret: str | None = None,
        realm: str | None = None,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        super().__init__(clock=clock, transport=transport, timeout=timeout)
        self.server_url = server_url
        self.realm = realm or DEFAULT_REALM
        self.client_id = client_id
        self.client_secret = client_secret
        self.offline_token = offline_token

        self.base_url = extract_base_url(server_url)
        self._token_endpoint = (
            f"{self.base_url}/auth/realms/{self.realm}/protocol/openid-connect/token"
        )

        logger.info(
            "Brokered auth initialized (realm=%s, client_id=%s, endpoint=%s)",
            self.realm,
            self.client_id,
            self._token_endpoint,
        )

    @property
    def token_endpoint(self) -> str:
        return self._token_endpoint

    def _grant_form(self, refresh_token: str) -> dict[str, str]:
        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
        }
        # Public clients have no secret; confidential ones must send it.
        if self.client_secret:
            form["client_secret"] = self.client_secret
        return form

    async def _post_grant(self, refresh_token: str) -> httpx.Response:
        async with self._http_client() as client:
            return await client.post(
                self._token_endpoint,
                data=self._grant_form(refresh_token),
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/x-www-form-urlencoded",
                    "User-Agent": USER_AGENT,
                },
            )

    def _store_success(self, response: httpx.Response) -> AuthResult:
        """Cache tokens from a 2xx body, or report why they are unusable."""
        try:
            data: Any = response.json()
        except ValueError:
            return AuthResult.failure(
                "invalid_response", response.text[:500], status=response.status_code
            )
        if not isinstance(data, dict) or not data.get("access_token"):
            return AuthResult.failure(
                "invalid_response",
                "Token response did not contain an access_token",
                status=response.status_code,
            )

        expires_in = parse_expires_in(data.get("expires_in"))
        self.state.update(
            access_token=data["access_token"],
            expires_at=self._expiry_from(expires_in),
            refresh_token=data.get("refresh_token"),
        )
        return AuthResult(
            success=True,
            access_token=self.state.access_token,
            refresh_token=self.state.refresh_token,
            expires_in=expires_in,
            token_type=data.get("token_type"),
        )

    async def authenticate_with_offline_token(self) -> AuthResult:
        """Exchange the offline token for an access token.

        Returns:
            AuthResult; failures carry the HTTP status and broker error

        Raises:
            ConfigError: If the offline token or client id is not configured
        """
        if not self.offline_token:
            raise ConfigError("Offline token is required for authentication")
        if not self.client_id:
            raise ConfigError("Client ID is required for authentication")

        logger.info(
            "Exchanging offline token (client_id=%s, client_secret=%s)",
            self.client_id,
            "set" if self.client_secret else "unset",
        )

        try:
            response = await self._post_grant(self.offline_token)
        except httpx.HTTPError as e:
            logger.warning("Network error during offline token exchange: %s", e)
            return AuthResult.failure("network_error", str(e) or type(e).__name__)

        if response.is_success:
            result = self._store_success(response)
            if result.success:
                logger.info(
                    "Offline token exchange succeeded (expires_in=%s, refresh_token=%s)",
                    result.expires_in,
                    "yes" if result.refresh_token else "no",
                )
            else:
                logger.warning("Offline token exchange returned unusable body: %s", result.message)
            return result

        error, description = parse_error_body(response.text)
        logger.warning(
            "Offline token exchange failed: %s %s (%s)",
            response.status_code,
            error,
            description,
        )
        return AuthResult.failure(error, description, status=response.status_code)

    async def refresh_access_token(self) -> AuthResult:
        """Refresh the access token, falling back to the offline token.

        A rejected or unreachable refresh is never surfaced; the offline token
        is the credential of last resort.
        """
        if not self.state.refresh_token:
            logger.info("No refresh token cached, using offline token")
            return await self.authenticate_with_offline_token()

        logger.info("Refreshing access token")
        try:
            response = await self._post_grant(self.state.refresh_token)
        except httpx.HTTPError as e:
            logger.warning("Token refresh error (%s), falling back to offline token", e)
            return await self.authenticate_with_offline_token()

        if response.is_success:
            result = self._store_success(response)
            if result.success:
                logger.info("Token refresh succeeded (expires_in=%s)", result.expires_in)
                return result
            logger.warning(
                "Token refresh returned unusable body (%s), falling back to offline token",
                result.message,
            )
            return await self.authenticate_with_offline_token()

        logger.warning(
            "Token refresh failed with status %s, falling back to offline token",
            response.status_code,
        )
        return await self.authenticate_with_offline_token()

    async def _obtain_token(self) -> AuthResult:
        if self.state.refresh_token:
            return await self.refresh_access_token()
        return await self.authenticate_with_offline_token()
