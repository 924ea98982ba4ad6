"""Build the configured auth provider from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .brokered import BrokeredAuth
from .direct import DirectTokenAuth
from .errors import ConfigError
from .provider import AuthProvider

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

# Confidential broker client that always needs a secret.
CONFIDENTIAL_CLIENT_ID = "testserver"


def create_auth_provider(settings: "Settings") -> AuthProvider:
    """Create the auth provider selected by `settings.auth_mode`.

    Raises:
        ConfigError: For an unknown auth mode or unparseable server URL
    """
    mode = settings.auth_mode.strip().lower()

    if mode == "direct":
        return DirectTokenAuth(
            server_url=settings.server_url,
            personal_access_token=settings.access_token,
            allow_unexchanged_fallback=settings.allow_token_fallback,
            timeout=settings.http_timeout_seconds,
        )

    if mode == "brokered":
        if settings.keycloak_client_id == CONFIDENTIAL_CLIENT_ID and not settings.keycloak_client_secret:
            logger.warning(
                "Client '%s' is confidential but KEYCLOAK_CLIENT_SECRET is not set; "
                "authentication will likely fail",
                CONFIDENTIAL_CLIENT_ID,
            )
        return BrokeredAuth(
            server_url=settings.server_url,
            realm=settings.keycloak_realm,
            client_id=settings.keycloak_client_id,
            client_secret=settings.keycloak_client_secret,
            offline_token=settings.access_token,
            timeout=settings.http_timeout_seconds,
        )

    raise ConfigError(
        f"Unknown auth mode '{settings.auth_mode}'. Use 'direct' or 'brokered'.",
        details={"auth_mode": settings.auth_mode},
    )
