"""Server configuration via pydantic-settings.

Values come from command-line overrides first, then the environment, then a
`.env` file in the working directory.
"""

from __future__ import annotations

import logging

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .auth.brokered import DEFAULT_REALM
from .auth.errors import ConfigError

# field -> (environment variable, command-line flag)
REQUIRED_SETTINGS = {
    "access_token": ("TEST_ACCESS_TOKEN", "--token"),
    "server_url": ("TEST_SERVER_URL", "--server-url"),
    "teamspace_id": ("TEST_TEAMSPACE_ID", "--teamspace-id"),
}

REQUIRED_LABELS = {
    "access_token": "Personal access token",
    "server_url": "Server URL",
    "teamspace_id": "Teamspace ID",
}


class Settings(BaseSettings):
    server_url: str | None = None
    # Personal access token (direct mode) or offline token (brokered mode).
    access_token: str | None = None
    teamspace_id: str | None = None
    auth_mode: str = "direct"
    allow_token_fallback: bool = True
    log_level: str = "INFO"
    http_timeout_seconds: float = 30.0

    keycloak_realm: str = Field(DEFAULT_REALM, validation_alias="KEYCLOAK_REALM")
    keycloak_client_id: str = Field("testserver", validation_alias="KEYCLOAK_CLIENT_ID")
    keycloak_client_secret: str | None = Field(None, validation_alias="KEYCLOAK_CLIENT_SECRET")

    model_config = {
        "env_prefix": "TEST_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @property
    def clean_server_url(self) -> str:
        """Server URL without the UI's `/#` route marker or trailing slash."""
        return (self.server_url or "").replace("/#", "").rstrip("/")

    def validate_required(self) -> None:
        """Raise ConfigError naming the first missing required setting."""
        for name, (env_var, flag) in REQUIRED_SETTINGS.items():
            if not getattr(self, name):
                raise ConfigError(
                    f"{REQUIRED_LABELS[name]} is required. "
                    f"Set {env_var} environment variable or use {flag} argument.",
                    details={"setting": name},
                )


def load_settings(**overrides) -> Settings:
    """Load settings, letting non-empty overrides win over the environment.

    Raises:
        ConfigError: If a required setting is missing or malformed
    """
    try:
        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "settings"
        raise ConfigError(
            f"Invalid setting '{field}': {error['msg']}",
            details={"setting": field},
        ) from e
    settings.validate_required()
    return settings
