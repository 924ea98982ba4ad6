"""Shared test fixtures for the DevOps Test MCP test suite."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

SERVER_URL = "https://devops.example.com/test/#/projects"
PERSONAL_TOKEN = "pat_test_0123456789"
OFFLINE_TOKEN = "offline_test_abcdef"


# ============================================================================
# Clock & Transport
# ============================================================================


class FakeClock:
    """Manually advanced replacement for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_transport():
    """Factory for an httpx.MockTransport replaying canned responses.

    Items may be httpx.Response objects or exceptions to raise. Every
    request is recorded on `transport.requests`.
    """
    def _create(*items):
        queue = list(items)
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if not queue:
                raise AssertionError(f"Unexpected request to {request.url}")
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport
    return _create


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def settings(clean_env):
    from devops_test_mcp.config import Settings

    return Settings(
        _env_file=None,
        server_url=SERVER_URL,
        access_token=PERSONAL_TOKEN,
        teamspace_id="ts_123",
    )


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove configuration variables that could leak in from the shell."""
    for var in (
        "TEST_SERVER_URL",
        "TEST_ACCESS_TOKEN",
        "TEST_TEAMSPACE_ID",
        "TEST_AUTH_MODE",
        "TEST_ALLOW_TOKEN_FALLBACK",
        "TEST_LOG_LEVEL",
        "KEYCLOAK_REALM",
        "KEYCLOAK_CLIENT_ID",
        "KEYCLOAK_CLIENT_SECRET",
    ):
        monkeypatch.delenv(var, raising=False)
    # No stray .env file either.
    monkeypatch.chdir(tmp_path)
    return monkeypatch


# ============================================================================
# API Client Fixtures
# ============================================================================


@pytest.fixture
def mock_auth():
    """Auth provider stub that always returns the same header."""
    auth = MagicMock()
    auth.get_authorization_header = AsyncMock(return_value="Bearer access_abc")
    return auth


@pytest.fixture
def mock_response():
    """Factory fixture to create mock HTTP responses."""
    def _create_response(
        data=None,
        status_code: int = 200,
        headers: dict | None = None,
        content: bytes | None = None,
    ):
        response = MagicMock()
        response.status_code = status_code
        response.is_success = 200 <= status_code < 300
        response.reason_phrase = "OK" if response.is_success else "Error"
        response.json.return_value = data if data is not None else {}
        response.headers = httpx.Headers(headers or {})
        response.content = content if content is not None else b"{}"
        response.text = str(data)
        return response
    return _create_response


@pytest.fixture
def mock_http_client(mock_response):
    """Create a mock httpx.AsyncClient answering 200 {} by default."""
    client = AsyncMock()
    client.request = AsyncMock(return_value=mock_response({}))
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def server_client(mock_auth, mock_http_client):
    """TestServerClient wired to the mock auth and HTTP client."""
    from devops_test_mcp.api.client import TestServerClient

    return TestServerClient(SERVER_URL, mock_auth, http_client=mock_http_client)


# ============================================================================
# CLI Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_env(clean_env):
    """Environment with every required setting present."""
    clean_env.setenv("TEST_SERVER_URL", SERVER_URL)
    clean_env.setenv("TEST_ACCESS_TOKEN", PERSONAL_TOKEN)
    clean_env.setenv("TEST_TEAMSPACE_ID", "ts_123")
    return clean_env
