"""Tests for DirectTokenAuth personal access token exchange."""

import json

import httpx
import pytest

from devops_test_mcp.auth import ConfigError, DirectTokenAuth, ExchangeError, NetworkError
from tests.conftest import PERSONAL_TOKEN, SERVER_URL

TOKEN_ENDPOINT = "https://devops.example.com/rest/tokens"


@pytest.fixture
def make_auth(clock, token_transport):
    """Factory for DirectTokenAuth wired to the fake clock and transport."""
    def _create(*responses, token=PERSONAL_TOKEN, fallback=True):
        transport = token_transport(*responses)
        auth = DirectTokenAuth(
            server_url=SERVER_URL,
            personal_access_token=token,
            allow_unexchanged_fallback=fallback,
            clock=clock,
            transport=transport,
        )
        return auth, transport
    return _create


@pytest.mark.asyncio
class TestPersonalTokenExchange:
    """Tests for authenticate_with_personal_token."""

    async def test_request_shape(self, make_auth):
        """Should POST an empty JSON body with the PAT as bearer."""
        auth, transport = make_auth(httpx.Response(200, json={"access_token": "T"}))

        await auth.authenticate_with_personal_token()

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_ENDPOINT
        assert request.headers["authorization"] == f"Bearer {PERSONAL_TOKEN}"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {}

    async def test_minted_token(self, make_auth, clock):
        auth, _ = make_auth(httpx.Response(200, json={"access_token": "T", "expires_in": 120}))

        result = await auth.authenticate_with_personal_token()

        assert result.success is True
        assert result.access_token == "T"
        assert result.expires_in == 120
        assert result.token_type == "Bearer"
        assert auth.state.access_token == "T"
        assert auth.state.expires_at == clock.now + 120

    async def test_token_field(self, make_auth):
        """Should accept `token` when `access_token` is absent."""
        auth, _ = make_auth(httpx.Response(200, json={"token": "T2"}))

        result = await auth.authenticate_with_personal_token()

        assert result.access_token == "T2"
        assert result.expires_in == 3600

    async def test_validation_only_response(self, make_auth, clock):
        """Should keep the PAT when the endpoint returns no token."""
        auth, _ = make_auth(httpx.Response(200, text=""))

        result = await auth.authenticate_with_personal_token()

        assert result.success is True
        assert result.access_token == PERSONAL_TOKEN
        assert auth.state.expires_at == clock.now + 3600

    @pytest.mark.parametrize("status", [401, 403])
    async def test_bypass_statuses(self, make_auth, clock, status):
        """Should cache the PAT itself for an hour with a note."""
        auth, _ = make_auth(httpx.Response(status, json={"error": "forbidden"}))

        result = await auth.authenticate_with_personal_token()

        assert result.success is True
        assert result.access_token == PERSONAL_TOKEN
        assert f"Token exchange bypassed after HTTP {status}" in result.note
        assert auth.state.expires_at == clock.now + 3600

    async def test_network_error_falls_back(self, make_auth):
        auth, _ = make_auth(httpx.ConnectError("connection refused"))

        result = await auth.authenticate_with_personal_token()

        assert result.success is True
        assert result.access_token == PERSONAL_TOKEN
        assert "network error fallback" in result.note

    async def test_other_status_fails(self, make_auth):
        auth, _ = make_auth(
            httpx.Response(500, json={"error": "server_error", "error_description": "boom"})
        )

        result = await auth.authenticate_with_personal_token()

        assert result.success is False
        assert result.status == 500
        assert result.error == "server_error"
        assert auth.state.access_token is None

    async def test_bypass_disabled(self, make_auth):
        auth, _ = make_auth(httpx.Response(403, text="Forbidden"), fallback=False)

        result = await auth.authenticate_with_personal_token()

        assert result.success is False
        assert result.status == 403
        assert result.error == "unknown"
        assert result.error_description == "Forbidden"

    async def test_network_fallback_disabled(self, make_auth):
        auth, _ = make_auth(httpx.ConnectError("connection refused"), fallback=False)

        result = await auth.authenticate_with_personal_token()

        assert result.success is False
        assert result.error == "network_error"

    async def test_missing_token(self, make_auth):
        auth, transport = make_auth(token=None)

        with pytest.raises(ConfigError):
            await auth.authenticate_with_personal_token()
        assert transport.requests == []


@pytest.mark.asyncio
class TestDirectHeader:
    """Tests for the header contract in direct mode."""

    async def test_header_after_network_error(self, make_auth):
        auth, _ = make_auth(httpx.ConnectError("connection refused"))
        assert await auth.get_authorization_header() == f"Bearer {PERSONAL_TOKEN}"

    async def test_header_reuses_cache(self, make_auth, clock):
        auth, transport = make_auth(httpx.Response(200, json={"access_token": "T", "expires_in": 120}))

        await auth.get_authorization_header()
        clock.advance(59)
        assert await auth.get_authorization_header() == "Bearer T"
        assert len(transport.requests) == 1

    async def test_header_renews_near_expiry(self, make_auth, clock):
        auth, transport = make_auth(
            httpx.Response(200, json={"access_token": "T", "expires_in": 120}),
            httpx.Response(200, json={"access_token": "U", "expires_in": 120}),
        )

        await auth.get_authorization_header()
        clock.advance(60)

        assert await auth.get_authorization_header() == "Bearer U"
        assert len(transport.requests) == 2

    async def test_header_raises_on_rejection(self, make_auth):
        auth, _ = make_auth(httpx.Response(500, text="oops"))

        with pytest.raises(ExchangeError) as exc_info:
            await auth.get_authorization_header()
        assert exc_info.value.status == 500

    async def test_header_raises_network_error_without_fallback(self, make_auth):
        auth, _ = make_auth(httpx.ConnectError("down"), fallback=False)

        with pytest.raises(NetworkError):
            await auth.get_authorization_header()

    async def test_status_scheme(self, make_auth):
        auth, _ = make_auth()
        status = auth.get_status()
        assert status["scheme"] == "direct"
        assert status["token_endpoint"] == TOKEN_ENDPOINT
        assert status["valid"] is False
        assert status["expires_in_seconds"] is None
