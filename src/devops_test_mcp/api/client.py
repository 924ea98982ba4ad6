"""DevOps Test API client - Authenticated wrapper for the test server REST API.

Every request asks the injected auth provider for a fresh `Authorization`
header, so expired tokens are refreshed transparently between calls.
"""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

import httpx

from ..auth.tokens import extract_base_url

if TYPE_CHECKING:
    from ..auth.provider import AuthProvider

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class TestServerError(Exception):
    """Base exception for test server API errors."""

    __test__ = False  # not a pytest test class

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class TestServerClient:
    """DevOps Test API client with resource sub-APIs.

    Usage:
        auth = DirectTokenAuth(server_url=url, personal_access_token=pat)
        async with TestServerClient(url, auth) as server:
            projects = await server.projects.list()
            assets = await server.assets.list(project_id, revision="main")
    """

    __test__ = False

    def __init__(
        self,
        server_url: str,
        auth: "AuthProvider",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            server_url: Server URL as shown in the web UI (may contain `/#`)
            auth: Provider for the `Authorization` header
            http_client: Pre-built httpx client (created on demand otherwise)
            timeout: Request timeout in seconds for the default client
        """
        from .assets import AssetsAPI
        from .downloads import DownloadsAPI
        from .executions import ExecutionsAPI
        from .projects import ProjectsAPI
        from .results import ResultsAPI

        self.server_url = server_url.replace("/#", "").rstrip("/")
        self.origin = extract_base_url(server_url)
        self.auth = auth
        self._client = http_client
        self._timeout = timeout

        self.projects = ProjectsAPI(self)
        self.assets = AssetsAPI(self)
        self.executions = ExecutionsAPI(self)
        self.results = ResultsAPI(self)
        self.downloads = DownloadsAPI(self)

    async def __aenter__(self) -> "TestServerClient":
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def project_url(self, project_id: str, *parts: str) -> str:
        """Build `<origin>/test/rest/projects/<id>/<parts...>`."""
        url = f"{self.origin}/test/rest/projects/{project_id}"
        for part in parts:
            url += f"/{part}"
        return url

    async def default_headers(self) -> dict[str, str]:
        """Headers sent on every request, including a current bearer token."""
        return {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Authorization": await self.auth.get_authorization_header(),
        }

    async def _request(
        self,
        method: str,
        url: str,
        params: Any = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated request, raising on non-2xx status."""
        request_headers = await self.default_headers()
        if headers:
            request_headers.update(headers)

        response = await self._http().request(
            method,
            url,
            params=params,
            json=json,
            headers=request_headers,
        )
        logger.debug("%s %s -> %s", method, url, response.status_code)

        if not response.is_success:
            body = None
            try:
                body = response.json() if response.content else None
            except ValueError:
                body = response.text[:500]
            raise TestServerError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                response.status_code,
                body,
            )
        return response

    async def _get(self, url: str, params: Any = None) -> Any:
        """Make GET request and decode the JSON body."""
        response = await self._request("GET", url, params=params)
        return response.json()

    async def _post(
        self,
        url: str,
        data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make POST request."""
        return await self._request("POST", url, json=data, headers=headers)

    async def _get_optional(self, url: str) -> Any | None:
        """GET that returns None instead of raising on HTTP or decode failure.

        Authentication errors still propagate.
        """
        try:
            return await self._get(url)
        except (TestServerError, httpx.HTTPError, ValueError) as e:
            logger.debug("Optional fetch of %s failed: %s", url, e)
            return None
