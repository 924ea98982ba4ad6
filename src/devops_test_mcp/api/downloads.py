"""Downloads API - Prepare and fetch test log archives."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .client import TestServerError

if TYPE_CHECKING:
    from .client import TestServerClient


# e.g. /test/rest/projects/1150/downloads/1556
_DOWNLOAD_ID_RE = re.compile(r"/downloads/(\d+)$")


@dataclass
class PreparedDownload:
    """Result of asking the server to package a test log."""

    download_id: str
    location: str
    prepare_url: str


class DownloadsAPI:
    """Downloads API for DevOps Test.

    Usage:
        async with TestServerClient(url, auth) as server:
            prepared = await server.downloads.prepare_testlog("1150", "result_1")
            archive = await server.downloads.fetch("1150", prepared.download_id)
    """

    def __init__(self, client: "TestServerClient"):
        self._client = client

    async def prepare_testlog(self, project_id: str, result_id: str) -> PreparedDownload:
        """Ask the server to package a result's test log for download.

        Raises:
            TestServerError: If the request fails or no download ID is returned
        """
        prepare_url = self._client.project_url(
            project_id, "results", result_id, "reports", "testlog", "download"
        )
        response = await self._client._post(prepare_url)

        location = response.headers.get("location")
        if not location:
            raise TestServerError("No location header found in response", response.status_code)

        match = _DOWNLOAD_ID_RE.search(location)
        if not match:
            raise TestServerError(
                f"Could not extract download ID from location header: {location}",
                response.status_code,
            )

        return PreparedDownload(
            download_id=match.group(1),
            location=location,
            prepare_url=prepare_url,
        )

    def download_url(self, project_id: str, download_id: str) -> str:
        return self._client.project_url(project_id, "downloads", download_id)

    async def fetch(self, project_id: str, download_id: str) -> bytes:
        """Download a prepared archive."""
        response = await self._client._request("GET", self.download_url(project_id, download_id))
        return response.content
