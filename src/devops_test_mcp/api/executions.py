"""Executions API - Start test runs."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import TestServerClient


EXECUTION_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json, text/plain, */*",
    "Accept-Version": "1.4",
    "X-Requested-With": "XMLHttpRequest",
}


class ExecutionsAPI:
    """Executions API for DevOps Test."""

    def __init__(self, client: "TestServerClient"):
        self._client = client

    async def create(
        self,
        project_id: str,
        asset_id: str,
        offline_token: str,
        revision: str = "main",
        browser_name: str = "edge",
    ) -> dict[str, Any]:
        """Start an execution of a test asset.

        Args:
            project_id: The project ID
            asset_id: ID of the test asset to run
            offline_token: Credential the server uses to act on the user's behalf
            revision: Branch or revision to run
            browser_name: Browser for UI tests

        Returns:
            Execution record, typically {"id": ..., "status": ..., ...}
        """
        payload = {
            "testAsset": {
                "assetId": asset_id,
                "revision": revision,
                "requestedVersion": None,
            },
            "advancedSettings": {
                "configuration": {
                    "browser.name": browser_name,
                },
            },
            "remoteLocations": [],
            "offlineToken": offline_token,
        }
        response = await self._client._post(
            self._client.project_url(project_id, "executions/"),
            payload,
            headers=EXECUTION_HEADERS,
        )
        return response.json() if response.content else {}
