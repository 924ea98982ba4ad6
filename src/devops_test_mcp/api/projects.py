"""Projects API - Project listing for the current user."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import TestServerClient


class ProjectsAPI:
    """Projects API for DevOps Test.

    Usage:
        async with TestServerClient(url, auth) as server:
            projects = await server.projects.list()
    """

    def __init__(self, client: "TestServerClient"):
        self._client = client

    async def list(self, member: bool = True, archived: bool = False) -> dict[str, Any]:
        """List projects visible to the authenticated user.

        Args:
            member: Only projects the user is a member of
            archived: Include archived projects

        Returns:
            {"data": [{"id": ..., "name": ..., "archived": ...}, ...]}
        """
        return await self._client._get(
            f"{self._client.server_url}/rest/projects/",
            params={
                "member": "true" if member else "false",
                "archived": "true" if archived else "false",
            },
        )
