"""Assets API - Test asset lookup within a project."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import TestServerClient


DEFAULT_TEST_TYPES = [
    "AFTSUITE",
    "APISUITE",
    "COMPOUND",
    "EXT_TEST_CODES",
    "EXT_TEST_JMETER",
    "EXT_TEST_JUNIT",
    "EXT_TEST_PMAN",
    "RATESCHEDULE",
    "EXT_TEST_SEL",
    "EXT_TEST_SUITE",
    "VUSCHEDULE",
    "EXT_TEST_SCPT",
    "EXT_TEST_LOADP",
    "EXT_TEST_STUB",
    "APITEST",
    "UI",
    "PERF",
]


class AssetsAPI:
    """Assets (tests) API for DevOps Test.

    Usage:
        async with TestServerClient(url, auth) as server:
            # All default test types on main
            tests = await server.assets.list("1150")

            # Only executable suites on a branch
            tests = await server.assets.list(
                "1150", revision="feature", test_types=["EXT_TEST_SUITE"], executable_only=True
            )
    """

    def __init__(self, client: "TestServerClient"):
        self._client = client

    async def list(
        self,
        project_id: str,
        revision: str = "main",
        test_types: list[str] | None = None,
        executable_only: bool = False,
    ) -> dict[str, Any]:
        """List test assets of a project.

        Args:
            project_id: The project ID
            revision: Branch or revision name
            test_types: External test types to include (default: all known types)
            executable_only: Restrict to deployable, executable assets

        Returns:
            {"content": [{"id": ..., "name": ..., "external_type": ...}, ...]}
        """
        params: list[tuple[str, str]] = [("revision", revision)]
        if executable_only:
            params.append(("deployable", "true"))
            params.append(("assetTypes", "EXECUTABLE"))
        for test_type in test_types or DEFAULT_TEST_TYPES:
            params.append(("externalTypes", test_type))

        return await self._client._get(
            self._client.project_url(project_id, "assets/"),
            params=params,
        )

    async def find_by_name(
        self,
        project_id: str,
        name: str,
        revision: str = "main",
    ) -> tuple[dict[str, Any] | None, list[dict[str, Any]]]:
        """Find an executable test asset by exact name.

        Returns:
            (matching asset or None, all executable assets searched)
        """
        data = await self.list(project_id, revision=revision, executable_only=True)
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list):
            raise ValueError("Unexpected response structure when fetching tests")

        for asset in content:
            if asset.get("name") == name:
                return asset, content
        return None, content
