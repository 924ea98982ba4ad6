"""Results API - Test execution results and their optional enrichments."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import TestServerClient


@dataclass
class ResultData:
    """Everything known about one result.

    Each part is fetched independently; a part that failed is None.
    """

    summary: dict[str, Any] | None = None
    logs: Any = None
    artifacts: Any = None
    screenshots: Any = None
    performance: Any = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ResultsAPI:
    """Results API for DevOps Test.

    Usage:
        async with TestServerClient(url, auth) as server:
            summary = await server.results.get("1150", "result_1")
            everything = await server.results.collect("1150", "result_1")
    """

    def __init__(self, client: "TestServerClient"):
        self._client = client

    def _url(self, project_id: str, result_id: str, *parts: str) -> str:
        return self._client.project_url(project_id, "results", result_id, *parts)

    async def get(self, project_id: str, result_id: str) -> dict[str, Any]:
        """Get the result summary (status, verdict, timing)."""
        return await self._client._get(self._url(project_id, result_id))

    async def logs(self, project_id: str, result_id: str) -> Any:
        """Get the structured execution log items."""
        return await self._client._get(self._url(project_id, result_id, "logs"))

    async def artifacts(self, project_id: str, result_id: str) -> Any:
        return await self._client._get(self._url(project_id, result_id, "artifacts"))

    async def screenshots(self, project_id: str, result_id: str) -> Any:
        return await self._client._get(self._url(project_id, result_id, "screenshots"))

    async def performance(self, project_id: str, result_id: str) -> Any:
        return await self._client._get(self._url(project_id, result_id, "performance"))

    async def collect(self, project_id: str, result_id: str) -> ResultData:
        """Fetch summary, logs, artifacts, screenshots and performance data.

        A failing fetch leaves its part as None without affecting the others.
        """
        fetch = self._client._get_optional
        return ResultData(
            summary=await fetch(self._url(project_id, result_id)),
            logs=await fetch(self._url(project_id, result_id, "logs")),
            artifacts=await fetch(self._url(project_id, result_id, "artifacts")),
            screenshots=await fetch(self._url(project_id, result_id, "screenshots")),
            performance=await fetch(self._url(project_id, result_id, "performance")),
        )
