"""DevOps Test API client module.

Usage:
    from devops_test_mcp.api import TestServerClient

    async with TestServerClient(server_url, auth) as server:
        projects = await server.projects.list()
        tests = await server.assets.list(project_id)
        execution = await server.executions.create(project_id, asset_id, offline_token)
        result = await server.results.collect(project_id, result_id)
"""

from .client import TestServerClient, TestServerError
from .assets import AssetsAPI, DEFAULT_TEST_TYPES
from .downloads import DownloadsAPI, PreparedDownload
from .executions import ExecutionsAPI
from .projects import ProjectsAPI
from .results import ResultsAPI, ResultData

__all__ = [
    "TestServerClient",
    "TestServerError",
    "AssetsAPI",
    "DownloadsAPI",
    "ExecutionsAPI",
    "ProjectsAPI",
    "ResultsAPI",
    "ResultData",
    "PreparedDownload",
    "DEFAULT_TEST_TYPES",
]
