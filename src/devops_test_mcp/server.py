"""MCP server exposing DevOps Test operations as tools.

Each tool maps onto one or more REST calls and answers with Markdown text.
Failures never escape a tool: they are reported as `Error ...: <message>`
text so the calling agent can read and react to them.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from . import __version__
from .api import TestServerClient
from .archive import extract_testlog
from .auth import AuthProvider, create_auth_provider
from .config import Settings
from .reports import (
    format_download_prepared,
    format_execution_started,
    format_projects,
    format_result_report,
    format_test_log_report,
    format_tests,
)
from .testlog import parse_result_steps, parse_test_log

logger = logging.getLogger(__name__)

SERVER_NAME = "MCP DevOps Test"

EXECUTE_TEST_DESCRIPTION = (
    "Execute a test in a specific project by test name. TIMING: Tests typically take "
    "60-180 seconds to complete. AGENT BEHAVIOR: After execution, inform user 'Test started, "
    "will complete in ~2 minutes', then wait at least 60 seconds before first status check. "
    "Use progressive back-off for subsequent checks: 30s → 45s → 60s → 90s intervals until completion."
)

GET_TEST_RESULTS_DESCRIPTION = (
    "Get comprehensive test execution results and report data. PROGRESSIVE POLLING: If status "
    "is RUNNING, wait using progressive back-off: 30s → 45s → 60s → 90s between checks. "
    "Tests typically complete in 60-180 seconds."
)


class TestServerTools:
    """Tool implementations backed by an injected TestServerClient.

    Usage:
        tools = TestServerTools(settings, client)
        text = await tools.list_tests("1150", branch="main")
    """

    __test__ = False

    def __init__(self, settings: Settings, client: TestServerClient):
        self.settings = settings
        self.client = client

    async def get_projects(self) -> str:
        try:
            data = await self.client.projects.list()
            return format_projects(data)
        except Exception as e:
            logger.warning("get_projects failed: %s", e)
            return f"Error retrieving projects: {e}"

    async def list_tests(
        self,
        project_id: str,
        test_type: str | None = None,
        branch: str = "main",
    ) -> str:
        try:
            data = await self.client.assets.list(
                project_id,
                revision=branch,
                test_types=[test_type] if test_type else None,
            )
            return format_tests(project_id, data)
        except Exception as e:
            logger.warning("list_tests failed for project %s: %s", project_id, e)
            return f"Error retrieving tests: {e}"

    async def execute_test(
        self,
        project_id: str,
        test_name: str,
        browser_name: str = "edge",
        revision: str = "main",
    ) -> str:
        try:
            asset, available = await self.client.assets.find_by_name(
                project_id, test_name, revision=revision
            )
            if asset is None:
                names = ", ".join(str(a.get("name")) for a in available)
                raise LookupError(f'Test "{test_name}" not found. Available tests: {names}')

            execution = await self.client.executions.create(
                project_id,
                asset_id=asset["id"],
                offline_token=self.settings.access_token,
                revision=revision,
                browser_name=browser_name,
            )
            logger.info(
                "Started execution %s of '%s' in project %s",
                execution.get("id"),
                test_name,
                project_id,
            )
            return format_execution_started(
                test_name, execution, project_id, asset["id"], browser_name, revision
            )
        except Exception as e:
            logger.warning("execute_test failed for '%s': %s", test_name, e)
            return f"Error executing test: {e}"

    async def get_test_results(
        self,
        project_id: str,
        result_id: str,
        execution_id: str | None = None,
    ) -> str:
        try:
            result = await self.client.results.collect(project_id, result_id)
            steps = parse_result_steps(result.logs)
            return format_result_report(
                project_id,
                result_id,
                self.client.origin,
                result,
                steps,
                execution_id=execution_id,
            )
        except Exception as e:
            logger.warning("get_test_results failed for result %s: %s", result_id, e)
            return f"Error retrieving test results: {e}"

    async def prepare_test_download(self, project_id: str, result_id: str) -> str:
        try:
            prepared = await self.client.downloads.prepare_testlog(project_id, result_id)
            return format_download_prepared(project_id, result_id, prepared)
        except Exception as e:
            logger.warning("prepare_test_download failed for result %s: %s", result_id, e)
            return f"Error preparing test download: {e}"

    async def get_test_log_results(self, project_id: str, download_id: str) -> str:
        try:
            download_url = self.client.downloads.download_url(project_id, download_id)
            archive = await self.client.downloads.fetch(project_id, download_id)
            analysis = parse_test_log(extract_testlog(archive))
            return format_test_log_report(
                project_id, download_id, download_url, len(archive), analysis
            )
        except Exception as e:
            logger.warning("get_test_log_results failed for download %s: %s", download_id, e)
            return f"Error getting test log results: {e}"


def create_server(
    settings: Settings,
    auth: AuthProvider | None = None,
    client: TestServerClient | None = None,
) -> FastMCP:
    """Build the MCP server with all tools registered.

    The auth provider does no network I/O until the first tool call.
    """
    if client is None:
        auth = auth or create_auth_provider(settings)
        client = TestServerClient(
            settings.server_url,
            auth,
            timeout=settings.http_timeout_seconds,
        )
    tools = TestServerTools(settings, client)

    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
        logger.info("%s %s serving %s", SERVER_NAME, __version__, client.server_url)
        try:
            yield
        finally:
            await client.close()

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)

    # Argument names are part of the tool contract, hence camelCase.
    @mcp.tool(name="get_projects", description="Retrieves all projects from the Test system")
    async def get_projects() -> str:
        return await tools.get_projects()

    @mcp.tool(
        name="list_tests",
        description="Retrieves tests from a specific project with optional test type filtering",
    )
    async def list_tests(
        projectId: Annotated[str, Field(description="The ID of the project to retrieve tests from")],
        testType: Annotated[
            str | None,
            Field(
                description="Optional test type filter (e.g., EXT_TEST_SUITE, EXT_TEST_SCPT, "
                "EXT_TEST_LOADP, EXT_TEST_STUB, etc.)"
            ),
        ] = None,
        branch: Annotated[
            str, Field(description="Branch to use for retrieving tests (default: main)")
        ] = "main",
    ) -> str:
        return await tools.list_tests(projectId, test_type=testType, branch=branch)

    @mcp.tool(name="execute_test", description=EXECUTE_TEST_DESCRIPTION)
    async def execute_test(
        projectId: Annotated[str, Field(description="The ID of the project containing the test")],
        testName: Annotated[str, Field(description="The name of the test to execute")],
        browserName: Annotated[
            str, Field(description="Browser to use for execution (default: edge)")
        ] = "edge",
        revision: Annotated[str, Field(description="Revision to use (default: main)")] = "main",
    ) -> str:
        return await tools.execute_test(
            projectId, testName, browser_name=browserName, revision=revision
        )

    @mcp.tool(name="get_test_results", description=GET_TEST_RESULTS_DESCRIPTION)
    async def get_test_results(
        projectId: Annotated[str, Field(description="The ID of the project containing the test")],
        resultId: Annotated[str, Field(description="The result ID from the test execution")],
        executionId: Annotated[
            str | None, Field(description="Optional execution ID for additional context")
        ] = None,
    ) -> str:
        return await tools.get_test_results(projectId, resultId, execution_id=executionId)

    @mcp.tool(
        name="prepare_test_download",
        description="Prepare test result download and extract download ID from location header",
    )
    async def prepare_test_download(
        projectId: Annotated[str, Field(description="The ID of the project containing the test")],
        resultId: Annotated[str, Field(description="The result ID from the test execution")],
    ) -> str:
        return await tools.prepare_test_download(projectId, resultId)

    @mcp.tool(
        name="get_test_log_results",
        description="Download and analyze test log results from the zip archive",
    )
    async def get_test_log_results(
        projectId: Annotated[str, Field(description="The ID of the project containing the test")],
        downloadId: Annotated[
            str,
            Field(description="The download ID for the result archive (e.g., from result execution)"),
        ],
    ) -> str:
        return await tools.get_test_log_results(projectId, downloadId)

    return mcp
