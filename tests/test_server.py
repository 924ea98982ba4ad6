"""Tests for the MCP tool layer."""

import io
import json
import zipfile

import pytest
from unittest.mock import AsyncMock, MagicMock

from devops_test_mcp.api import PreparedDownload, ResultData, TestServerError
from devops_test_mcp.auth import ExchangeError
from devops_test_mcp.server import TestServerTools, create_server
from tests.conftest import PERSONAL_TOKEN


@pytest.fixture
def client():
    """TestServerClient stand-in with async resource APIs."""
    client = MagicMock()
    client.origin = "https://devops.example.com"
    client.server_url = "https://devops.example.com/test"
    client.close = AsyncMock()
    client.projects.list = AsyncMock()
    client.assets.list = AsyncMock()
    client.assets.find_by_name = AsyncMock()
    client.executions.create = AsyncMock()
    client.results.collect = AsyncMock()
    client.downloads.prepare_testlog = AsyncMock()
    client.downloads.fetch = AsyncMock()
    client.downloads.download_url = MagicMock(
        return_value="https://devops.example.com/test/rest/projects/1150/downloads/1556"
    )
    return client


@pytest.fixture
def tools(settings, client):
    return TestServerTools(settings, client)


@pytest.mark.asyncio
class TestProjectTools:
    """Tests for get_projects and list_tests."""

    async def test_get_projects(self, tools, client):
        client.projects.list.return_value = {"data": [{"id": "1150", "name": "Web"}]}

        text = await tools.get_projects()

        assert "Retrieved 1 projects" in text
        assert "- Web (ID: 1150)" in text

    async def test_get_projects_error(self, tools, client):
        client.projects.list.side_effect = TestServerError("HTTP 500: Internal Server Error", 500)

        text = await tools.get_projects()

        assert text == "Error retrieving projects: HTTP 500: Internal Server Error"

    async def test_get_projects_auth_error(self, tools, client):
        client.projects.list.side_effect = ExchangeError("Authentication failed: invalid_grant")

        text = await tools.get_projects()

        assert text == "Error retrieving projects: Authentication failed: invalid_grant"

    async def test_list_tests_with_filter(self, tools, client):
        client.assets.list.return_value = {"content": [{"id": "a1", "name": "Login"}]}

        text = await tools.list_tests("1150", test_type="EXT_TEST_SUITE", branch="dev")

        client.assets.list.assert_awaited_once_with(
            "1150", revision="dev", test_types=["EXT_TEST_SUITE"]
        )
        assert "Retrieved 1 tests from project 1150" in text

    async def test_list_tests_all_types(self, tools, client):
        client.assets.list.return_value = {"content": []}

        await tools.list_tests("1150")

        client.assets.list.assert_awaited_once_with("1150", revision="main", test_types=None)

    async def test_list_tests_bad_structure(self, tools, client):
        client.assets.list.return_value = {"unexpected": True}

        text = await tools.list_tests("1150")

        assert text == "Error retrieving tests: Unexpected response structure"


@pytest.mark.asyncio
class TestExecuteTool:
    """Tests for execute_test."""

    async def test_execute(self, tools, client):
        client.assets.find_by_name.return_value = ({"id": "a1", "name": "Login"}, [])
        client.executions.create.return_value = {"id": "exec_1", "status": "QUEUED"}

        text = await tools.execute_test("1150", "Login", browser_name="chrome", revision="dev")

        client.executions.create.assert_awaited_once_with(
            "1150",
            asset_id="a1",
            offline_token=PERSONAL_TOKEN,
            revision="dev",
            browser_name="chrome",
        )
        assert text.startswith("Test execution started successfully!")
        assert "- Execution ID: exec_1" in text

    async def test_unknown_test(self, tools, client):
        client.assets.find_by_name.return_value = (
            None,
            [{"id": "a1", "name": "Login"}, {"id": "a2", "name": "Checkout"}],
        )

        text = await tools.execute_test("1150", "Search")

        assert text == 'Error executing test: Test "Search" not found. Available tests: Login, Checkout'
        client.executions.create.assert_not_called()


@pytest.mark.asyncio
class TestResultTools:
    """Tests for result and download tools."""

    async def test_get_test_results(self, tools, client):
        client.results.collect.return_value = ResultData(
            summary={"status": "COMPLETE", "verdict": "PASS"},
            logs=[{"id": "i1", "type": "run", "properties": {"name": "Run"}}],
        )

        text = await tools.get_test_results("1150", "r1", execution_id="exec_1")

        assert "**Execution ID**: exec_1" in text
        assert "### Step 1: Run" in text
        assert "/test/funrep.html#/projects/1150/results/r1" in text

    async def test_get_test_results_error(self, tools, client):
        client.results.collect.side_effect = ExchangeError("Authentication failed: expired")

        text = await tools.get_test_results("1150", "r1")

        assert text == "Error retrieving test results: Authentication failed: expired"

    async def test_prepare_test_download(self, tools, client):
        client.downloads.prepare_testlog.return_value = PreparedDownload(
            download_id="1556",
            location="/test/rest/projects/1150/downloads/1556",
            prepare_url="https://devops.example.com/test/rest/projects/1150/results/r1/reports/testlog/download",
        )

        text = await tools.prepare_test_download("1150", "r1")

        assert "**Download ID**: 1556" in text

    async def test_prepare_test_download_error(self, tools, client):
        client.downloads.prepare_testlog.side_effect = TestServerError(
            "No location header found in response", 202
        )

        text = await tools.prepare_test_download("1150", "r1")

        assert text == "Error preparing test download: No location header found in response"

    async def test_get_test_log_results(self, tools, client):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr(
                "logs/testlog.json",
                json.dumps(
                    {
                        "id": "log_42",
                        "initiatedByUser": "jdoe",
                        "items": [
                            {
                                "id": "s1",
                                "type": "ui.click",
                                "properties": {"name": "Click"},
                                "end": {"properties": {"verdict": "FAIL", "reason": "Timeout"}},
                            }
                        ],
                    }
                ),
            )
        archive = buffer.getvalue()
        client.downloads.fetch.return_value = archive

        text = await tools.get_test_log_results("1150", "1556")

        assert f"**Archive Size**: {len(archive)} bytes" in text
        assert "- 👤 Initiated By: jdoe" in text
        assert "- 1. **Click** (Reason: Timeout)" in text

    async def test_get_test_log_results_bad_archive(self, tools, client):
        client.downloads.fetch.return_value = b"not a zip"

        text = await tools.get_test_log_results("1150", "1556")

        assert text.startswith("Error getting test log results: Downloaded file is not a zip archive")


@pytest.mark.asyncio
class TestCreateServer:
    """Tests for MCP server registration."""

    async def test_tools_registered(self, settings, client):
        mcp = create_server(settings, client=client)

        tools = {tool.name: tool for tool in await mcp.list_tools()}

        assert set(tools) == {
            "get_projects",
            "list_tests",
            "execute_test",
            "get_test_results",
            "prepare_test_download",
            "get_test_log_results",
        }
        assert set(tools["list_tests"].inputSchema["properties"]) == {"projectId", "testType", "branch"}
        assert tools["list_tests"].inputSchema["required"] == ["projectId"]
        assert set(tools["execute_test"].inputSchema["properties"]) == {
            "projectId",
            "testName",
            "browserName",
            "revision",
        }
        assert set(tools["get_test_log_results"].inputSchema["required"]) == {"projectId", "downloadId"}
        assert "60-180 seconds" in tools["execute_test"].description

    async def test_builds_client_from_settings(self, settings):
        mcp = create_server(settings)
        assert mcp.name == "MCP DevOps Test"
