"""Markdown report renderers for tool responses."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .api.downloads import PreparedDownload
    from .api.results import ResultData
    from .testlog import Step, TestLogAnalysis


STATUS_LABELS = {
    "FAIL": "❌ FAILED",
    "PASS": "✅ PASSED",
    "INFO": "ℹ️ INFO",
}

FAILURE_CONTEXT_KEYS = ("fragment", "object", "value", "key", "parent")


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def format_timestamp(value: Any) -> str:
    """Render epoch milliseconds as ISO-8601 UTC; pass strings through."""
    if value is None or value == "":
        return "N/A"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return str(value)


def format_projects(data: Any) -> str:
    """Render the project listing.

    Raises:
        ValueError: If the response has no `data` list
    """
    projects = data.get("data") if isinstance(data, dict) else None
    if not isinstance(projects, list):
        raise ValueError("Unexpected response structure")

    lines = [
        f"- {p.get('name')} (ID: {p.get('id')}){' [ARCHIVED]' if p.get('archived') else ''}"
        for p in projects
    ]
    return f"Retrieved {len(projects)} projects from Test system:\n\n" + "\n".join(lines)


def format_tests(project_id: str, data: Any) -> str:
    """Render the test asset listing of a project.

    Raises:
        ValueError: If the response has no `content` list
    """
    tests = data.get("content") if isinstance(data, dict) else None
    if not isinstance(tests, list):
        raise ValueError("Unexpected response structure")

    lines = [
        f"- {t.get('name')} (ID: {t.get('id')}, Type: {t.get('external_type') or 'Unknown'})"
        for t in tests
    ]
    return f"Retrieved {len(tests)} tests from project {project_id}:\n\n" + "\n".join(lines)


def format_execution_started(
    test_name: str,
    execution: dict[str, Any],
    project_id: str,
    asset_id: Any,
    browser_name: str,
    revision: str,
) -> str:
    return (
        "Test execution started successfully!\n\n"
        "Execution Details:\n"
        f"- Test Name: {test_name}\n"
        f"- Execution ID: {execution.get('id') or 'N/A'}\n"
        f"- Status: {execution.get('status') or 'N/A'}\n"
        f"- Project ID: {project_id}\n"
        f"- Asset ID: {asset_id}\n"
        f"- Browser: {browser_name}\n"
        f"- Revision: {revision}\n\n"
        f"Response: {_dump(execution)}"
    )


def _format_step(step: "Step", index: int) -> list[str]:
    indent = "  " * step.level
    status = STATUS_LABELS.get(step.verdict or "", "⚪ UNKNOWN")
    props = step.properties or {}
    step_type = step.type or ""

    lines = [
        f"{indent}### Step {index}: {step.name}",
        f"{indent}- **ID**: {step.id}",
        f"{indent}- **Status**: {status}",
        f"{indent}- **Type**: {step.type}",
        f"{indent}- **Start Time**: {step.start_time}",
    ]
    if step.end_time:
        lines.append(f"{indent}- **End Time**: {step.end_time}")
    if step.duration:
        lines.append(f"{indent}- **Duration**: {step.duration}")
    if step.level > 0:
        lines.append(f"{indent}- **Level**: {step.level} (substep)")

    if step.failed:
        lines.append(f"{indent}- **🚨 FAILURE DETECTED IN THIS STEP**")
        if props:
            lines.append(f"{indent}- **Failure Context**:")
            for key in FAILURE_CONTEXT_KEYS:
                if props.get(key):
                    lines.append(f"{indent}  - {key.capitalize()}: {props[key]}")

    if props:
        if "click" in step_type:
            lines.append(f"{indent}- **Action**: Click on {props.get('object') or 'element'}")
        elif "type" in step_type:
            lines.append(
                f"{indent}- **Action**: Type \"{props.get('value') or 'text'}\" "
                f"into {props.get('object') or 'element'}"
            )
        elif "press" in step_type:
            lines.append(f"{indent}- **Action**: Press key \"{props.get('key') or 'unknown'}\"")
        elif "config" in step_type:
            lines.append(f"{indent}- **Configuration**: {_dump(props)}")
        elif "device" in step_type:
            lines.append(f"{indent}- **Device Info**: {_dump(props)}")

    if step.verdicts:
        lines.append(f"{indent}- **Verdict Summary**: {_dump(step.verdicts)}")

    lines.append("")
    return lines


def format_result_report(
    project_id: str,
    result_id: str,
    origin: str,
    result: "ResultData",
    steps: list["Step"],
    execution_id: str | None = None,
) -> str:
    """Render the full result report from every fetched endpoint."""
    lines = [
        "# Test Execution Results Report",
        "",
        f"**Project ID**: {project_id}",
        f"**Result ID**: {result_id}",
    ]
    if execution_id:
        lines.append(f"**Execution ID**: {execution_id}")
    lines.append(
        f"**Report URL**: {origin}/test/funrep.html#/projects/{project_id}/results/{result_id}"
    )
    lines.append("")

    summary = result.summary if isinstance(result.summary, dict) else None
    if summary:
        duration = summary.get("duration")
        duration_text = f"{duration / 1000} seconds" if isinstance(duration, (int, float)) and duration else "N/A"
        lines += [
            "## Test Summary",
            f"- **Status**: {summary.get('status') or 'Unknown'}",
            f"- **Verdict**: {summary.get('verdict') or 'Unknown'}",
            f"- **Start Time**: {format_timestamp(summary.get('startDate') or summary.get('creationDate'))}",
            f"- **Duration**: {duration_text}",
            f"- **Test Name**: {summary.get('name') or 'N/A'}",
            f"- **Branch**: {summary.get('branch') or 'N/A'}",
            "",
        ]

        reports = summary.get("reports")
        if isinstance(reports, list) and reports:
            lines += [
                "## 📊 Available Reports Analysis",
                f"The test summary shows {len(reports)} available reports:",
                "",
            ]
            for i, report in enumerate(reports, 1):
                lines += [
                    f"### Report {i}: {report.get('name')}",
                    f"- **ID**: {report.get('id')}",
                    f"- **Content Type**: {report.get('content-type')}",
                    f"- **Exportable**: {report.get('exportable')}",
                    f"- **URL**: {report.get('href')}",
                    f"- **Last Updated**: {report.get('lastUpdated')}",
                    "",
                ]

    if steps:
        lines += [
            "## Step-by-Step Analysis (Hierarchical)",
            f"Found {len(steps)} steps/events:",
            "",
        ]
        for i, step in enumerate(steps, 1):
            lines += _format_step(step, i)

    failed = [s for s in steps if s.failed]
    if failed:
        lines += [
            "## 🚨 Failure Analysis",
            f"Found {len(failed)} failed step(s):",
            "",
        ]
        for i, step in enumerate(failed, 1):
            lines += [
                f"### Failed Step {i}: {step.name}",
                f"- **Step ID**: {step.id}",
                f"- **Step Type**: {step.type}",
                f"- **Failure Time**: {step.end_time or step.start_time}",
            ]
            if step.properties:
                lines.append(f"- **Step Details**: ```json\n{_dump(step.properties)}\n```")
            lines.append("")

    if isinstance(result.artifacts, list) and result.artifacts:
        lines.append("## Artifacts")
        for artifact in result.artifacts:
            name = (artifact.get("name") or artifact.get("type")) if isinstance(artifact, dict) else None
            lines.append(f"- {name or 'Unnamed artifact'}")
        lines.append("")

    if isinstance(result.screenshots, list) and result.screenshots:
        lines += [
            "## Screenshots",
            f"Found {len(result.screenshots)} screenshot(s)",
            "",
        ]

    if result.performance:
        lines += ["## Performance Data", "Performance metrics available", ""]

    lines += ["## Raw Data (All Endpoints)", f"```json\n{_dump(result.to_dict())}```"]
    return "\n".join(lines)


def format_download_prepared(project_id: str, result_id: str, prepared: "PreparedDownload") -> str:
    return (
        "Download preparation successful!\n\n"
        f"**Project ID**: {project_id}\n"
        f"**Result ID**: {result_id}\n"
        f"**Download ID**: {prepared.download_id}\n"
        f"**Location Header**: {prepared.location}\n"
        f"**Prepare URL**: {prepared.prepare_url}\n\n"
        f'Use the download ID "{prepared.download_id}" with the get_test_log_results tool '
        "to download and analyze the test logs."
    )


def format_test_log_report(
    project_id: str,
    download_id: str,
    download_url: str,
    archive_size: int,
    analysis: "TestLogAnalysis",
) -> str:
    lines = [
        "# Test Log Results Analysis (Zip Extraction)",
        "",
        f"**Project ID**: {project_id}",
        f"**Download ID**: {download_id}",
        f"**Download URL**: {download_url}",
        f"**Archive Size**: {archive_size} bytes",
        "",
        "## ✅ testlog.json extracted and parsed successfully",
        f"- 📝 Test Summary ID: {analysis.summary.get('id')}",
        f"- 👤 Initiated By: {analysis.summary.get('initiatedByUser') or 'Unknown'}",
        f"- 🧪 Total Steps: {len(analysis.steps)}",
        f"- ❌ Failures: {len(analysis.failures)}",
        "",
    ]

    if analysis.failures:
        lines.append("### ❌ Failure Details")
        for i, failure in enumerate(analysis.failures, 1):
            lines.append(f"- {i}. **{failure.name}** (Reason: {failure.reason or 'N/A'})")
            if failure.message:
                lines.append(f"   ↳ Message: {failure.message}")
            if failure.stacktrace:
                lines.append("   ↳ Stacktrace: Present")
            if failure.screenshot:
                lines.append("   ↳ Screenshot: Captured")
            lines.append("")

    return "\n".join(lines)
