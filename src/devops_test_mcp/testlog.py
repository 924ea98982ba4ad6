"""Parsing of test execution logs into steps and failures.

Two log shapes are handled:

- `testlog.json` from a downloaded archive: a tree (or list of trees) whose
  nodes nest further nodes under `events` and `items`.
- The `/results/<id>/logs` endpoint: a flat list of top-level items whose
  interesting `events` (steps, configuration, device info) are surfaced as
  informational sub-steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


SUMMARY_FIELDS = ("id", "initiatedByUser", "startTime", "endTime", "duration", "verdict", "status")

# Event types (by substring) worth listing alongside real steps.
INFO_EVENT_MARKERS = ("step", "config", "device")


@dataclass
class Step:
    id: Any
    path: str
    name: str
    type: str | None
    start_time: Any = None
    end_time: Any = None
    duration: Any = None
    verdict: str | None = "UNKNOWN"
    properties: dict[str, Any] = field(default_factory=dict)
    verdicts: Any = None
    level: int = 0
    is_event: bool = False

    @property
    def failed(self) -> bool:
        return self.verdict == "FAIL"


@dataclass
class Failure:
    step_id: Any
    name: str
    type: str | None
    time: Any
    reason: str
    message: str | None = None
    stacktrace: str | None = None
    screenshot: Any = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class TestLogAnalysis:
    """Summary, steps and failures extracted from a test log."""

    __test__ = False

    summary: dict[str, Any] = field(default_factory=dict)
    steps: list[Step] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)


def _join_path(parent: str, node_id: Any) -> str:
    if node_id is None:
        return parent
    return f"{parent}.{node_id}" if parent else str(node_id)


def _end_properties(item: dict[str, Any]) -> dict[str, Any]:
    end = item.get("end")
    if not isinstance(end, dict):
        return {}
    props = end.get("properties")
    return props if isinstance(props, dict) else {}


def _step_from_item(item: dict[str, Any], parent_path: str, level: int) -> Step | None:
    """Build a Step for log nodes that carry a name or a type."""
    properties = item.get("properties")
    if not isinstance(properties, dict) or not (properties.get("name") or item.get("type")):
        return None

    end = item.get("end") if isinstance(item.get("end"), dict) else None
    return Step(
        id=item.get("id"),
        path=_join_path(parent_path, item.get("id")),
        name=properties.get("name") or item.get("type") or "Unnamed step",
        type=item.get("type"),
        start_time=item.get("time"),
        end_time=end.get("time") if end else None,
        duration=end.get("duration") if end else None,
        verdict=_end_properties(item).get("verdict") if end else "UNKNOWN",
        properties=properties,
        verdicts=end.get("verdicts") if end else None,
        level=level,
    )


def parse_test_log(testlog: Any) -> TestLogAnalysis:
    """Walk a `testlog.json` document and collect steps and failures."""
    analysis = TestLogAnalysis()

    if isinstance(testlog, dict):
        analysis.summary = {k: testlog[k] for k in SUMMARY_FIELDS if testlog.get(k)}

    def walk(item: Any, parent_path: str = "", level: int = 0) -> None:
        if not isinstance(item, dict):
            return

        step = _step_from_item(item, parent_path, level)
        if step:
            analysis.steps.append(step)
            if step.failed:
                end_props = _end_properties(item)
                analysis.failures.append(
                    Failure(
                        step_id=step.id,
                        name=step.name,
                        type=step.type,
                        time=step.end_time or step.start_time,
                        reason=end_props.get("reason") or "Unknown failure",
                        message=end_props.get("message"),
                        stacktrace=end_props.get("stacktrace"),
                        screenshot=end_props.get("screenshot"),
                        properties=step.properties,
                    )
                )

        child_path = _join_path(parent_path, item.get("id"))
        for key in ("events", "items"):
            children = item.get(key)
            if isinstance(children, list):
                for child in children:
                    walk(child, child_path, level + 1)

    if isinstance(testlog, list):
        for item in testlog:
            walk(item)
    else:
        walk(testlog)

    return analysis


def parse_result_steps(logs: Any) -> list[Step]:
    """Flatten `/results/<id>/logs` items into steps.

    Top-level items become steps; their step/config/device events become
    informational sub-steps one level deeper.
    """
    steps: list[Step] = []
    if not isinstance(logs, list):
        return steps

    for item in logs:
        if not isinstance(item, dict):
            continue

        step = _step_from_item(item, "", 0)
        if step:
            steps.append(step)

        events = item.get("events")
        if not isinstance(events, list):
            continue
        for event in events:
            if not isinstance(event, dict):
                continue
            event_type = event.get("type") or ""
            if not any(marker in event_type for marker in INFO_EVENT_MARKERS):
                continue
            properties = event.get("properties") if isinstance(event.get("properties"), dict) else {}
            steps.append(
                Step(
                    id=event.get("id"),
                    path=_join_path(_join_path("", item.get("id")), event.get("id")),
                    name=properties.get("name") or event_type,
                    type=event_type,
                    start_time=event.get("time"),
                    verdict="INFO",
                    properties=properties,
                    level=1,
                    is_event=True,
                )
            )

    return steps
