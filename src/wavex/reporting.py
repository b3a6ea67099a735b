"""Deterministic backlog payloads and refusal reports."""

from __future__ import annotations

from typing import Any

from wavex.scheduler.errors import SchedulerError
from wavex.scheduler.types import (
    BACKLOG_SCHEMA_VERSION,
    Backlog,
    ConflictDiagnostic,
    ConflictResolution,
    PriorAssignment,
    Priority,
    Size,
    Task,
    Wave,
)

REFUSAL_SCHEMA_VERSION = "wavex.refusal.v1"


def backlog_to_dict(backlog: Backlog) -> dict[str, Any]:
    """Convert a backlog to its deterministic JSON payload."""
    return {
        "schema_version": BACKLOG_SCHEMA_VERSION,
        "status": "ok",
        "input_hash": backlog.input_hash,
        "waves": [
            {
                "wave": wave.letter,
                "tasks": [_task_to_dict(task) for task in wave.tasks],
            }
            for wave in backlog.waves
        ],
        "diagnostics": [_diagnostic_to_dict(item, backlog) for item in backlog.diagnostics],
        "retired_ids": list(backlog.retired_ids),
    }


def backlog_from_dict(payload: dict[str, Any]) -> Backlog:
    """Load a backlog from its JSON payload."""
    waves: list[Wave] = []
    for wave_raw in payload.get("waves", []):
        letter = str(wave_raw["wave"])
        tasks = tuple(
            Task(
                id=str(task_raw["id"]),
                key=str(task_raw["key"]),
                wave=str(task_raw.get("wave", letter)),
                sequence=int(task_raw.get("sequence", 0)),
                priority=Priority.parse(task_raw["priority"]),
                size=Size.parse(task_raw["size"]),
                level=int(task_raw.get("level", 0)),
                dependencies=tuple(task_raw.get("dependencies", [])),
                title=str(task_raw.get("title", "")),
                touches=tuple(task_raw.get("touches", [])),
                split_from=task_raw.get("split_from"),
            )
            for task_raw in wave_raw.get("tasks", [])
        )
        waves.append(Wave(letter=letter, tasks=tasks))

    diagnostics = tuple(
        ConflictDiagnostic(
            first=str(item["first"]),
            second=str(item["second"]),
            shared=tuple(item.get("shared", [])),
            resolution=ConflictResolution(item["resolution"]),
            dependent=item.get("dependent"),
            prerequisite=item.get("prerequisite"),
            reason=str(item.get("reason", "")),
        )
        for item in payload.get("diagnostics", [])
    )

    return Backlog(
        waves=tuple(waves),
        diagnostics=diagnostics,
        retired_ids=tuple(payload.get("retired_ids", [])),
        input_hash=str(payload.get("input_hash", "")),
    )


def prior_assignment_from_dict(payload: dict[str, Any]) -> PriorAssignment:
    """Extract the key -> ID table and retired IDs from a previous backlog."""
    ids: dict[str, str] = {}
    for wave_raw in payload.get("waves", []):
        for task_raw in wave_raw.get("tasks", []):
            ids[str(task_raw["key"])] = str(task_raw["id"])
    return PriorAssignment(
        ids=ids,
        retired=tuple(str(item) for item in payload.get("retired_ids", [])),
    )


def refusal_to_dict(error: SchedulerError) -> dict[str, Any]:
    """Stable refusal report for a fatal scheduling error."""
    return {
        "schema_version": REFUSAL_SCHEMA_VERSION,
        "status": "refused",
        "refusal": error.to_dict(),
    }


def explain_task(backlog: Backlog, task_id: str) -> str:
    """Render deterministic explanation for one task."""
    index = backlog.task_index()
    task = index.get(task_id)
    if task is None:
        raise KeyError(f"Task `{task_id}` is not in the backlog")

    dependents = [other.id for other in backlog.tasks if task.id in other.dependencies]
    lines = [
        f"task: {task.id}",
        f"key: {task.key}",
        f"title: {task.title or 'none'}",
        f"wave: {task.wave}",
        f"priority: {task.priority.value}",
        f"size: {task.size.value}",
        f"level: {task.level}",
    ]
    if task.split_from:
        lines.append(f"split_from: {task.split_from}")
    lines.append("dependencies:")
    if task.dependencies:
        lines.extend(f"- {dep} ({index[dep].key})" if dep in index else f"- {dep}" for dep in task.dependencies)
    else:
        lines.append("- none")
    lines.append("dependents:")
    if dependents:
        lines.extend(f"- {dep}" for dep in dependents)
    else:
        lines.append("- none")

    origins = {task.key, task.split_from}
    conflicts = [item for item in backlog.diagnostics if origins & {item.first, item.second}]
    if conflicts:
        lines.append("conflicts:")
        for item in conflicts:
            lines.append(f"- {item.first} / {item.second}: {item.resolution.value} ({item.reason})")
    return "\n".join(lines)


def _task_to_dict(task: Task) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": task.id,
        "key": task.key,
        "wave": task.wave,
        "sequence": task.sequence,
        "priority": task.priority.value,
        "size": task.size.value,
        "level": task.level,
        "dependencies": list(task.dependencies),
        "title": task.title,
        "touches": list(task.touches),
    }
    if task.split_from is not None:
        data["split_from"] = task.split_from
    return data


def _diagnostic_to_dict(item: ConflictDiagnostic, backlog: Backlog) -> dict[str, Any]:
    data: dict[str, Any] = {
        "first": item.first,
        "second": item.second,
        "shared": list(item.shared),
        "resolution": item.resolution.value,
        "reason": item.reason,
        "tasks": {
            item.first: list(backlog.task_ids_for_key(item.first)),
            item.second: list(backlog.task_ids_for_key(item.second)),
        },
    }
    if item.dependent is not None:
        data["dependent"] = item.dependent
        data["prerequisite"] = item.prerequisite
    return data
