"""Deterministic scheduling pipeline: findings in, validated backlog out."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wavex.artifacts import canonical_dumps, sha256_text
from wavex.config import default_scheduler_policy
from wavex.scheduler.conflicts import resolve_conflicts
from wavex.scheduler.graph import build_dependency_graph, ensure_acyclic
from wavex.scheduler.ids import assign_ids, task_id_sort_key
from wavex.scheduler.registry import finding_to_record
from wavex.scheduler.splitter import split_oversized
from wavex.scheduler.types import (
    Backlog,
    ConflictDiagnostic,
    PriorAssignment,
    SchedulerPolicy,
    SplitPart,
    Task,
    Wave,
)
from wavex.scheduler.validator import validate_backlog
from wavex.scheduler.waves import assign_waves

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from wavex.scheduler.registry import FindingRegistry
    from wavex.scheduler.waves import WaveAssignment

logger = logging.getLogger(__name__)


def schedule_backlog(
    registry: FindingRegistry,
    *,
    splits: Mapping[str, Sequence[SplitPart]] | None = None,
    prior: PriorAssignment | None = None,
    policy: SchedulerPolicy | None = None,
) -> Backlog:
    """Run every stage in order and return the validated backlog.

    Any stage failure raises a SchedulerError subclass; no partial
    backlog is ever returned.
    """
    splits = splits or {}
    prior = prior or PriorAssignment()
    policy = policy or default_scheduler_policy()
    input_hash = compute_input_hash(registry, splits, policy)

    ensure_acyclic(build_dependency_graph(registry), stage="pre-split")
    logger.info("Registry accepted: %d finding(s), no cycles", len(registry))

    ordered, diagnostics = resolve_conflicts(registry, policy)
    logger.info("Conflict resolution: %d overlap(s) recorded", len(diagnostics))

    split = split_oversized(ordered, splits)
    ensure_acyclic(build_dependency_graph(split), stage="post-split")
    logger.info("Splitting complete: %d schedulable finding(s)", len(split))

    assignment = assign_waves(split, max_tasks_per_wave=policy.max_tasks_per_wave)
    ids, retired = assign_ids(assignment, prior)

    backlog = _materialize(assignment, ids, retired, diagnostics, input_hash)
    validate_backlog(backlog, require_contiguous_ids=prior.is_empty)
    logger.info(
        "Backlog ready: %d task(s) across wave(s) %s",
        len(backlog.tasks),
        "".join(wave.letter for wave in backlog.waves),
    )
    return backlog


def compute_input_hash(
    registry: FindingRegistry,
    splits: Mapping[str, Sequence[SplitPart]],
    policy: SchedulerPolicy,
) -> str:
    """Hash of the canonical scheduling inputs (prior IDs excluded)."""
    payload: dict[str, Any] = {
        "findings": [finding_to_record(finding) for finding in registry],
        "splits": {
            key: [
                {
                    "key": part.key,
                    "size": part.size.value,
                    "title": part.title,
                    "touches": list(part.touches),
                }
                for part in parts
            ]
            for key, parts in sorted(splits.items())
        },
        "policy": {
            "equal_priority_conflicts": policy.equal_priority_conflicts,
            "max_tasks_per_wave": policy.max_tasks_per_wave,
            "conflict_ignore": list(policy.conflict_ignore),
        },
    }
    return sha256_text(canonical_dumps(payload))


def _materialize(
    assignment: WaveAssignment,
    ids: dict[str, str],
    retired: tuple[str, ...],
    diagnostics: tuple[ConflictDiagnostic, ...],
    input_hash: str,
) -> Backlog:
    waves: list[Wave] = []
    for letter, placements in assignment.waves.items():
        tasks: list[Task] = []
        for placement in placements:
            finding = placement.finding
            task_id = ids[finding.key]
            tasks.append(
                Task(
                    id=task_id,
                    key=finding.key,
                    wave=letter,
                    sequence=int(task_id[1:]),
                    priority=finding.priority,
                    size=finding.size,
                    level=placement.level,
                    dependencies=tuple(
                        sorted((ids[dep] for dep in finding.depends_on), key=task_id_sort_key)
                    ),
                    title=finding.title,
                    touches=finding.touches,
                    split_from=finding.split_from,
                )
            )
        waves.append(Wave(letter=letter, tasks=tuple(tasks)))

    return Backlog(
        waves=tuple(waves),
        diagnostics=diagnostics,
        retired_ids=retired,
        input_hash=input_hash,
    )
