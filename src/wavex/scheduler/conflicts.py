"""File-touch conflict detection between independent findings."""

from __future__ import annotations

import logging
from dataclasses import replace
from fnmatch import fnmatch
from typing import TYPE_CHECKING

from wavex.scheduler.graph import build_dependency_graph, topological_order
from wavex.scheduler.registry import FindingRegistry
from wavex.scheduler.types import (
    EQUAL_PRIORITY_DECLARATION_ORDER,
    ConflictDiagnostic,
    ConflictResolution,
    Finding,
    SchedulerPolicy,
)

if TYPE_CHECKING:
    from wavex.scheduler.graph import DependencyGraph

logger = logging.getLogger(__name__)


def resolve_conflicts(
    registry: FindingRegistry,
    policy: SchedulerPolicy,
) -> tuple[FindingRegistry, tuple[ConflictDiagnostic, ...]]:
    """Order or flag findings that touch the same resources.

    Pairs already connected by a dependency path (including ordering
    edges added earlier in this pass) are not conflicts. The returned
    registry carries the synthetic ordering edges; every overlap found
    is reported in the diagnostics.
    """
    graph = build_dependency_graph(registry)
    reach = _prerequisite_closure(graph)
    surfaces = [_conflict_surface(finding.touches, policy.conflict_ignore) for finding in registry]
    findings = registry.findings

    added: dict[int, list[int]] = {}
    diagnostics: list[ConflictDiagnostic] = []

    for i in range(len(findings)):
        if not surfaces[i]:
            continue
        for j in range(i + 1, len(findings)):
            shared = surfaces[i] & surfaces[j]
            if not shared:
                continue
            if j in reach[i] or i in reach[j]:
                continue

            first, second = findings[i], findings[j]
            ordering = _pick_ordering(i, j, first, second, policy)
            if ordering is None:
                diagnostic = ConflictDiagnostic(
                    first=first.key,
                    second=second.key,
                    shared=tuple(sorted(shared)),
                    resolution=ConflictResolution.UNRESOLVED,
                    reason=(
                        f"equal priority ({first.priority.value}); add a dependency "
                        "or give each finding disjoint ownership"
                    ),
                )
                logger.warning(
                    "Unresolved touch conflict between %s and %s on %s",
                    first.key,
                    second.key,
                    ", ".join(diagnostic.shared),
                )
                diagnostics.append(diagnostic)
                continue

            dependent, prerequisite, reason = ordering
            added.setdefault(dependent, []).append(prerequisite)
            _extend_closure(reach, dependent, prerequisite)
            diagnostics.append(
                ConflictDiagnostic(
                    first=first.key,
                    second=second.key,
                    shared=tuple(sorted(shared)),
                    resolution=ConflictResolution.ORDERED,
                    dependent=findings[dependent].key,
                    prerequisite=findings[prerequisite].key,
                    reason=reason,
                )
            )
            logger.debug(
                "Ordered %s after %s (%s)",
                findings[dependent].key,
                findings[prerequisite].key,
                reason,
            )

    if not added:
        return registry, tuple(diagnostics)

    rewritten: list[Finding] = []
    for idx, finding in enumerate(findings):
        extra = [findings[p].key for p in added.get(idx, [])]
        if extra:
            finding = replace(finding, depends_on=(*finding.depends_on, *extra))
        rewritten.append(finding)
    return FindingRegistry(rewritten), tuple(diagnostics)


def _pick_ordering(
    i: int,
    j: int,
    first: Finding,
    second: Finding,
    policy: SchedulerPolicy,
) -> tuple[int, int, str] | None:
    """Return (dependent, prerequisite, reason) or None when ambiguous."""
    if first.priority.rank != second.priority.rank:
        if first.priority.rank > second.priority.rank:
            lower, higher = first, second
            result = (i, j)
        else:
            lower, higher = second, first
            result = (j, i)
        reason = f"priority: {lower.priority.value} waits on {higher.priority.value}"
        return result[0], result[1], reason

    if policy.equal_priority_conflicts == EQUAL_PRIORITY_DECLARATION_ORDER:
        return j, i, f"policy declaration_order: equal priority ({first.priority.value})"

    return None


def _conflict_surface(touches: tuple[str, ...], ignore: tuple[str, ...]) -> set[str]:
    return {item for item in touches if not any(fnmatch(item, pattern) for pattern in ignore)}


def _prerequisite_closure(graph: DependencyGraph) -> list[set[int]]:
    """Transitive prerequisites of every node."""
    reach: list[set[int]] = [set() for _ in graph.keys]
    for node in topological_order(graph):
        for prereq in graph.prerequisites[node]:
            reach[node].add(prereq)
            reach[node] |= reach[prereq]
    return reach


def _extend_closure(reach: list[set[int]], dependent: int, prerequisite: int) -> None:
    gained = reach[prerequisite] | {prerequisite}
    for node, prereqs in enumerate(reach):
        if node == dependent or dependent in prereqs:
            prereqs |= gained
