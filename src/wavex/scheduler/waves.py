"""Wave assignment from topological level and priority band."""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wavex.scheduler.errors import WaveOverflowError
from wavex.scheduler.graph import build_dependency_graph, topological_order
from wavex.scheduler.types import WAVE_LETTERS, Finding, Priority

if TYPE_CHECKING:
    from wavex.scheduler.graph import DependencyGraph
    from wavex.scheduler.registry import FindingRegistry

logger = logging.getLogger(__name__)

# Inclusive (floor, ceiling) wave letters per priority tier.
PRIORITY_BANDS: dict[Priority, tuple[str, str]] = {
    Priority.CRITICAL: ("A", "B"),
    Priority.HIGH: ("B", "C"),
    Priority.MEDIUM: ("D", "E"),
    Priority.LOW: ("F", "F"),
}


@dataclass(frozen=True)
class Placement:
    """A finding placed in a wave."""

    finding: Finding
    wave: str
    level: int
    position: int  # Declaration index in the post-split registry


@dataclass(frozen=True)
class WaveAssignment:
    """Placements grouped by wave letter, each group in final order."""

    waves: dict[str, tuple[Placement, ...]]

    def wave_of(self, key: str) -> str:
        for letter, placements in self.waves.items():
            for placement in placements:
                if placement.finding.key == key:
                    return letter
        raise KeyError(f"Finding `{key}` was not placed")


def ordering_key(finding: Finding, position: int) -> tuple[int, int, int]:
    """Within-wave comparator: priority desc, fewer dependencies, declaration order."""
    return (finding.priority.rank, len(finding.depends_on), position)


def assign_waves(
    registry: FindingRegistry,
    *,
    max_tasks_per_wave: int | None = None,
) -> WaveAssignment:
    """Place every finding in a wave A-F.

    ``wave = max(band position, latest prerequisite wave)``. The band
    position is the priority band floor advanced by the length of the
    same-priority prerequisite chain, capped at the band ceiling. Only
    dependency-free Critical findings may land in A. When a wave is at
    capacity the finding spills into the next one.
    """
    graph = build_dependency_graph(registry)
    findings = registry.findings
    order = topological_order(graph)

    levels = [0] * len(findings)
    band_levels = [0] * len(findings)
    for node in order:
        prereqs = graph.prerequisites[node]
        if prereqs:
            levels[node] = 1 + max(levels[p] for p in prereqs)
        same_band = [p for p in prereqs if findings[p].priority is findings[node].priority]
        if same_band:
            band_levels[node] = 1 + max(band_levels[p] for p in same_band)

    wave_index = [-1] * len(findings)
    counts = [0] * len(WAVE_LETTERS)
    for node in _prioritized_topological(graph, findings, range(len(findings))):
        target = _band_position(findings[node], band_levels[node])
        prereqs = graph.prerequisites[node]
        if prereqs:
            target = max(target, 1, *(wave_index[p] for p in prereqs))

        while (
            max_tasks_per_wave is not None
            and target < len(WAVE_LETTERS)
            and counts[target] >= max_tasks_per_wave
        ):
            target += 1
        if target >= len(WAVE_LETTERS):
            unplaced = [findings[i].key for i in order if wave_index[i] < 0]
            raise WaveOverflowError(unplaced)

        wave_index[node] = target
        counts[target] += 1

    grouped: dict[str, tuple[Placement, ...]] = {}
    for idx, letter in enumerate(WAVE_LETTERS):
        members = [node for node in range(len(findings)) if wave_index[node] == idx]
        if not members:
            continue
        grouped[letter] = tuple(
            Placement(finding=findings[node], wave=letter, level=levels[node], position=node)
            for node in _prioritized_topological(graph, findings, members)
        )
        logger.debug("Wave %s: %s", letter, ", ".join(p.finding.key for p in grouped[letter]))

    return WaveAssignment(waves=grouped)


def _band_position(finding: Finding, band_level: int) -> int:
    floor, ceiling = PRIORITY_BANDS[finding.priority]
    start = WAVE_LETTERS.index(floor)
    width = WAVE_LETTERS.index(ceiling) - start
    return start + min(band_level, width)


def _prioritized_topological(
    graph: DependencyGraph,
    findings: tuple[Finding, ...],
    members: range | list[int],
) -> list[int]:
    member_set = set(members)
    remaining = {
        node: sum(1 for p in graph.prerequisites[node] if p in member_set) for node in member_set
    }
    reverse = graph.dependents()

    ready = [
        (ordering_key(findings[node], node), node) for node, count in remaining.items() if count == 0
    ]
    heapq.heapify(ready)

    ordered: list[int] = []
    while ready:
        _, node = heapq.heappop(ready)
        ordered.append(node)
        for follower in reverse[node]:
            if follower not in member_set:
                continue
            remaining[follower] -= 1
            if remaining[follower] == 0:
                heapq.heappush(ready, (ordering_key(findings[follower], follower), follower))
    return ordered
