"""Dependency graph construction and cycle detection.

Edges point from a dependent finding to its prerequisite. Nodes are
addressed by their declaration index; ``keys`` and ``index`` translate
between indices and finding keys.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wavex.scheduler.errors import CyclicDependencyError, UnknownDependencyError

if TYPE_CHECKING:
    from wavex.scheduler.registry import FindingRegistry

_UNVISITED = 0
_ON_STACK = 1
_DONE = 2


@dataclass(frozen=True)
class DependencyGraph:
    """Arena-style adjacency lists keyed by declaration index."""

    keys: tuple[str, ...]
    index: dict[str, int]
    prerequisites: tuple[tuple[int, ...], ...]

    def __len__(self) -> int:
        return len(self.keys)

    def dependents(self) -> list[list[int]]:
        """Reverse adjacency: for each node, the nodes that depend on it."""
        reverse: list[list[int]] = [[] for _ in self.keys]
        for node, prereqs in enumerate(self.prerequisites):
            for prereq in prereqs:
                reverse[prereq].append(node)
        return reverse


def build_dependency_graph(registry: FindingRegistry) -> DependencyGraph:
    """Build the graph, failing on references to missing keys."""
    keys = registry.keys()
    index = {key: idx for idx, key in enumerate(keys)}

    prerequisites: list[tuple[int, ...]] = []
    for finding in registry:
        edges: list[int] = []
        for dep in finding.depends_on:
            target = index.get(dep)
            if target is None:
                raise UnknownDependencyError(finding.key, dep)
            if target not in edges:
                edges.append(target)
        prerequisites.append(tuple(edges))

    return DependencyGraph(keys=keys, index=index, prerequisites=tuple(prerequisites))


def find_cycle(graph: DependencyGraph) -> list[str] | None:
    """Return the first cycle found as a closed key path, or None.

    Iterative depth-first traversal; a back edge to a node still on the
    stack yields the path from that node to the current one.
    """
    state = [_UNVISITED] * len(graph)

    for root in range(len(graph)):
        if state[root] != _UNVISITED:
            continue
        path = [root]
        cursors = [0]
        state[root] = _ON_STACK

        while path:
            node = path[-1]
            edges = graph.prerequisites[node]
            cursor = cursors[-1]
            if cursor == len(edges):
                state[node] = _DONE
                path.pop()
                cursors.pop()
                continue

            cursors[-1] = cursor + 1
            target = edges[cursor]
            if state[target] == _ON_STACK:
                start = path.index(target)
                return [graph.keys[i] for i in path[start:]] + [graph.keys[target]]
            if state[target] == _UNVISITED:
                state[target] = _ON_STACK
                path.append(target)
                cursors.append(0)

    return None


def ensure_acyclic(graph: DependencyGraph, *, stage: str) -> None:
    """Raise CyclicDependencyError if the graph has a cycle."""
    cycle = find_cycle(graph)
    if cycle is not None:
        raise CyclicDependencyError(cycle, stage=stage)


def topological_order(graph: DependencyGraph) -> list[int]:
    """Prerequisites-first order; ties broken by declaration index.

    The graph must already be acyclic.
    """
    remaining = [len(prereqs) for prereqs in graph.prerequisites]
    reverse = graph.dependents()
    ready = [node for node, count in enumerate(remaining) if count == 0]
    heapq.heapify(ready)

    order: list[int] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for follower in reverse[node]:
            remaining[follower] -= 1
            if remaining[follower] == 0:
                heapq.heappush(ready, follower)

    if len(order) != len(graph):
        raise CyclicDependencyError(find_cycle(graph) or list(graph.keys), stage="topological-sort")
    return order
