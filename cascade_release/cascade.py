"""Breaking change cascade analysis."""

from __future__ import annotations

from collections import deque

from .graph import DependencyGraph
from .models import BumpKind, PlanPolicy, VersionChange


def cascade_from(graph: DependencyGraph, source: str, policy: PlanPolicy) -> list[str]:
    """Return every package that transitively depends on ``source``.

    Walks dependents breadth-first over the edge kinds the policy lets
    cascade (production only by default). Each package is visited once, so
    cycles are safe. ``source`` itself is never part of its own cascade.
    """
    kinds = policy.cascade_kinds
    visited = {source}
    queue = deque([source])
    affected: set[str] = set()
    while queue:
        node = queue.popleft()
        for edge in graph.dependents_of(node, kinds):
            if edge.dependent not in visited:
                visited.add(edge.dependent)
                affected.add(edge.dependent)
                queue.append(edge.dependent)
    return sorted(affected)


def breaking_cascades(
    graph: DependencyGraph, changes: list[VersionChange], policy: PlanPolicy
) -> dict[str, list[str]]:
    """Map every major-bumped package to the dependents its break reaches.

    Packages without a major bump never appear as a source. A package may
    appear in several cascades. Sources whose cascade is empty are omitted.
    """
    cascades: dict[str, list[str]] = {}
    for change in sorted(changes, key=lambda c: c.package):
        if change.bump is not BumpKind.MAJOR:
            continue
        affected = cascade_from(graph, change.package, policy)
        if affected:
            cascades[change.package] = affected
    return cascades
