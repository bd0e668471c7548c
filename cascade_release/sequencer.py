"""Publish order sequencing."""

from __future__ import annotations

from .graph import PRODUCTION_ONLY, DependencyGraph, topo_sort
from .models import ErrorKind, PlanError, VersionChange


def publish_order(
    graph: DependencyGraph, changes: list[VersionChange]
) -> tuple[list[str], list[PlanError]]:
    """Order the changed packages so dependencies publish first.

    Only production edges among changed packages constrain the order;
    unchanged packages are already published. Packages left over by the
    topological sort sit on (or behind) a production cycle: they are
    excluded from the order and reported in one CyclicDependency error.

    Returns:
        Tuple of (publishing order, errors).
    """
    changed = {c.package for c in changes}
    order, blocked = topo_sort(changed, graph, PRODUCTION_ONLY)
    if not blocked:
        return order, []

    in_cycle = [n for n in blocked if n in graph.cyclic]
    message = f"Production dependency cycle among changed packages: {', '.join(blocked)}"
    behind = [n for n in blocked if n not in graph.cyclic]
    if in_cycle and behind:
        message = (
            f"Production dependency cycle among changed packages: {', '.join(in_cycle)}"
            f" (also blocked: {', '.join(behind)})"
        )
    error = PlanError(kind=ErrorKind.CYCLIC_DEPENDENCY, message=message, packages=blocked)
    return order, [error]
