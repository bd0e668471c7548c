"""Publishing plan resolution: graph → records → bumps → cascades → order.

This module assembles the planner's stages into one pure function:
1. Build the dependency graph from the snapshot
2. Resolve explicit and inferred change records
3. Compute the version change of every changed package
4. Compute breaking cascades for major bumps
5. Sequence the changed packages into a publish order
6. Report unchanged packages and every error collected on the way

Only a duplicate package name aborts the computation. Every other failure
degrades gracefully into the largest valid partial plan plus an error.
"""

from __future__ import annotations

from .bumps import compute_version_changes
from .cascade import breaking_cascades
from .changes import Resolution, resolve_change_records
from .graph import DependencyGraph, DuplicatePackageError, build_graph
from .models import (
    DependencyKind,
    ErrorKind,
    InfoEntry,
    InfoReason,
    Plan,
    PlanError,
    PlanPolicy,
    Snapshot,
    UnresolvedRepository,
    VersionChange,
)
from .sequencer import publish_order


def unresolved_errors(unresolved: list[UnresolvedRepository]) -> list[PlanError]:
    errors: list[PlanError] = []
    for repo in sorted(unresolved, key=lambda r: r.repo):
        message = f"Repository {repo.repo} could not be resolved"
        if repo.reason:
            message += f": {repo.reason}"
        errors.append(
            PlanError(
                kind=ErrorKind.UNRESOLVED_REPOSITORY,
                message=message,
                packages=[repo.package] if repo.package else [],
                repo=repo.repo,
            )
        )
    return errors


def collect_info(
    graph: DependencyGraph, changes: list[VersionChange], resolution: Resolution
) -> list[InfoEntry]:
    """Annotate every package without a version change.

    A package whose only upstream activity comes through development (or
    peer) edges is tagged "dev-dependency-only changes"; packages excluded
    for a malformed version are tagged "invalid version"; the rest are
    tagged "no changes".
    """
    changed = {c.package for c in changes}
    info: list[InfoEntry] = []
    for name in sorted(graph.nodes):
        if name in changed:
            continue
        activity = resolution.activity.get(name, set())
        if name in resolution.invalid:
            reason = InfoReason.INVALID_VERSION
        elif activity and DependencyKind.PRODUCTION not in activity:
            reason = InfoReason.DEV_DEPENDENCY_ONLY
        else:
            reason = InfoReason.NO_CHANGES
        info.append(InfoEntry(package=name, reason=reason))
    return info


def resolve_plan(snapshot: Snapshot, policy: PlanPolicy | None = None) -> Plan:
    """Compute the publishing plan for a snapshot.

    Args:
        snapshot: Resolved packages plus unresolved repositories.
        policy: Escalation and cascade policy. Defaults to PlanPolicy().

    Returns:
        The Plan. When two packages share a name, the plan holds only errors.
    """
    policy = policy or PlanPolicy()
    errors = unresolved_errors(snapshot.unresolved)

    try:
        graph = build_graph(snapshot.packages)
    except DuplicatePackageError as exc:
        errors.append(
            PlanError(
                kind=ErrorKind.DUPLICATE_PACKAGE_NAME,
                message=str(exc),
                packages=exc.names,
            )
        )
        return Plan(errors=errors)

    resolution = resolve_change_records(graph, policy)
    errors.extend(resolution.errors)

    changes = compute_version_changes(graph, resolution)
    cascades = breaking_cascades(graph, changes, policy)
    order, order_errors = publish_order(graph, changes)
    errors.extend(order_errors)

    return Plan(
        publishing_order=order,
        version_changes=changes,
        breaking_cascades=cascades,
        info=collect_info(graph, changes, resolution),
        errors=errors,
    )
