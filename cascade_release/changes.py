"""Change record resolution.

Determines, per package, the change records that apply to it: the explicit
records found on disk plus records inferred from upstream bumps whose new
version no longer satisfies a dependent's declared range.

Resolution is a fixed-point iteration. Each pass predicts the next version
of every package from its current bump kind, then checks every production
edge against those predictions. Bump kinds only ever rise, so the loop
terminates.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .graph import PRODUCTION_ONLY, DependencyGraph
from .models import (
    BumpKind,
    ChangeRecord,
    DependencyEdge,
    DependencyKind,
    ErrorKind,
    PlanError,
    PlanPolicy,
    RecordOrigin,
)
from .ranges import InvalidRangeError, satisfies
from .versions import bump_version, compare_bumps, is_valid_version, max_bump


@dataclass
class Resolution:
    """Output of the change record resolver.

    Attributes:
        records: Package name → effective records (explicit first, then at
            most one inferred record). Only packages with records appear.
        activity: Package name → dependency kinds through which it reaches a
            dependency that has a bump.
        invalid: Package names excluded because their version is malformed.
        errors: InvalidVersion records sorted by package name, then
            UnknownPackage records sorted by carrying package.
    """

    records: dict[str, list[ChangeRecord]] = field(default_factory=dict)
    activity: dict[str, set[DependencyKind]] = field(default_factory=dict)
    invalid: set[str] = field(default_factory=set)
    errors: list[PlanError] = field(default_factory=list)

    def bump_for(self, name: str) -> BumpKind | None:
        return max_bump(r.bump for r in self.records.get(name, []))

    def explicit_for(self, name: str) -> list[ChangeRecord]:
        return [
            r for r in self.records.get(name, []) if r.origin is RecordOrigin.EXPLICIT
        ]


def _range_left(edge: DependencyEdge, new_version: str) -> bool:
    """True when ``new_version`` no longer satisfies the edge's declared range.

    Ranges that are not semver syntax (dist-tags like ``latest``, ``file:``
    and ``link:`` paths, git and URL specs) follow whatever gets published,
    so no bump ever leaves them.
    """
    try:
        return not satisfies(edge.range, new_version)
    except InvalidRangeError:
        return False


def _route_explicit_records(
    graph: DependencyGraph, resolution: Resolution
) -> dict[str, list[ChangeRecord]]:
    """Group every snapshot change record under the package it targets.

    A record may be carried by any package; it applies to the package its
    ``package`` field names. Records naming a package outside the snapshot
    are reported as UnknownPackage errors.
    """
    routed: dict[str, list[ChangeRecord]] = {}
    for carrier in sorted(graph.nodes):
        package = graph.nodes[carrier]
        for record in package.change_records:
            if record.package not in graph.nodes:
                resolution.errors.append(
                    PlanError(
                        kind=ErrorKind.UNKNOWN_PACKAGE,
                        message=(
                            f"{carrier} has a {record.bump.value} change record for "
                            f"{record.package}, which is not in the snapshot"
                        ),
                        packages=[carrier],
                        repo=package.repo,
                    )
                )
                continue
            routed.setdefault(record.package, []).append(
                record.model_copy(update={"origin": RecordOrigin.EXPLICIT})
            )
    return routed


def _describe(violations: list[tuple[DependencyEdge, str]]) -> str:
    updates = ", ".join(f"{edge.dependency}@{version}" for edge, version in violations)
    return f"Update dependencies: {updates}"


def resolve_change_records(graph: DependencyGraph, policy: PlanPolicy) -> Resolution:
    """Compute the effective change records of every package.

    Explicit records apply to the package they name, whichever package
    carries them. A package without explicit records gets exactly one
    inferred ``patch`` record once a production dependency's next version
    leaves its declared range. A package with explicit records gets an
    inferred record of the kind the policy requires (see
    ``PlanPolicy.escalation_bump``), but only when that raises its bump.
    Peer and development edges never create records; they are tracked in
    ``activity``.

    Args:
        graph: Dependency graph of the snapshot.
        policy: Escalation policy.

    Returns:
        Resolution with records, activity, invalid packages and errors.
    """
    resolution = Resolution()

    for name in sorted(graph.nodes):
        package = graph.nodes[name]
        if not is_valid_version(package.version):
            resolution.invalid.add(name)
            resolution.errors.append(
                PlanError(
                    kind=ErrorKind.INVALID_VERSION,
                    message=f"{name} has an invalid version: {package.version!r}",
                    packages=[name],
                    repo=package.repo,
                )
            )

    for target, records in _route_explicit_records(graph, resolution).items():
        if target not in resolution.invalid:
            resolution.records[target] = records

    valid = sorted(n for n in graph.nodes if n not in resolution.invalid)
    inferred: dict[str, ChangeRecord] = {}

    changed = True
    while changed:
        changed = False
        for name in valid:
            current = resolution.bump_for(name)
            violations: list[tuple[DependencyEdge, str]] = []
            required: BumpKind | None = None
            for edge in graph.dependencies_of(name, PRODUCTION_ONLY):
                dep_bump = resolution.bump_for(edge.dependency)
                if dep_bump is None or edge.dependency in resolution.invalid:
                    continue
                new_version = bump_version(graph.nodes[edge.dependency].version, dep_bump)
                if _range_left(edge, new_version):
                    violations.append((edge, new_version))
                    needed = policy.escalation_bump(dep_bump)
                    if required is None or compare_bumps(needed, required) > 0:
                        required = needed
            if required is None:
                continue

            explicit = resolution.explicit_for(name)
            if not explicit:
                # Minimal safe republish for a package nobody asked to release
                required = BumpKind.PATCH
                if name in inferred:
                    continue
            elif current is not None and compare_bumps(required, current) <= 0:
                continue

            record = ChangeRecord(
                package=name,
                bump=required,
                origin=RecordOrigin.INFERRED,
                description=_describe(violations),
            )
            inferred[name] = record
            resolution.records[name] = explicit + [record]
            changed = True

    for name in valid:
        for edge in graph.dependencies_of(name):
            if edge.dependency in resolution.invalid:
                continue
            if resolution.bump_for(edge.dependency) is not None:
                resolution.activity.setdefault(name, set()).add(edge.kind)

    return resolution
