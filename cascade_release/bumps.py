"""Version bump calculation.

Combines the explicit and inferred change records of each package into a
single target bump and next version.
"""

from __future__ import annotations

from .changes import Resolution
from .graph import DependencyGraph
from .models import RecordOrigin, VersionChange
from .versions import bump_version, compare_bumps, max_bump


def compute_version_changes(
    graph: DependencyGraph, resolution: Resolution
) -> list[VersionChange]:
    """Compute one VersionChange per package with any effective record.

    The target bump is the biggest kind across all effective records.
    ``needs_bump_escalation`` is set when that target exceeds every explicit
    record, i.e. the dependency graph forced a bigger bump than a human asked
    for.

    Returns:
        Version changes sorted by package name.
    """
    changes: list[VersionChange] = []
    for name in sorted(resolution.records):
        records = resolution.records[name]
        target = max_bump(r.bump for r in records)
        if target is None:
            continue
        explicit = max_bump(
            r.bump for r in records if r.origin is RecordOrigin.EXPLICIT
        )
        inferred = any(r.origin is RecordOrigin.INFERRED for r in records)
        current = graph.nodes[name].version
        changes.append(
            VersionChange(
                package=name,
                from_version=current,
                to_version=bump_version(current, target),
                bump=target,
                has_changesets=explicit is not None,
                will_generate_changeset=explicit is None and inferred,
                needs_bump_escalation=(
                    explicit is not None and compare_bumps(target, explicit) > 0
                ),
            )
        )
    return changes
