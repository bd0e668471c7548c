"""Report rendering for plans.

Two Markdown reports are produced from a Plan:
- analyze: the dependency graph and the pending explicit changes, with no
  hypothetical versions
- preview: the full hypothetical publish plan, with next versions and order

Output must be byte-for-byte reproducible for the same snapshot, so every
list is rendered in a fixed order and nothing time-dependent is included.
"""

from __future__ import annotations

import json
from collections.abc import Collection

from .graph import DependencyGraph, DuplicatePackageError, build_graph
from .models import BumpKind, Plan, Snapshot, VersionChange
from .versions import max_bump


def markdown_table(headers: list[str], rows: list[list[str]]) -> list[str]:
    """Format a Markdown table from headers and rows."""
    lines = [f"| {' | '.join(headers)} |", f"|{'|'.join('---' for _ in headers)}|"]
    for row in rows:
        lines.append(f"| {' | '.join(_cell(c) for c in row)} |")
    return lines


def markdown_list(items: list[str], ordered: bool = False) -> list[str]:
    return [f"{i}. {item}" if ordered else f"- {item}" for i, item in enumerate(items, 1)]


def markdown_section(title: str, content: list[str], level: int = 2) -> list[str]:
    """Format a section: heading, blank line, content, blank line."""
    return [f"{'#' * level} {title}", "", *content, ""]


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def _code(text: str) -> str:
    return f"`{text}`"


def _errors_section(plan: Plan) -> list[str]:
    if not plan.errors:
        return []
    items = [f"**{e.kind.value}**: {e.message}" for e in plan.errors]
    return markdown_section("Errors", markdown_list(items))


def _info_section(plan: Plan) -> list[str]:
    if not plan.info:
        return []
    items = [f"{_code(i.package)} ({i.reason.value})" for i in plan.info]
    return markdown_section("No Changes", markdown_list(items))


def _ordered_changes(plan: Plan) -> list[VersionChange]:
    """Version changes in publish order; excluded packages follow by name."""
    position = {name: i for i, name in enumerate(plan.publishing_order)}
    return sorted(
        plan.version_changes,
        key=lambda c: (position.get(c.package, len(position)), c.package),
    )


def _change_rows(changes: list[VersionChange]) -> list[list[str]]:
    return [
        [_code(c.package), c.from_version, c.to_version, c.bump.value] for c in changes
    ]


def render_preview(plan: Plan, published: Collection[str] = ()) -> str:
    """Render the hypothetical publish plan as Markdown.

    Args:
        plan: The plan to render.
        published: Packages whose planned version an external publish-state
            record already holds. Listed separately and left out of the order.
    """
    lines = ["# Publishing Plan", ""]
    lines += _errors_section(plan)

    order = [n for n in plan.publishing_order if n not in published]
    if order:
        by_name = {c.package: c for c in plan.version_changes}
        items = [
            f"{_code(name)} {by_name[name].from_version} → {by_name[name].to_version}"
            for name in order
        ]
        lines += markdown_section("Publishing Order", markdown_list(items, ordered=True))
    else:
        lines += markdown_section("Publishing Order", ["_No packages to publish._"])

    headers = ["Package", "From", "To", "Bump"]
    changes = _ordered_changes(plan)
    groups = [
        (
            "Version Changes (from changesets)",
            [c for c in changes if c.has_changesets and not c.needs_bump_escalation],
        ),
        (
            "Version Changes (bump escalation)",
            [c for c in changes if c.needs_bump_escalation],
        ),
        (
            "Version Changes (auto-generated)",
            [c for c in changes if c.will_generate_changeset],
        ),
    ]
    for title, group in groups:
        if group:
            lines += markdown_section(title, markdown_table(headers, _change_rows(group)))

    if plan.breaking_cascades:
        items = [
            f"{_code(source)} → {', '.join(_code(n) for n in affected)}"
            for source, affected in sorted(plan.breaking_cascades.items())
        ]
        lines += markdown_section("Breaking Cascades", markdown_list(items))

    skipped = [n for n in plan.publishing_order if n in published]
    if skipped:
        lines += markdown_section(
            "Already Published", markdown_list([_code(n) for n in skipped])
        )

    lines += _info_section(plan)

    summary = [
        f"{len(order)} packages to publish",
        f"{sum(c.will_generate_changeset for c in changes)} auto-generated changesets",
        f"{sum(c.needs_bump_escalation for c in changes)} bump escalations",
        f"{len(plan.breaking_cascades)} breaking cascades",
        f"{len(plan.errors)} errors",
    ]
    lines += markdown_section("Summary", markdown_list(summary))
    return "\n".join(lines).rstrip("\n") + "\n"


def _graph_section(graph: DependencyGraph) -> list[str]:
    edges = [
        graph.edges[key]
        for key in sorted(graph.edges, key=lambda k: (k[0], k[1], k[2].value))
    ]
    if not edges:
        return markdown_section("Dependency Graph", ["_No internal dependencies._"])
    items = [
        f"{_code(e.dependent)} → {_code(e.dependency)} ({e.kind.value}, {_code(e.range)})"
        for e in edges
    ]
    return markdown_section("Dependency Graph", markdown_list(items))


def _cycles_section(graph: DependencyGraph) -> list[str]:
    content: list[str] = []
    for title, cycles in (
        ("Production", graph.production_cycles),
        ("Development", graph.dev_cycles),
    ):
        if cycles:
            items = [", ".join(_code(n) for n in cycle) for cycle in cycles]
            content += markdown_section(title, markdown_list(items), level=3)
    if not content:
        return markdown_section("Cycles", ["_No dependency cycles._"])
    return ["## Cycles", "", *content]


def _try_graph(snapshot: Snapshot) -> DependencyGraph | None:
    # Duplicate names already surface as a plan error
    try:
        return build_graph(snapshot.packages)
    except DuplicatePackageError:
        return None


def render_analyze(snapshot: Snapshot, plan: Plan) -> str:
    """Render the dependency graph and pending explicit changes as Markdown.

    No hypothetical versions are shown: only what the snapshot already
    decides (declared dependencies and explicit change records).
    """
    lines = ["# Dependency Analysis", ""]
    lines += _errors_section(plan)

    packages = sorted(snapshot.packages, key=lambda p: (p.name, p.repo or ""))
    rows = [
        [
            _code(p.name),
            p.version,
            str(len(p.dependencies)),
            str(len(p.dev_dependencies)),
            str(len(p.peer_dependencies)),
            str(len(p.change_records)),
        ]
        for p in packages
    ]
    headers = ["Package", "Version", "Deps", "Dev Deps", "Peer Deps", "Change Records"]
    lines += markdown_section("Packages", markdown_table(headers, rows))

    graph = _try_graph(snapshot)
    if graph is not None:
        lines += _graph_section(graph)
        lines += _cycles_section(graph)

    # Records apply to the package they name, whichever package carries them
    by_target: dict[str, list[BumpKind]] = {}
    for p in packages:
        for record in p.change_records:
            by_target.setdefault(record.package, []).append(record.bump)
    pending = [
        [_code(name), str(len(bumps)), max_bump(bumps).value]
        for name, bumps in sorted(by_target.items())
    ]
    if pending:
        headers = ["Package", "Explicit Records", "Largest Bump"]
        lines += markdown_section("Pending Changes", markdown_table(headers, pending))
    else:
        lines += markdown_section("Pending Changes", ["_No pending change records._"])

    lines += _info_section(plan)

    summary = [
        f"{len(snapshot.packages)} packages",
        f"{len(pending)} with pending change records",
        f"{len(snapshot.unresolved)} unresolved repositories",
        f"{len(plan.errors)} errors",
    ]
    lines += markdown_section("Summary", markdown_list(summary))
    return "\n".join(lines).rstrip("\n") + "\n"


def render_json(plan: Plan) -> str:
    """Render the plan as JSON with stable field and list ordering."""
    return plan.model_dump_json(indent=2) + "\n"


def render_analyze_json(snapshot: Snapshot, plan: Plan) -> str:
    """Render the dependency graph and the plan as one JSON document.

    ``graph`` is null when the snapshot has duplicate package names.
    """
    graph = _try_graph(snapshot)
    data = {
        "graph": graph.to_dict() if graph is not None else None,
        "plan": plan.model_dump(mode="json"),
    }
    return json.dumps(data, indent=2) + "\n"
