"""CLI entry point for cascade-release."""

from __future__ import annotations

from pathlib import Path

import click
from pydantic import ValidationError
from tomlkit.exceptions import ParseError

from cascade_release.console import fatal, step, warn
from cascade_release.models import Plan, PlanPolicy, Snapshot
from cascade_release.plan import resolve_plan
from cascade_release.report import (
    render_analyze,
    render_analyze_json,
    render_json,
    render_preview,
)
from cascade_release.state import (
    PublishState,
    already_published,
    load_state,
    pending_order,
    record_published,
    save_state,
)
from cascade_release.toml import (
    SnapshotFormatError,
    load_policy,
    load_toml,
    snapshot_from_doc,
)


def _load(
    snapshot_path: Path,
    escalation: str | None,
    peer_cascade: bool | None,
    dev_cascade: bool | None,
) -> tuple[Snapshot, PlanPolicy]:
    """Load the snapshot and its policy, with CLI flags taking precedence."""
    try:
        doc = load_toml(snapshot_path)
        snapshot = snapshot_from_doc(doc)
        policy = load_policy(
            doc,
            escalation=escalation,
            cascade_through_peer=peer_cascade,
            cascade_through_dev=dev_cascade,
        )
    except ParseError as exc:
        fatal(f"Invalid TOML in {snapshot_path}: {exc}")
    except ValidationError as exc:
        fatal(f"Invalid snapshot {snapshot_path}:\n{exc}")
    except SnapshotFormatError as exc:
        fatal(f"Invalid snapshot {snapshot_path}: {exc}")
    return snapshot, policy


def _read_state(state_path: Path) -> PublishState:
    """Load the publish state, turning a malformed file into a CLI error."""
    try:
        state = load_state(state_path)
    except ValidationError as exc:
        fatal(f"Invalid publish state {state_path}:\n{exc}")
    return state


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text, nl=False)
    else:
        output.write_text(text)
        click.echo(f"✓ Wrote report to {output}", err=True)


def _finish(plan: Plan, strict: bool) -> None:
    """Warn about plan errors; abort on a duplicate name or in strict mode."""
    if plan.aborted:
        fatal("Duplicate package names in snapshot; no plan was computed.")
    if plan.errors:
        warn(f"Plan has {len(plan.errors)} error(s); see the Errors section.")
        if strict:
            fatal("Plan has errors (--strict).")


def plan_options(func):
    """Options shared by every command that computes a plan."""
    decorators = [
        click.argument(
            "snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path)
        ),
        click.option(
            "--format",
            "fmt",
            type=click.Choice(["markdown", "json"]),
            default="markdown",
            show_default=True,
            help="Report format.",
        ),
        click.option(
            "-o",
            "--output",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Write the report to a file instead of stdout.",
        ),
        click.option(
            "--escalation",
            type=click.Choice(["minor", "match"]),
            default=None,
            help="Bump forced on a dependent of a breaking package. [default: minor]",
        ),
        click.option(
            "--peer-cascade/--no-peer-cascade",
            default=None,
            help="Let peer dependencies propagate breaking cascades.",
        ),
        click.option(
            "--dev-cascade/--no-dev-cascade",
            default=None,
            help="Let dev dependencies propagate breaking cascades.",
        ),
        click.option(
            "--strict", is_flag=True, help="Exit with an error when the plan has errors."
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


@click.group()
@click.version_option(package_name="cascade-release")
def cli() -> None:
    """Plan coordinated releases across interdependent packages."""


@cli.command()
@plan_options
def analyze(
    snapshot: Path,
    fmt: str,
    output: Path | None,
    escalation: str | None,
    peer_cascade: bool | None,
    dev_cascade: bool | None,
    strict: bool,
) -> None:
    """Report the dependency graph and pending changes of a snapshot."""
    step(f"Analyzing {snapshot}")
    snap, policy = _load(snapshot, escalation, peer_cascade, dev_cascade)
    plan = resolve_plan(snap, policy)
    if fmt == "json":
        text = render_analyze_json(snap, plan)
    else:
        text = render_analyze(snap, plan)
    _emit(text, output)
    _finish(plan, strict)


@cli.command()
@plan_options
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Publish state file; already-published versions are skipped.",
)
def preview(
    snapshot: Path,
    fmt: str,
    output: Path | None,
    escalation: str | None,
    peer_cascade: bool | None,
    dev_cascade: bool | None,
    strict: bool,
    state_path: Path | None,
) -> None:
    """Preview the full publish plan: next versions, order and cascades."""
    step(f"Previewing publish plan for {snapshot}")
    snap, policy = _load(snapshot, escalation, peer_cascade, dev_cascade)
    plan = resolve_plan(snap, policy)
    published: list[str] = []
    if state_path is not None:
        published = already_published(plan, _read_state(state_path))
    text = render_json(plan) if fmt == "json" else render_preview(plan, published)
    _emit(text, output)
    _finish(plan, strict)


@cli.command("mark-published")
@click.argument(
    "snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("packages", nargs=-1)
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Publish state file to update.",
)
def mark_published(snapshot: Path, packages: tuple[str, ...], state_path: Path) -> None:
    """Record planned versions as published (default: every pending package)."""
    snap, policy = _load(snapshot, None, None, None)
    plan = resolve_plan(snap, policy)
    if plan.aborted:
        fatal("Duplicate package names in snapshot; no plan was computed.")

    state = _read_state(state_path)
    names = list(packages) or pending_order(plan, state)
    for name in names:
        change = plan.change_for(name)
        if change is None:
            fatal(f"{name} has no planned version change.")
        state = record_published(state, name, change.to_version)
        click.echo(f"  {name}@{change.to_version}")
    save_state(state_path, state)
    click.echo(f"✓ Updated {state_path}")
