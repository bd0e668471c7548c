"""Publish state tracking.

Keeps a record of which package versions have already been published so a
resumed or repeated run only executes what is still pending. The planner
never reads or writes this state: callers filter a Plan with it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from .models import Plan


class PublishState(BaseModel):
    """Published versions, keyed by package name.

    Attributes:
        published: Map of package name → sorted list of published versions.
    """

    published: dict[str, list[str]] = Field(default_factory=dict)


def load_state(path: Path) -> PublishState:
    """Load publish state from JSON. A missing file is an empty state."""
    if not path.exists():
        return PublishState()
    return PublishState.model_validate_json(path.read_text())


def save_state(path: Path, state: PublishState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.model_dump_json(indent=2) + "\n")


def is_published(state: PublishState, package: str, version: str) -> bool:
    return version in state.published.get(package, [])


def record_published(state: PublishState, package: str, version: str) -> PublishState:
    """Return a copy of ``state`` with ``package@version`` recorded."""
    published = {name: list(versions) for name, versions in state.published.items()}
    versions = set(published.get(package, []))
    versions.add(version)
    published[package] = sorted(versions)
    return PublishState(published=dict(sorted(published.items())))


def already_published(plan: Plan, state: PublishState) -> list[str]:
    """Packages in the publish order whose planned version is already out."""
    result: list[str] = []
    for name in plan.publishing_order:
        change = plan.change_for(name)
        if change is not None and is_published(state, name, change.to_version):
            result.append(name)
    return result


def pending_order(plan: Plan, state: PublishState) -> list[str]:
    """The publish order with already-published packages filtered out."""
    done = set(already_published(plan, state))
    return [name for name in plan.publishing_order if name not in done]
