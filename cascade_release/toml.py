"""Snapshot and configuration loading.

Reads the TOML snapshot a repository-resolution step writes out: one
``[[packages]]`` table per resolved repository, one ``[[unresolved]]`` table
per repository that could not be read, and an optional ``[policy]`` table.

Example:

    [policy]
    escalation = "minor"
    cascade_through_peer = false

    [[packages]]
    name = "@scope/core"
    version = "1.4.0"
    repo = "https://github.com/scope/core"

    [packages.dependencies]
    "@scope/util" = "^2.0.0"

    [[packages.changes]]
    bump = "minor"
    description = "Add streaming API"

    [[unresolved]]
    repo = "https://github.com/scope/legacy"
    reason = "clone failed"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit

from .models import Package, PlanPolicy, Snapshot, UnresolvedRepository


class SnapshotFormatError(ValueError):
    """Raised when a snapshot table has the wrong TOML shape."""


def _array_of_tables(table: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(t, dict) for t in value):
        raise SnapshotFormatError(f"{key!r} must be an array of tables ([[{key}]])")
    return list(value)


def load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file into plain Python containers."""
    return tomlkit.parse(path.read_text()).unwrap()


def get_package_tables(doc: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract the ``[[packages]]`` tables, defaulting to none.

    Raises:
        SnapshotFormatError: If ``packages`` is not an array of tables.
    """
    return _array_of_tables(doc, "packages")


def get_unresolved_tables(doc: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract the ``[[unresolved]]`` tables, defaulting to none."""
    return _array_of_tables(doc, "unresolved")


def get_policy_table(doc: dict[str, Any]) -> dict[str, Any]:
    """Extract the ``[policy]`` table, defaulting to empty."""
    policy = doc.get("policy", {})
    if not isinstance(policy, dict):
        raise SnapshotFormatError("'policy' must be a table ([policy])")
    return dict(policy)


def package_from_table(table: dict[str, Any]) -> Package:
    """Build a Package from one ``[[packages]]`` table.

    Change records listed under ``[[packages.changes]]`` target the enclosing
    package unless they name another one.

    Raises:
        SnapshotFormatError: If ``changes`` is not an array of tables.
        pydantic.ValidationError: If the table does not match the schema.
    """
    data = dict(table)
    changes = _array_of_tables(data, "changes")
    data.pop("changes", None)
    data["change_records"] = [{"package": data.get("name"), **c} for c in changes]
    return Package.model_validate(data)


def snapshot_from_doc(doc: dict[str, Any]) -> Snapshot:
    return Snapshot(
        packages=[package_from_table(t) for t in get_package_tables(doc)],
        unresolved=[
            UnresolvedRepository.model_validate(t) for t in get_unresolved_tables(doc)
        ],
    )


def load_snapshot(path: Path) -> Snapshot:
    """Load a snapshot TOML file."""
    return snapshot_from_doc(load_toml(path))


def load_policy(doc: dict[str, Any], **overrides: Any) -> PlanPolicy:
    """Build the policy from a ``[policy]`` table plus explicit overrides.

    Overrides set to None are ignored, so unset CLI flags fall back to the
    file, and the file falls back to PlanPolicy defaults.
    """
    values = get_policy_table(doc)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PlanPolicy.model_validate(values)
