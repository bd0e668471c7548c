"""Tests for cascade_release.toml."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError
from tomlkit.exceptions import ParseError

from cascade_release.models import BumpKind, EscalationStrategy, RecordOrigin
from cascade_release.toml import (
    SnapshotFormatError,
    get_package_tables,
    get_policy_table,
    get_unresolved_tables,
    load_policy,
    load_snapshot,
    load_toml,
    package_from_table,
)


class TestLoadToml:
    def test_returns_plain_containers(self, tmp_snapshot: Path) -> None:
        doc = load_toml(tmp_snapshot)
        assert type(doc) is dict
        assert type(doc["packages"]) is list

    def test_invalid_toml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[[packages]\nname = ")
        with pytest.raises(ParseError):
            load_toml(path)


class TestTables:
    def test_missing_tables_default_empty(self) -> None:
        assert get_package_tables({}) == []
        assert get_unresolved_tables({}) == []
        assert get_policy_table({}) == {}

    def test_present_tables(self, tmp_snapshot: Path) -> None:
        doc = load_toml(tmp_snapshot)
        assert len(get_package_tables(doc)) == 3
        assert get_unresolved_tables(doc) == [
            {"repo": "https://github.com/test/legacy", "reason": "clone failed"}
        ]
        assert get_policy_table(doc) == {"escalation": "minor"}


class TestPackageFromTable:
    def test_changes_default_to_enclosing_package(self) -> None:
        package = package_from_table(
            {"name": "core", "version": "1.0.0", "changes": [{"bump": "minor"}]}
        )
        record = package.change_records[0]
        assert record.package == "core"
        assert record.bump is BumpKind.MINOR
        assert record.origin is RecordOrigin.EXPLICIT

    def test_changes_may_name_another_package(self) -> None:
        package = package_from_table(
            {
                "name": "core",
                "version": "1.0.0",
                "changes": [{"package": "other", "bump": "major"}],
            }
        )
        assert package.change_records[0].package == "other"

    def test_invalid_bump_raises(self) -> None:
        with pytest.raises(ValidationError):
            package_from_table(
                {"name": "core", "version": "1.0.0", "changes": [{"bump": "huge"}]}
            )

    def test_missing_version_raises(self) -> None:
        with pytest.raises(ValidationError):
            package_from_table({"name": "core"})


class TestLoadSnapshot:
    def test_packages(self, tmp_snapshot: Path) -> None:
        snapshot = load_snapshot(tmp_snapshot)
        names = [p.name for p in snapshot.packages]
        assert names == ["@test/core", "@test/plugin", "@test/docs"]

        core, plugin, docs = snapshot.packages
        assert core.change_records[0].description == "Drop the legacy API"
        assert plugin.dependencies == {"@test/core": "^1.2.0", "left-pad": "^1.3.0"}
        assert docs.dev_dependencies == {"@test/core": "^1.0.0"}
        assert docs.repo is None

    def test_unresolved(self, tmp_snapshot: Path) -> None:
        snapshot = load_snapshot(tmp_snapshot)
        assert [u.reason for u in snapshot.unresolved] == ["clone failed"]


class TestLoadPolicy:
    def test_defaults(self) -> None:
        policy = load_policy({})
        assert policy.escalation is EscalationStrategy.MINOR
        assert not policy.cascade_through_peer

    def test_file_values(self) -> None:
        policy = load_policy({"policy": {"escalation": "match"}})
        assert policy.escalation is EscalationStrategy.MATCH

    def test_overrides_take_precedence(self) -> None:
        doc = {"policy": {"escalation": "match", "cascade_through_peer": True}}
        policy = load_policy(doc, escalation="minor", cascade_through_peer=None)
        assert policy.escalation is EscalationStrategy.MINOR
        assert policy.cascade_through_peer

    def test_invalid_value_raises(self) -> None:
        with pytest.raises(ValidationError):
            load_policy({"policy": {"escalation": "sometimes"}})


class TestSnapshotShape:
    def test_packages_table_instead_of_array(self, tmp_path: Path) -> None:
        path = tmp_path / "snapshot.toml"
        path.write_text('[packages]\nname = "a"\nversion = "1.0.0"\n')
        with pytest.raises(SnapshotFormatError, match="packages"):
            load_snapshot(path)

    def test_unresolved_must_be_tables(self) -> None:
        with pytest.raises(SnapshotFormatError, match="unresolved"):
            get_unresolved_tables({"unresolved": ["https://github.com/test/x"]})

    def test_changes_must_be_tables(self) -> None:
        with pytest.raises(SnapshotFormatError, match="changes"):
            package_from_table({"name": "a", "version": "1.0.0", "changes": "minor"})

    def test_policy_must_be_a_table(self) -> None:
        with pytest.raises(SnapshotFormatError, match="policy"):
            load_policy({"policy": "match"})
