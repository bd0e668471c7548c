"""Tests for cascade_release.changes."""

from __future__ import annotations

from cascade_release.changes import resolve_change_records
from cascade_release.graph import build_graph
from cascade_release.models import (
    BumpKind,
    ChangeRecord,
    DependencyKind,
    ErrorKind,
    Package,
    PlanPolicy,
    RecordOrigin,
)


def _kinds(resolution, name: str) -> list[tuple[RecordOrigin, BumpKind]]:
    return [(r.origin, r.bump) for r in resolution.records.get(name, [])]


class TestExplicitRecords:
    def test_record_applies_to_named_package(self, make_package) -> None:
        carrier = make_package("a", changes=["patch"])
        carrier = carrier.model_copy(
            update={
                "change_records": carrier.change_records
                + [ChangeRecord(package="b", bump="minor")]
            }
        )
        graph = build_graph([carrier, make_package("b")])
        resolution = resolve_change_records(graph, PlanPolicy())
        assert _kinds(resolution, "a") == [(RecordOrigin.EXPLICIT, BumpKind.PATCH)]
        assert _kinds(resolution, "b") == [(RecordOrigin.EXPLICIT, BumpKind.MINOR)]
        assert resolution.errors == []

    def test_record_for_unknown_package_is_an_error(self, make_package) -> None:
        carrier = make_package("a", changes=["minor"])
        carrier = carrier.model_copy(
            update={
                "change_records": carrier.change_records
                + [ChangeRecord(package="ghost", bump="major")]
            }
        )
        resolution = resolve_change_records(build_graph([carrier]), PlanPolicy())
        assert _kinds(resolution, "a") == [(RecordOrigin.EXPLICIT, BumpKind.MINOR)]
        assert "ghost" not in resolution.records
        assert [e.kind for e in resolution.errors] == [ErrorKind.UNKNOWN_PACKAGE]
        assert resolution.errors[0].packages == ["a"]
        assert "ghost" in resolution.errors[0].message

    def test_no_records_no_entry(self, make_package) -> None:
        resolution = resolve_change_records(
            build_graph([make_package("a")]), PlanPolicy()
        )
        assert resolution.records == {}


class TestInference:
    def test_major_dependency_infers_patch(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["major"]),
                make_package("b", deps={"a": "^1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert _kinds(resolution, "b") == [(RecordOrigin.INFERRED, BumpKind.PATCH)]
        assert resolution.records["b"][0].description == "Update dependencies: a@2.0.0"

    def test_range_still_satisfied_infers_nothing(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["minor"]),
                make_package("b", deps={"a": "^1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert "b" not in resolution.records
        assert resolution.activity["b"] == {DependencyKind.PRODUCTION}

    def test_minor_leaves_tilde_range(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["minor"]),
                make_package("b", deps={"a": "~1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert _kinds(resolution, "b") == [(RecordOrigin.INFERRED, BumpKind.PATCH)]

    def test_patch_never_leaves_caret_or_tilde(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["patch"]),
                make_package("b", deps={"a": "^1.0.0"}),
                make_package("c", deps={"a": "~1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert set(resolution.records) == {"a"}

    def test_propagates_through_exact_pins(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["major"]),
                make_package("b", deps={"a": "^1.0.0"}),
                make_package("c", deps={"b": "1.0.0"}),
                make_package("d", deps={"c": "1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        for name in ("b", "c", "d"):
            assert _kinds(resolution, name) == [(RecordOrigin.INFERRED, BumpKind.PATCH)]

    def test_peer_and_dev_never_infer(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["major"]),
                make_package("plugin", peer={"a": "^1.0.0"}),
                make_package("tool", dev={"a": "^1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert set(resolution.records) == {"a"}
        assert resolution.activity["plugin"] == {DependencyKind.PEER}
        assert resolution.activity["tool"] == {DependencyKind.DEVELOPMENT}

    def test_dist_tag_follows_any_release(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["patch"]),
                make_package("b", deps={"a": "latest"}),
                make_package("c", deps={"a": "next"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert set(resolution.records) == {"a"}
        assert resolution.activity["b"] == {DependencyKind.PRODUCTION}

    def test_local_path_range_never_left(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("a", changes=["major"]),
                make_package("b", deps={"a": "file:../a"}),
                make_package("c", deps={"a": "link:../a"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert set(resolution.records) == {"a"}


class TestEscalation:
    def test_explicit_patch_escalates_to_minor(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("y", changes=["major"]),
                make_package("x", deps={"y": "^1.0.0"}, changes=["patch"]),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert _kinds(resolution, "x") == [
            (RecordOrigin.EXPLICIT, BumpKind.PATCH),
            (RecordOrigin.INFERRED, BumpKind.MINOR),
        ]

    def test_match_policy_escalates_to_major(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("y", changes=["major"]),
                make_package("x", deps={"y": "^1.0.0"}, changes=["patch"]),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy(escalation="match"))
        assert resolution.bump_for("x") is BumpKind.MAJOR

    def test_never_lowers_explicit_bump(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("y", changes=["major"]),
                make_package("x", deps={"y": "^1.0.0"}, changes=["major"]),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert _kinds(resolution, "x") == [(RecordOrigin.EXPLICIT, BumpKind.MAJOR)]

    def test_escalated_bump_propagates(self, make_package) -> None:
        """x's escalation to major (match) leaves w's caret range on x."""
        graph = build_graph(
            [
                make_package("y", changes=["major"]),
                make_package("x", deps={"y": "^1.0.0"}, changes=["patch"]),
                make_package("w", deps={"x": "^1.0.0"}, changes=["patch"]),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy(escalation="match"))
        assert resolution.bump_for("w") is BumpKind.MAJOR


class TestInvalidVersions:
    def test_invalid_version_excluded_with_error(self, make_package) -> None:
        graph = build_graph(
            [
                make_package("bad", version="one.two", changes=["major"]),
                make_package("b", deps={"bad": "^1.0.0"}),
            ]
        )
        resolution = resolve_change_records(graph, PlanPolicy())
        assert resolution.invalid == {"bad"}
        assert resolution.records == {}
        assert [e.kind for e in resolution.errors] == [ErrorKind.INVALID_VERSION]
        assert resolution.errors[0].packages == ["bad"]

    def test_cycle_terminates(self) -> None:
        packages = [
            Package(name="a", version="1.0.0", dependencies={"b": "1.0.0"},
                    change_records=[ChangeRecord(package="a", bump="patch")]),
            Package(name="b", version="1.0.0", dependencies={"a": "1.0.0"}),
        ]
        resolution = resolve_change_records(build_graph(packages), PlanPolicy())
        assert resolution.bump_for("a") is BumpKind.PATCH
        assert resolution.bump_for("b") is BumpKind.PATCH
