"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from cascade_release.models import BumpKind, ChangeRecord, Package, Snapshot

PackageFactory = Callable[..., Package]


@pytest.fixture
def make_package() -> PackageFactory:
    """Factory for packages; ``changes`` lists explicit bump kinds."""

    def factory(
        name: str,
        version: str = "1.0.0",
        *,
        deps: dict[str, str] | None = None,
        dev: dict[str, str] | None = None,
        peer: dict[str, str] | None = None,
        changes: list[str] | None = None,
    ) -> Package:
        return Package(
            name=name,
            version=version,
            dependencies=deps or {},
            dev_dependencies=dev or {},
            peer_dependencies=peer or {},
            change_records=[
                ChangeRecord(package=name, bump=BumpKind(kind)) for kind in changes or []
            ],
            repo=f"https://github.com/test/{name.rsplit('/', 1)[-1]}",
        )

    return factory


@pytest.fixture
def basic_chain(make_package: PackageFactory) -> Snapshot:
    """repo_a (major) ← repo_b ← repo_c, plus an unrelated and a dev-only package.

    repo_c pins repo_b exactly, so repo_b's patch republish leaves its range.
    """
    return Snapshot(
        packages=[
            make_package("@test/repo_a", changes=["major"]),
            make_package("@test/repo_b", deps={"@test/repo_a": "^1.0.0"}),
            make_package("@test/repo_c", deps={"@test/repo_b": "1.0.0"}),
            make_package("@test/repo_d"),
            make_package("@test/repo_e", dev={"@test/repo_a": "^1.0.0"}),
        ]
    )


@pytest.fixture
def escalation_snapshot(make_package: PackageFactory) -> Snapshot:
    """repo_x asks for a patch but depends on repo_y, which breaks."""
    return Snapshot(
        packages=[
            make_package("repo_y", changes=["major"]),
            make_package("repo_x", deps={"repo_y": "^1.0.0"}, changes=["patch"]),
        ]
    )


@pytest.fixture
def cycle_snapshot(make_package: PackageFactory) -> Snapshot:
    """Two packages with mutual production dependencies, both with records."""
    return Snapshot(
        packages=[
            make_package("cyc-a", deps={"cyc-b": "^1.0.0"}, changes=["patch"]),
            make_package("cyc-b", deps={"cyc-a": "^1.0.0"}, changes=["minor"]),
            make_package("leaf", changes=["patch"]),
        ]
    )


@pytest.fixture
def tmp_snapshot(tmp_path: Path) -> Path:
    """Create a temporary snapshot TOML file."""
    content = """\
[policy]
escalation = "minor"

[[packages]]
name = "@test/core"
version = "1.2.0"
repo = "https://github.com/test/core"

[[packages.changes]]
bump = "major"
description = "Drop the legacy API"

[[packages]]
name = "@test/plugin"
version = "0.4.1"
repo = "https://github.com/test/plugin"

[packages.dependencies]
"@test/core" = "^1.2.0"
left-pad = "^1.3.0"

[[packages.changes]]
bump = "patch"

[[packages]]
name = "@test/docs"
version = "2.0.0"

[packages.dev_dependencies]
"@test/core" = "^1.0.0"

[[unresolved]]
repo = "https://github.com/test/legacy"
reason = "clone failed"
"""
    path = tmp_path / "snapshot.toml"
    path.write_text(content)
    return path
