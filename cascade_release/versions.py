"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects. Manifest
versions must be complete ``MAJOR.MINOR.PATCH`` versions; partial versions
such as "1.2" only appear in declared ranges (see ``ranges``).
"""

from __future__ import annotations

from collections.abc import Iterable

import semver

from .models import BumpKind


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Pre-release and build metadata are kept:
    - "1.2.3" → 1.2.3
    - "1.2.3-rc.1" → 1.2.3-rc.1
    - "1.2" → ValueError

    Raises:
        ValueError: If the string is not a complete semantic version.
    """
    return semver.Version.parse(version_str)


def is_valid_version(version_str: str) -> bool:
    try:
        parse_version(version_str)
    except (TypeError, ValueError):
        return False
    return True


def bump_version(version_str: str, kind: BumpKind) -> str:
    """Apply a bump and return the next version as a string.

    Pre-release and build metadata are dropped, so a package leaving a
    pre-release always moves to a stable version.

    Examples:
        "1.2.3", major → "2.0.0"
        "1.2.3", minor → "1.3.0"
        "1.2.3", patch → "1.2.4"
        "1.0.0-rc.1", patch → "1.0.1"
    """
    version = parse_version(version_str)
    if kind is BumpKind.MAJOR:
        return str(version.bump_major())
    if kind is BumpKind.MINOR:
        return str(version.bump_minor())
    return str(version.bump_patch())


def compare_bumps(a: BumpKind, b: BumpKind) -> int:
    """Positive if ``a`` is the bigger bump, negative if smaller, 0 if equal."""
    return a.rank - b.rank


def max_bump(kinds: Iterable[BumpKind]) -> BumpKind | None:
    """Return the biggest bump kind, or None for an empty iterable."""
    return max(kinds, key=lambda k: k.rank, default=None)
