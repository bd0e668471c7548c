"""Declared dependency range evaluation.

Dependency ranges in package manifests use npm range syntax. This module
turns a range string into comparator sets and checks versions against them,
which is all the resolver needs to decide whether a dependency's next
version still satisfies what a dependent declared.

Supported syntax:
- wildcards: "*", "", "x", "1.x", "1.2.*"
- exact versions: "1.2.3", "=1.2.3", "v1.2.3"
- comparators: ">1.0.0", ">=1.0.0 <2.0.0", "<=1.2"
- caret and tilde: "^1.2.3", "~1.2.3", "~>1.2"
- hyphen ranges: "1.0.0 - 2.3"
- unions: "^1.0.0 || ^2.0.0"
- the "workspace:" protocol prefix
"""

from __future__ import annotations

import re
from typing import NamedTuple

import semver

from .versions import parse_version

_PART = r"(?:\*|x|X|0|[1-9]\d*)"
_PARTIAL_RE = re.compile(
    rf"^v?(?P<major>{_PART})"
    rf"(?:\.(?P<minor>{_PART})"
    rf"(?:\.(?P<patch>{_PART})"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?)?)?$"
)
_TOKEN_RE = re.compile(r"^(?P<op><=|>=|<|>|=|\^|~>|~)?(?P<version>.*)$")
_HYPHEN_RE = re.compile(r"^\s*(?P<low>\S+)\s+-\s+(?P<high>\S+)\s*$")
# Operators may be separated from their version by whitespace ("> = 1.0")
_OP_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")

_OPS = {
    "<": lambda c: c < 0,
    "<=": lambda c: c <= 0,
    ">": lambda c: c > 0,
    ">=": lambda c: c >= 0,
    "=": lambda c: c == 0,
}


class InvalidRangeError(ValueError):
    """Raised when a declared range is not npm range syntax."""


class Comparator(NamedTuple):
    op: str
    version: semver.Version

    def test(self, version: semver.Version) -> bool:
        return _OPS[self.op](version.compare(self.version))

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


class _Partial(NamedTuple):
    major: int | None
    minor: int | None
    patch: int | None
    pre: str | None


def _to_int(part: str | None) -> int | None:
    if part is None or part in ("*", "x", "X"):
        return None
    return int(part)


def _parse_partial(text: str, declared: str) -> _Partial:
    match = _PARTIAL_RE.match(text)
    if not match:
        raise InvalidRangeError(f"Invalid version range: {declared!r}")
    major = _to_int(match["major"])
    minor = _to_int(match["minor"]) if major is not None else None
    patch = _to_int(match["patch"]) if minor is not None else None
    pre = match["pre"] if patch is not None else None
    return _Partial(major, minor, patch, pre)


def _v(major: int, minor: int = 0, patch: int = 0, pre: str | None = None):
    return semver.Version(major, minor, patch, prerelease=pre)


def _caret(p: _Partial) -> list[Comparator]:
    if p.major is None:
        return []
    if p.minor is None:
        return [Comparator(">=", _v(p.major)), Comparator("<", _v(p.major + 1))]
    low = Comparator(">=", _v(p.major, p.minor, p.patch or 0, p.pre))
    if p.major > 0:
        return [low, Comparator("<", _v(p.major + 1))]
    if p.minor > 0 or p.patch is None:
        return [low, Comparator("<", _v(0, p.minor + 1))]
    return [low, Comparator("<", _v(0, 0, p.patch + 1))]


def _tilde(p: _Partial) -> list[Comparator]:
    if p.major is None:
        return []
    if p.minor is None:
        return [Comparator(">=", _v(p.major)), Comparator("<", _v(p.major + 1))]
    return [
        Comparator(">=", _v(p.major, p.minor, p.patch or 0, p.pre)),
        Comparator("<", _v(p.major, p.minor + 1)),
    ]


def _upper_bound(major: int, minor: int | None) -> Comparator:
    """Exclusive upper bound of a partial version ("1.2" → "<1.3.0")."""
    if minor is None:
        return Comparator("<", _v(major + 1))
    return Comparator("<", _v(major, minor + 1))


def _primitive(op: str, p: _Partial) -> list[Comparator]:
    if p.major is None:
        # "<*" and ">*" match nothing; everything else is a wildcard
        if op in ("<", ">"):
            return [Comparator("<", _v(0, 0, 0, "0"))]
        return []
    full = p.patch is not None
    if op in ("", "="):
        if full:
            return [Comparator("=", _v(p.major, p.minor, p.patch, p.pre))]
        return [
            Comparator(">=", _v(p.major, p.minor or 0)),
            _upper_bound(p.major, p.minor),
        ]
    if op == ">":
        if full:
            return [Comparator(">", _v(p.major, p.minor, p.patch, p.pre))]
        bound = _upper_bound(p.major, p.minor)
        return [Comparator(">=", bound.version)]
    if op == ">=":
        return [Comparator(">=", _v(p.major, p.minor or 0, p.patch or 0, p.pre))]
    if op == "<":
        return [Comparator("<", _v(p.major, p.minor or 0, p.patch or 0, p.pre))]
    # "<="
    if full:
        return [Comparator("<=", _v(p.major, p.minor, p.patch, p.pre))]
    return [_upper_bound(p.major, p.minor)]


def _parse_token(token: str, declared: str) -> list[Comparator]:
    match = _TOKEN_RE.match(token)
    if match is None:
        raise InvalidRangeError(f"Invalid version range: {declared!r}")
    op = match["op"] or ""
    partial = _parse_partial(match["version"], declared)
    if op == "^":
        return _caret(partial)
    if op in ("~", "~>"):
        return _tilde(partial)
    return _primitive(op, partial)


def _parse_hyphen(low: str, high: str, declared: str) -> list[Comparator]:
    lo = _parse_partial(low, declared)
    hi = _parse_partial(high, declared)
    comparators = _primitive(">=", lo) if lo.major is not None else []
    if hi.major is None:
        return comparators
    if hi.patch is None:
        return comparators + [_upper_bound(hi.major, hi.minor)]
    return comparators + [Comparator("<=", _v(hi.major, hi.minor, hi.patch, hi.pre))]


def parse_range(declared: str) -> list[list[Comparator]]:
    """Parse a range into a union of comparator sets.

    An empty comparator set matches every version.

    Raises:
        InvalidRangeError: If the range uses syntax other than semver ranges
            (file paths, git URLs, dist-tags, ...).
    """
    text = declared.strip()
    if text.startswith("workspace:"):
        text = text[len("workspace:") :].strip()
        if text in ("^", "~"):
            return [[]]

    sets: list[list[Comparator]] = []
    for part in text.split("||"):
        hyphen = _HYPHEN_RE.match(part)
        if hyphen:
            sets.append(_parse_hyphen(hyphen["low"], hyphen["high"], declared))
            continue
        comparators: list[Comparator] = []
        for token in _OP_SPACE_RE.sub(r"\1", part.strip()).split():
            comparators.extend(_parse_token(token, declared))
        sets.append(comparators)
    return sets


def satisfies(declared: str, version: str | semver.Version) -> bool:
    """Check whether a version falls inside a declared range.

    Examples:
        satisfies("^1.2.0", "1.9.0") → True
        satisfies("^1.2.0", "2.0.0") → False
        satisfies("~1.2.0", "1.3.0") → False
        satisfies("1.0.0", "1.0.1") → False
    """
    if isinstance(version, str):
        version = parse_version(version)
    return any(all(c.test(version) for c in group) for group in parse_range(declared))
