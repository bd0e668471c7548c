"""Data models for cascade-release.

These Pydantic models represent the snapshot the planner consumes, the
intermediate records each stage hands to the next, and the final Plan.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BumpKind(str, Enum):
    """Kind of version bump. Ordered ``patch < minor < major`` via ``rank``."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _BUMP_RANKS[self]


_BUMP_RANKS = {BumpKind.PATCH: 1, BumpKind.MINOR: 2, BumpKind.MAJOR: 3}


class RecordOrigin(str, Enum):
    EXPLICIT = "explicit"
    INFERRED = "inferred"


class DependencyKind(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    PEER = "peer"


class ErrorKind(str, Enum):
    DUPLICATE_PACKAGE_NAME = "DuplicatePackageName"
    UNRESOLVED_REPOSITORY = "UnresolvedRepository"
    INVALID_VERSION = "InvalidVersion"
    CYCLIC_DEPENDENCY = "CyclicDependency"
    UNKNOWN_PACKAGE = "UnknownPackage"


class InfoReason(str, Enum):
    NO_CHANGES = "no changes"
    DEV_DEPENDENCY_ONLY = "dev-dependency-only changes"
    INVALID_VERSION = "invalid version"


class EscalationStrategy(str, Enum):
    """How far a breaking dependency raises a dependent that already has records.

    ``minor`` always escalates to a minor bump; ``match`` escalates to the
    dependency's own kind.
    """

    MINOR = "minor"
    MATCH = "match"


class ChangeRecord(BaseModel):
    """A declaration that a package needs a version bump.

    Attributes:
        package: Name of the package the record targets.
        bump: Requested bump kind.
        origin: ``explicit`` when found on disk, ``inferred`` when generated
            by the resolver from upstream bumps.
        description: Optional human-readable summary.
    """

    model_config = ConfigDict(frozen=True)

    package: str
    bump: BumpKind
    origin: RecordOrigin = RecordOrigin.EXPLICIT
    description: str | None = None


class Package(BaseModel):
    """One resolved repository's package as seen by the planner.

    Attributes:
        name: Package name, unique across the snapshot.
        version: Current version string from the manifest.
        dependencies: Production dependencies, name → declared range.
        dev_dependencies: Development dependencies, name → declared range.
        peer_dependencies: Peer dependencies, name → declared range.
        change_records: Pending change records found in the repository.
        repo: Owning repository reference. Opaque to the planner.
    """

    name: str
    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    peer_dependencies: dict[str, str] = Field(default_factory=dict)
    change_records: list[ChangeRecord] = Field(default_factory=list)
    repo: str | None = None

    def dependency_map(self, kind: DependencyKind) -> dict[str, str]:
        """Return the declared dependency map for one dependency kind."""
        if kind is DependencyKind.PRODUCTION:
            return self.dependencies
        if kind is DependencyKind.DEVELOPMENT:
            return self.dev_dependencies
        return self.peer_dependencies


class DependencyEdge(BaseModel):
    """A dependency of ``dependent`` on ``dependency`` of a given kind."""

    model_config = ConfigDict(frozen=True)

    dependent: str
    dependency: str
    kind: DependencyKind
    range: str


class UnresolvedRepository(BaseModel):
    """A repository whose manifest or change records could not be read."""

    repo: str
    reason: str = ""
    package: str | None = None


class Snapshot(BaseModel):
    """Fully resolved input for one planning run.

    Unresolved repositories never contribute to the graph; they are carried
    only so the plan can report them.
    """

    packages: list[Package] = Field(default_factory=list)
    unresolved: list[UnresolvedRepository] = Field(default_factory=list)


class PlanPolicy(BaseModel):
    """Explicit policy passed to every resolver and analyzer call.

    Attributes:
        escalation: Bump a breaking dependency forces on a dependent that
            already carries explicit change records.
        cascade_through_peer: Whether peer edges propagate breaking cascades.
        cascade_through_dev: Whether development edges propagate breaking
            cascades.
    """

    model_config = ConfigDict(frozen=True)

    escalation: EscalationStrategy = EscalationStrategy.MINOR
    cascade_through_peer: bool = False
    cascade_through_dev: bool = False

    @property
    def cascade_kinds(self) -> frozenset[DependencyKind]:
        kinds = {DependencyKind.PRODUCTION}
        if self.cascade_through_peer:
            kinds.add(DependencyKind.PEER)
        if self.cascade_through_dev:
            kinds.add(DependencyKind.DEVELOPMENT)
        return frozenset(kinds)

    def escalation_bump(self, dependency_bump: BumpKind) -> BumpKind:
        """Bump required of a dependent whose range a dependency bump leaves."""
        if dependency_bump is not BumpKind.MAJOR:
            return BumpKind.PATCH
        if self.escalation is EscalationStrategy.MATCH:
            return BumpKind.MAJOR
        return BumpKind.MINOR


class VersionChange(BaseModel):
    """Records the version change planned for one package.

    Attributes:
        package: Package name.
        from_version: Current version.
        to_version: Version after the bump.
        bump: Target bump kind.
        has_changesets: At least one explicit record existed.
        will_generate_changeset: No explicit record existed and one was inferred.
        needs_bump_escalation: The dependency graph forced a bigger bump than
            any explicit record asked for.
    """

    package: str
    from_version: str
    to_version: str
    bump: BumpKind
    has_changesets: bool = False
    will_generate_changeset: bool = False
    needs_bump_escalation: bool = False


class InfoEntry(BaseModel):
    package: str
    reason: InfoReason


class PlanError(BaseModel):
    """Structured failure record carried in ``Plan.errors``."""

    kind: ErrorKind
    message: str
    packages: list[str] = Field(default_factory=list)
    repo: str | None = None


class Plan(BaseModel):
    """The publishing plan produced for one snapshot.

    Attributes:
        publishing_order: Changed packages, dependencies before dependents.
        version_changes: One entry per package with a net change.
        breaking_cascades: Major-bumped package → sorted transitive dependents.
        info: Every snapshot package without a version change.
        errors: Structured failures, in stage order.
    """

    publishing_order: list[str] = Field(default_factory=list)
    version_changes: list[VersionChange] = Field(default_factory=list)
    breaking_cascades: dict[str, list[str]] = Field(default_factory=dict)
    info: list[InfoEntry] = Field(default_factory=list)
    errors: list[PlanError] = Field(default_factory=list)

    def change_for(self, package: str) -> VersionChange | None:
        for change in self.version_changes:
            if change.package == package:
                return change
        return None

    @property
    def aborted(self) -> bool:
        """True when a duplicate package name stopped the computation."""
        return any(e.kind is ErrorKind.DUPLICATE_PACKAGE_NAME for e in self.errors)
