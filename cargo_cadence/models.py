"""Data models for cargo-cadence.

These Pydantic models represent the core data structures used throughout
the release pipeline: parsed member manifests, the places where version
strings live, the workspace dependency graph, and run settings.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import semver
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Cargo dependency tables that may pin a sibling member's version.
DEPENDENCY_SECTIONS = ("dependencies", "build-dependencies", "dev-dependencies")
# Tables whose entries constrain publish order. Dev-dependencies are stripped
# by `cargo publish` and may legally form cycles.
ORDERING_SECTIONS = ("dependencies", "build-dependencies")


class Increment(str, Enum):
    """Semantic version bump granularity."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class PlainDependency(BaseModel):
    """A bare requirement string, e.g. ``regex = "1"``.

    Never treated as an intra-workspace pin, even when the name matches a
    workspace member.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    requirement: str


class PinnedDependency(BaseModel):
    """A table dependency carrying an explicit ``version`` string.

    Example: ``solp = { path = "../solp/", version = "0.1.13" }``.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["pinned"] = "pinned"
    version: str
    path: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class TableDependency(BaseModel):
    """A table dependency without a version (path-only, ``workspace = true``)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["table"] = "table"
    attributes: dict[str, Any] = Field(default_factory=dict)


DependencySpec = Annotated[
    Union[PlainDependency, PinnedDependency, TableDependency],
    Field(discriminator="kind"),
]


class MemberManifest(BaseModel):
    """Typed view of one member's ``Cargo.toml``.

    Attributes:
        name: ``[package].name``.
        version: ``[package].version``; must be a valid semantic version.
        dependencies: ``[dependencies]`` entries by dependency name.
        build_dependencies: ``[build-dependencies]`` entries.
        dev_dependencies: ``[dev-dependencies]`` entries.
    """

    name: str
    version: str
    description: str | None = None
    license: str | None = None
    homepage: str | None = None
    dependencies: dict[str, DependencySpec] = Field(default_factory=dict)
    build_dependencies: dict[str, DependencySpec] = Field(default_factory=dict)
    dev_dependencies: dict[str, DependencySpec] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def _check_semver(cls, value: str) -> str:
        if not semver.Version.is_valid(value):
            raise ValueError(f"{value!r} is not a valid semantic version")
        return value

    def section(self, section: str) -> dict[str, DependencySpec]:
        """Return the dependency table stored under a Cargo section name."""
        return getattr(self, section.replace("-", "_"))

    def pinned(self, section: str) -> dict[str, PinnedDependency]:
        """Return only the pinned (table + version) entries of a section."""
        return {
            name: spec
            for name, spec in self.section(section).items()
            if isinstance(spec, PinnedDependency)
        }


class PackagePlace(BaseModel):
    """The member's own ``[package].version`` declaration."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["package"] = "package"
    manifest_path: Path
    version: str

    @property
    def key_path(self) -> tuple[str, ...]:
        return ("package", "version")


class DependencyPlace(BaseModel):
    """An occurrence of a member's version in a dependent's dependency table.

    Attributes:
        dependent: Package name of the member whose manifest holds the pin.
        dependency: Package name of the member being pinned.
        manifest_path: The dependent's manifest.
        section: Dependency table holding the pin (e.g. ``dependencies``).
        version: The version literal as currently written.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["dependency"] = "dependency"
    dependent: str
    dependency: str
    manifest_path: Path
    section: str
    version: str

    @property
    def key_path(self) -> tuple[str, ...]:
        return (self.section, self.dependency, "version")


Place = Annotated[Union[PackagePlace, DependencyPlace], Field(discriminator="kind")]


class CrateVersionRecord(BaseModel):
    """Every place holding one member's version, consumed once per release."""

    model_config = ConfigDict(frozen=True)

    name: str
    manifest_path: Path
    places: tuple[Place, ...]

    @property
    def package_place(self) -> PackagePlace:
        for place in self.places:
            if isinstance(place, PackagePlace):
                return place
        raise ValueError(f"{self.name} has no package version place")


class Member(BaseModel):
    """A workspace member that was successfully read during a scan.

    Attributes:
        index: Position of the member in ``[workspace].members``.
        name: Package name from the member's manifest.
        path: Member directory as declared in the workspace manifest.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    name: str
    path: str


class DependencyGraph(BaseModel):
    """Publish-order graph over workspace members.

    Nodes are member indices; an edge ``(a, b)`` means member ``a`` must be
    published before member ``b``.
    """

    model_config = ConfigDict(frozen=True)

    members: tuple[Member, ...] = ()
    edges: tuple[tuple[int, int], ...] = ()

    def member(self, index: int) -> Member:
        for m in self.members:
            if m.index == index:
                return m
        raise KeyError(index)

    def names(self) -> list[str]:
        return [m.name for m in self.members]


class PublishOptions(BaseModel):
    """Options handed to a Publisher for one publish call."""

    model_config = ConfigDict(frozen=True)

    member_to_publish: str | None = None
    all_features: bool = False
    no_verify: bool = False


class ReleaseSettings(BaseModel):
    """Knobs for one release run, usually built from CLI flags.

    Attributes:
        delay_seconds: Pause between consecutive publishes in workspace mode
            so the registry index can catch up.
        all_features: Pass ``--all-features`` to the publisher.
        no_verify: Pass ``--no-verify`` to the publisher.
        no_publish: Bump, commit, tag and push without publishing.
        strict: Fail the run on an unreadable member instead of skipping it.
    """

    delay_seconds: int = Field(default=20, ge=0)
    all_features: bool = False
    no_verify: bool = False
    no_publish: bool = False
    strict: bool = False

    def publish_options(self, member: str | None = None) -> PublishOptions:
        return PublishOptions(
            member_to_publish=member,
            all_features=self.all_features,
            no_verify=self.no_verify,
        )


class ReleaseState(str, Enum):
    """States of the release workflow, in the order they are reached."""

    IDLE = "idle"
    GRAPH_BUILT = "graph-built"
    VERSIONS_BUMPED = "versions-bumped"
    COMMITTED = "committed"
    PUBLISHING = "publishing"
    TAGGED = "tagged"
    PUSHED = "pushed"
    DONE = "done"


class ReleaseProgress(BaseModel):
    """How far a release run got.

    Attributes:
        state: Last state reached.
        version: Release version once versions are bumped.
        tag: VCS tag name once computed.
        publish_order: Members scheduled for publishing.
        published: Members whose publish call returned successfully.
    """

    state: ReleaseState = ReleaseState.IDLE
    version: str | None = None
    tag: str | None = None
    publish_order: list[str] = Field(default_factory=list)
    published: list[str] = Field(default_factory=list)
