"""Core data models for pubpin."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType


class DependencyKind(Enum):
    """Where a dependency comes from."""

    HOSTED = "hosted"
    SDK = "sdk"
    GIT = "git"
    PATH = "path"


class Section(Enum):
    """Top-level block of a manifest."""

    HEADER = "header"
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "dev_dependencies"
    OTHER = "other"


@dataclass(frozen=True)
class ManifestDependency:
    """A single dependency declared in a manifest."""

    name: str
    version: str = ""  # empty for sdk, git and path dependencies
    kind: DependencyKind = DependencyKind.HOSTED
    lock_line: str | None = None  # verbatim nested block for special kinds
    in_dev_dependencies: bool = False
    is_transitive: bool = False  # carries the autogenerated marker comment
    span: range = field(default=range(0), compare=False, repr=False)

    @property
    def is_hosted(self) -> bool:
        return self.kind is DependencyKind.HOSTED

    @property
    def line_index(self) -> int:
        """Index of the line declaring the dependency name."""
        return self.span.start


@dataclass(frozen=True)
class Manifest:
    """A parsed package manifest.

    ``lines`` keeps the raw text so rewriting only touches dependency lines.
    ``blocks`` maps each dependency section to the range of line indices it
    covers, from its header line to its last indented line. ``newline`` is
    the line separator the file was written with.
    """

    name: str
    text: str
    lines: tuple[str, ...]
    dependencies: tuple[ManifestDependency, ...] = ()
    dev_dependencies: tuple[ManifestDependency, ...] = ()
    blocks: Mapping[Section, range] = field(default_factory=lambda: MappingProxyType({}), compare=False)
    checksum: str | None = None
    path: Path | None = None
    newline: str = "\n"

    @property
    def all_dependencies(self) -> list[ManifestDependency]:
        """Dependencies and dev dependencies, one entry per name.

        A name declared in both blocks keeps its first position and the
        dev_dependencies entry.
        """
        by_name: dict[str, ManifestDependency] = {}
        for dependency in (*self.dependencies, *self.dev_dependencies):
            by_name[dependency.name] = dependency
        return list(by_name.values())

    @property
    def all_explicit_dependencies(self) -> list[ManifestDependency]:
        """All dependencies except the autogenerated transitive entries."""
        return [dep for dep in self.all_dependencies if not dep.is_transitive]

    @property
    def declared(self) -> tuple[ManifestDependency, ...]:
        """Every dependency line in file order, transitive entries included."""
        return tuple(sorted((*self.dependencies, *self.dev_dependencies), key=lambda d: d.line_index))


@dataclass(frozen=True)
class RewriteResult:
    """Outcome of pinning one manifest."""

    manifest: Manifest
    text: str
    checksum: str
    excluded: frozenset[str] = frozenset()
    transitive: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return self.text != self.manifest.text
