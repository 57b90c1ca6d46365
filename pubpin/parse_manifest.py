"""Line-oriented pubspec.yaml parsing."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from .config import CHECKSUM_LABEL, MANIFEST_FILENAME, TRANSITIVE_MARKER
from .exceptions import ManifestParseError
from .models import DependencyKind, Manifest, ManifestDependency, Section

# "  name: value  # comment"; value and comment are both optional
ENTRY_PATTERN = re.compile(
    r"^(?P<indent>[ ]+)(?P<name>[A-Za-z0-9_.\-]+)\s*:"
    r"(?:\s*(?P<value>[^\s#](?:[^#]*[^\s#])?))?"
    r"(?P<suffix>\s*(?:#.*)?)$"
)
TOP_LEVEL_PATTERN = re.compile(r"^(?P<key>[A-Za-z0-9_]+)\s*:(?P<rest>.*)$")
CHECKSUM_PATTERN = re.compile(rf"^# {CHECKSUM_LABEL} CHECKSUM: (?P<digest>[0-9A-Fa-f]+)\s*$")

_SECTIONS = {
    "dependencies": Section.DEPENDENCIES,
    "dev_dependencies": Section.DEV_DEPENDENCIES,
}
_SPECIAL_KINDS = {
    "sdk": DependencyKind.SDK,
    "git": DependencyKind.GIT,
    "path": DependencyKind.PATH,
}


def _indentation(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _strip_comment(value: str) -> str:
    value = value.split(" #", 1)[0].strip()
    if value.startswith("#"):
        return ""
    return value.strip("'\"")


@dataclass
class _PendingEntry:
    """A dependency whose source is given on the following lines."""

    name: str
    start: int
    section: Section
    lines: list[str] = field(default_factory=list)
    end: int = 0


class ManifestParser:
    """Parser for the pubspec.yaml subset that dependency pinning needs.

    The parser is a small state machine over the current top-level section
    and the indentation of the dependency names inside it. Anything outside
    the dependency blocks is kept only as raw text.
    """

    def __init__(self, path: str | None = None):
        self.path = path
        self.newline = "\n"

    def _error(self, message: str, index: int | None = None) -> ManifestParseError:
        line = index + 1 if index is not None else None
        return ManifestParseError(message, path=self.path, line=line)

    def _finish_special(self, pending: _PendingEntry) -> ManifestDependency:
        if not pending.lines:
            raise self._error(f"dependency '{pending.name}' has neither a version nor a source", pending.start)

        key, _, value = pending.lines[0].strip().partition(":")
        kind = _SPECIAL_KINDS.get(key.strip())
        if kind is None:
            raise self._error(
                f"dependency '{pending.name}' uses unsupported source '{key.strip()}'", pending.start + 1
            )

        nested = [line.strip() for line in pending.lines[1:]]
        if kind is DependencyKind.GIT:
            # Block form must name the repository, otherwise the reference is unusable.
            if not _strip_comment(value) and not any(line.startswith("url:") for line in nested):
                raise self._error(f"git dependency '{pending.name}' is missing its url", pending.start)
        elif not _strip_comment(value):
            raise self._error(f"{key.strip()} dependency '{pending.name}' has an empty value", pending.start + 1)

        return ManifestDependency(
            name=pending.name,
            kind=kind,
            lock_line=self.newline.join(pending.lines) + self.newline,
            in_dev_dependencies=pending.section is Section.DEV_DEPENDENCIES,
            span=range(pending.start, pending.end),
        )

    def _flow_dependency(self, name: str, value: str, section: Section, index: int) -> ManifestDependency:
        """Dependency whose source is an inline mapping, as in ``foo: {path: ../foo}``."""
        if not (value.startswith("{") and value.endswith("}")):
            raise self._error(f"dependency '{name}' uses an unsupported inline form {value!r}", index)

        key, separator, source = value[1:-1].partition(":")
        kind = _SPECIAL_KINDS.get(key.strip())
        if not separator or kind is None:
            raise self._error(f"dependency '{name}' uses unsupported source '{key.strip()}'", index)
        if not _strip_comment(source):
            raise self._error(f"{key.strip()} dependency '{name}' has an empty value", index)

        return ManifestDependency(
            name=name,
            kind=kind,
            lock_line=value,
            in_dev_dependencies=section is Section.DEV_DEPENDENCIES,
            span=range(index, index + 1),
        )

    def parse(self, content: str) -> Manifest:
        """Parse pubspec.yaml content into a Manifest."""
        self.newline = "\r\n" if "\r\n" in content else "\n"
        lines = content.splitlines()
        name: str | None = None
        checksum: str | None = None
        section = Section.HEADER
        section_start = 0
        section_end = 0
        blocks: dict[Section, range] = {}
        entries: dict[Section, list[ManifestDependency]] = {
            Section.DEPENDENCIES: [],
            Section.DEV_DEPENDENCIES: [],
        }
        entry_indent: int | None = None
        pending: _PendingEntry | None = None
        previous: ManifestDependency | None = None

        def close_entry() -> None:
            nonlocal pending
            if pending is not None:
                entries[pending.section].append(self._finish_special(pending))
                pending = None

        def close_section(end: int) -> None:
            close_entry()
            if section in entries:
                if section in blocks:
                    raise self._error(f"duplicate '{section.value}' section", section_start)
                blocks[section] = range(section_start, end)

        for index, line in enumerate(lines):
            match = CHECKSUM_PATTERN.match(line)
            if match:
                checksum = match.group("digest").lower()
                continue

            stripped = line.strip()
            if not stripped:
                continue
            if stripped.startswith("#"):
                # only an indented comment extends the current block
                if line[0].isspace():
                    section_end = index + 1
                continue

            if not line[0].isspace():
                close_section(section_end)
                top = TOP_LEVEL_PATTERN.match(line)
                key = top.group("key") if top else ""
                if key == "name":
                    name = _strip_comment(top.group("rest"))
                section = _SECTIONS.get(key, Section.OTHER)
                section_start, section_end = index, index + 1
                entry_indent = None
                previous = None
                continue

            section_end = index + 1
            if section not in entries:
                continue

            indent = _indentation(line)
            if entry_indent is None:
                entry_indent = indent

            if indent > entry_indent:
                if pending is None:
                    label = f"'{previous.name}'" if previous else "dependency block"
                    raise self._error(f"unexpected nested line under {label}", index)
                pending.lines.append(line)
                pending.end = index + 1
                continue

            if indent < entry_indent:
                raise self._error("inconsistent indentation in dependency block", index)

            close_entry()
            match = ENTRY_PATTERN.match(line)
            if not match:
                raise self._error(f"cannot parse dependency line {stripped!r}", index)

            dep_name = match.group("name")
            value = match.group("value")
            if value is None:
                pending = _PendingEntry(name=dep_name, start=index, section=section, end=index + 1)
                previous = None
                continue

            if value.startswith(("{", "[")):
                previous = self._flow_dependency(dep_name, value, section, index)
                entries[section].append(previous)
                continue

            previous = ManifestDependency(
                name=dep_name,
                version=value,
                in_dev_dependencies=section is Section.DEV_DEPENDENCIES,
                is_transitive=match.group("suffix").strip().startswith(TRANSITIVE_MARKER),
                span=range(index, index + 1),
            )
            entries[section].append(previous)

        close_section(section_end)

        if not name:
            raise self._error("manifest has no 'name' field")

        return Manifest(
            name=name,
            text=content,
            lines=tuple(lines),
            dependencies=tuple(entries[Section.DEPENDENCIES]),
            dev_dependencies=tuple(entries[Section.DEV_DEPENDENCIES]),
            blocks=MappingProxyType(blocks),
            checksum=checksum,
            path=Path(self.path) if self.path else None,
            newline=self.newline,
        )


def parse_manifest_text(content: str, path: str | None = None) -> Manifest:
    """Parse pubspec.yaml content into Manifest.

    Args:
        content: The pubspec.yaml file content
        path: Optional file path used in error messages

    Returns:
        Parsed Manifest object

    Raises:
        ManifestParseError: If a dependency block is malformed
    """
    return ManifestParser(path).parse(content)


def parse_manifest(directory: Path | str) -> Manifest:
    """Parse the pubspec.yaml inside a package directory."""
    manifest_path = Path(directory) / MANIFEST_FILENAME
    # newline="" keeps CRLF files as written
    with manifest_path.open(encoding="utf-8", newline="") as handle:
        content = handle.read()
    return parse_manifest_text(content, str(manifest_path))
