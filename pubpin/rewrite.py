"""Pinning and unpinning manifest dependency blocks."""

import logging
import os
import tempfile
from collections.abc import Callable, Collection, Iterable, Mapping
from pathlib import Path

from .config import CHECKSUM_LABEL, TRANSITIVE_COMMENT, UNPINNED_VERSION
from .exceptions import GraphMismatchError
from .graph import DependencyGraph
from .models import Manifest, ManifestDependency, RewriteResult, Section
from .parse_manifest import ENTRY_PATTERN
from .pins import MANUALLY_PINNED_DEPENDENCIES, PinnedOverrides

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_INDENT = "  "


def compute_checksum(entries: Iterable[str]) -> str:
    """Fletcher-16 digest of the sorted "name: version" entries, as 4 hex digits."""
    joined = ",".join(sorted(entries))
    lower = upper = 0
    for byte in joined.encode("utf-8"):
        lower = (lower + byte) % 255
        upper = (upper + lower) % 255
    return f"{(upper << 8) + lower:04x}"


def _entry(name: str, version: str) -> str:
    return f"{name}: {version}"


def manifest_checksum(manifest: Manifest) -> str:
    """Checksum of the dependency lines currently in the manifest."""
    return compute_checksum(_entry(dep.name, dep.version) for dep in manifest.declared)


def is_checksum_current(manifest: Manifest) -> bool:
    """Whether the stored checksum matches the manifest's dependency lines."""
    return manifest.checksum is not None and manifest_checksum(manifest) == manifest.checksum


def _replace_version(line: str, version: str) -> str:
    match = ENTRY_PATTERN.match(line)
    return line[: match.start("value")] + version + line[match.end("value"):]


def _trim_trailing_blanks(lines: list[str]) -> int:
    count = 0
    while lines and not lines[-1].strip():
        lines.pop()
        count += 1
    return count


def _entry_indent(manifest: Manifest) -> str:
    for dependency in manifest.dev_dependencies or manifest.dependencies:
        line = manifest.lines[dependency.line_index]
        return line[: len(line) - len(line.lstrip(" "))]
    return DEFAULT_ENTRY_INDENT


def _render(
    manifest: Manifest,
    rewrite: Callable[[ManifestDependency, str], str | None],
    tail: list[str],
    checksum: str | None,
) -> str:
    """Re-emit the manifest with each declared dependency passed through rewrite.

    ``rewrite`` returns the replacement for the dependency's name line, or
    None to drop the dependency entirely. Nested lock lines of special
    dependencies are copied verbatim. Transitive entries and checksum
    markers are always dropped; ``tail`` is appended to dev_dependencies.
    """
    dropped: set[int] = set()
    replaced: dict[int, str] = {}
    for dependency in manifest.declared:
        if dependency.is_transitive:
            dropped.update(dependency.span)
            continue
        line = rewrite(dependency, manifest.lines[dependency.line_index])
        if line is None:
            dropped.update(dependency.span)
        else:
            replaced[dependency.line_index] = line

    dev_block = manifest.blocks.get(Section.DEV_DEPENDENCIES)
    output: list[str] = []

    def close_dev_block() -> None:
        # blanks left here only separated lines that were dropped
        _trim_trailing_blanks(output)
        if tail:
            if output and output[-1] != manifest.lines[dev_block.start]:
                output.append("")
            output.extend(tail)

    for index, line in enumerate(manifest.lines):
        if dev_block is not None and index == dev_block.stop:
            close_dev_block()
        if index in dropped or line.startswith(f"# {CHECKSUM_LABEL} CHECKSUM:"):
            continue
        output.append(replaced.get(index, line))

    if dev_block is not None and dev_block.stop == len(manifest.lines):
        close_dev_block()
    elif dev_block is None and tail:
        _trim_trailing_blanks(output)
        output.extend(["", "dev_dependencies:", *tail])

    _trim_trailing_blanks(output)
    if checksum is not None:
        output.extend(["", f"# {CHECKSUM_LABEL} CHECKSUM: {checksum}"])
    return manifest.newline.join(output) + manifest.newline


def apply(
    manifest: Manifest,
    graph: DependencyGraph,
    excluded_roots: Collection[str] = frozenset(),
    pins: Mapping[str, str] | None = None,
) -> RewriteResult:
    """Pin a manifest's dependencies to the versions in graph.

    Args:
        manifest: Parsed manifest to rewrite
        graph: Dependency graph from the resolver run
        excluded_roots: Packages whose exclusive transitive dependencies
            must not appear in the output
        pins: Manually pinned versions, consulted before the graph;
            defaults to MANUALLY_PINNED_DEPENDENCIES

    Returns:
        Rewrite result with the new text and its checksum

    Raises:
        GraphMismatchError: If the manifest's package is not in the graph
    """
    if manifest.name not in graph:
        raise GraphMismatchError(
            f"Package {manifest.name} ({manifest.path or 'manifest'}) is not in the dependency graph; "
            "was the resolver run against the right packages?"
        )
    pins = pins if pins is not None else PinnedOverrides(MANUALLY_PINNED_DEPENDENCIES)
    excluded_roots = set(excluded_roots)

    explicit = [dep.name for dep in manifest.all_explicit_dependencies]
    roots = [name for name in explicit if name not in excluded_roots]
    excluded = graph.excluded_dependencies(roots, excluded_roots)

    def version_for(name: str) -> str | None:
        return pins.get(name) or graph.version_of(name)

    entries: list[str] = []

    def pin(dependency: ManifestDependency, line: str) -> str | None:
        if dependency.name in excluded:
            logger.debug("%s: dropping excluded dependency %s", manifest.name, dependency.name)
            return None
        if not dependency.is_hosted:
            entries.append(_entry(dependency.name, dependency.version))
            return line
        version = version_for(dependency.name) or dependency.version
        entries.append(_entry(dependency.name, version))
        return _replace_version(line, version)

    indent = _entry_indent(manifest)
    tail: list[str] = []
    transitive: list[str] = []
    for name in graph.transitive_dependencies_for(roots):
        if name in explicit or name == manifest.name or name in excluded:
            continue
        version = version_for(name)
        if version is None:
            continue
        transitive.append(name)
        entries.append(_entry(name, version))
        tail.append(f"{indent}{name}: {version} {TRANSITIVE_COMMENT}")

    # pin() fills entries while rendering, so the checksum line is patched in after
    body = _render(manifest, pin, tail, checksum=None)
    checksum = compute_checksum(entries)
    newline = manifest.newline
    text = body.rstrip("\r\n") + f"{newline}{newline}# {CHECKSUM_LABEL} CHECKSUM: {checksum}{newline}"
    return RewriteResult(
        manifest=manifest,
        text=text,
        checksum=checksum,
        excluded=frozenset(excluded),
        transitive=tuple(transitive),
    )


def unpin(manifest: Manifest) -> str:
    """Manifest text with every hosted version relaxed to "any"."""

    def relax(dependency: ManifestDependency, line: str) -> str:
        if dependency.is_hosted:
            return _replace_version(line, UNPINNED_VERSION)
        return line

    return _render(manifest, relax, tail=[], checksum=None)


def write_manifest(path: Path | str, text: str) -> None:
    """Replace a file in one step so readers never see a partial write."""
    path = Path(path)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def pin_manifest(
    manifest: Manifest,
    graph: DependencyGraph,
    excluded_roots: Collection[str] = frozenset(),
    pins: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> RewriteResult:
    """Apply pins and write the manifest back if its text changed."""
    result = apply(manifest, graph, excluded_roots, pins)
    if result.changed and not dry_run and manifest.path is not None:
        write_manifest(manifest.path, result.text)
        logger.debug("Wrote %s", manifest.path)
    return result
