"""Dependency graph built from resolver output."""

import logging
from collections.abc import Iterable, Iterator

from .exceptions import DuplicateNodeError, MalformedRecordError

logger = logging.getLogger(__name__)

RECORD_PREFIX = "- "


class DependencyGraph:
    """Resolved dependency universe for one run.

    Filled one resolver record at a time; read-only once filled. Traversals
    visit children in sorted order so every derived result is stable.
    """

    def __init__(self):
        self._edges: dict[str, tuple[str, ...]] = {}
        self._versions: dict[str, str] = {}

    @classmethod
    def from_output(cls, output: str) -> "DependencyGraph":
        """Build a graph from the complete text printed by the resolver."""
        graph = cls()
        records = sum(1 for line in output.splitlines() if graph.fill(line))
        logger.debug("Loaded %d packages from resolver output", records)
        return graph

    def fill(self, line: str) -> bool:
        """Add the node described by one "- name version [children]" record.

        Lines that are not records (headers, blank lines) are ignored.

        Returns:
            True if the line was a record

        Raises:
            DuplicateNodeError: If the package already has a node
            MalformedRecordError: If the record does not name a package
        """
        if not line.startswith(RECORD_PREFIX):
            return False

        head, bracket, tail = line[len(RECORD_PREFIX):].partition("[")
        tokens = head.split()
        if not tokens:
            raise MalformedRecordError(f"Resolver record without a package name: {line!r}")

        name = tokens[0]
        if name in self._edges:
            raise DuplicateNodeError(f"Package {name} appears more than once in the resolver output")

        children = tail.strip().rstrip("]").split() if bracket else []
        self._edges[name] = tuple(children)
        if len(tokens) > 1:
            self._versions[name] = tokens[1]
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    @property
    def names(self) -> list[str]:
        return sorted(self._edges)

    def version_of(self, name: str) -> str | None:
        """Resolved version of a package, or None if unknown or unversioned."""
        return self._versions.get(name) or None

    def dependencies_of(self, name: str) -> tuple[str, ...]:
        """Direct dependencies; a package without a node is a leaf."""
        return self._edges.get(name, ())

    def _reachable(self, starts: Iterable[str]) -> set[str]:
        seen: set[str] = set()
        stack = sorted(set(starts), reverse=True)
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen.add(name)
            stack.extend(sorted(set(self.dependencies_of(name)) - seen, reverse=True))
        return seen

    def _descendants(self, starts: Iterable[str]) -> set[str]:
        children = {child for name in set(starts) for child in self.dependencies_of(name)}
        return self._reachable(children)

    def transitive_dependencies_for(self, names: Iterable[str]) -> list[str]:
        """Every package reachable through the dependencies of names, sorted."""
        return sorted(self._descendants(names))

    def excluded_dependencies(self, roots: Iterable[str], excluded_roots: Iterable[str]) -> set[str]:
        """Packages that exist only to support the excluded roots.

        Collects everything reachable below ``excluded_roots`` and removes
        whatever is also reachable from ``roots``. The excluded roots
        themselves are never part of the result.
        """
        excluded_roots = set(excluded_roots)
        if not excluded_roots:
            return set()
        retained = self._reachable(roots)
        return self._descendants(excluded_roots) - retained - excluded_roots

    def paths(self, start: str, end: str) -> list[list[str]]:
        """All cycle-free dependency paths from start to end, sorted."""
        found: list[list[str]] = []

        def walk(path: list[str]) -> None:
            current = path[-1]
            if current == end:
                found.append(list(path))
                return
            for child in sorted(set(self.dependencies_of(current))):
                if child not in path:
                    path.append(child)
                    walk(path)
                    path.pop()

        walk([start])
        return sorted(found, key=lambda path: (len(path), path))
