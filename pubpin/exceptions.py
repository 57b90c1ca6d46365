"""Exception hierarchy for pubpin."""


class PubpinError(Exception):
    """Base class for all pubpin errors."""


class ManifestParseError(PubpinError, ValueError):
    """Raised when a manifest cannot be parsed safely."""

    def __init__(self, message: str, path: str | None = None, line: int | None = None):
        self.path = path
        self.line = line
        location = path or "<manifest>"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")


class GraphError(PubpinError):
    """Base class for dependency graph errors."""


class DuplicateNodeError(GraphError):
    """Raised when the resolver output lists the same package twice."""


class MalformedRecordError(GraphError, ValueError):
    """Raised for a resolver record that does not name a package."""


class GraphMismatchError(GraphError):
    """Raised when a manifest's own package is absent from the graph."""


class InvalidPinError(PubpinError, ValueError):
    """Raised when a manually pinned version is not an exact version."""


class AssemblyError(PubpinError):
    """Raised when the synthetic SDK root cannot be assembled."""


class ResolverError(PubpinError):
    """Raised when the external resolver cannot be run or fails."""
