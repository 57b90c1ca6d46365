"""Invocation of the external dependency resolver."""

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping
from pathlib import Path

from .config import DEFAULT_RESOLVER_COMMAND
from .exceptions import ResolverError
from .graph import DependencyGraph

logger = logging.getLogger(__name__)


def run_resolver(
    command: str = DEFAULT_RESOLVER_COMMAND,
    cwd: Path | str = ".",
    env: Mapping[str, str] | None = None,
) -> str:
    """Run the resolver and return what it printed.

    Args:
        command: Resolver command line, split with shell rules
        cwd: Directory to run it in, normally the synthetic SDK root
        env: Variables added to the inherited environment

    Returns:
        The resolver's standard output

    Raises:
        ResolverError: If the command cannot be started or exits non-zero
    """
    argv = shlex.split(command)
    logger.debug("Running %s in %s", argv, cwd)
    environment = {**os.environ, **env} if env else None
    try:
        completed = subprocess.run(
            argv, cwd=cwd, env=environment, capture_output=True, text=True, check=False
        )
    except OSError as e:
        raise ResolverError(f"Could not run resolver {argv[0]!r}: {e}") from e

    if completed.returncode != 0:
        raise ResolverError(
            f"Resolver {command!r} exited with status {completed.returncode}: {completed.stderr.strip()}"
        )
    return completed.stdout


def resolve_graph(command: str, cwd: Path | str, env: Mapping[str, str] | None = None) -> DependencyGraph:
    """Run the resolver and load its output into a DependencyGraph."""
    return DependencyGraph.from_output(run_resolver(command, cwd, env))
