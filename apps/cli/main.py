"""CLI application for pubpin."""

import difflib
import json
import logging
import shutil
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from pubpin.assemble import create_synthetic_root
from pubpin.config import DEFAULT_RESOLVER_COMMAND, SDK_ROOT_ENV_VAR, PinSettings
from pubpin.detect import load_manifests
from pubpin.exceptions import PubpinError
from pubpin.graph import DependencyGraph
from pubpin.models import Manifest, RewriteResult
from pubpin.resolver import resolve_graph
from pubpin.rewrite import is_checksum_current, pin_manifest

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Send library logging to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


def print_error(message: str) -> None:
    console.print(f"Error: {message}", style="red", markup=False, highlight=False, soft_wrap=True)


def format_diff_output(result: RewriteResult) -> str:
    """Unified diff between the manifest on disk and its pinned form."""
    path = str(result.manifest.path or result.manifest.name)
    diff = difflib.unified_diff(
        result.manifest.text.splitlines(keepends=True),
        result.text.splitlines(keepends=True),
        fromfile=path,
        tofile=path,
    )
    return "".join(diff)


def format_json_output(results: list[RewriteResult]) -> str:
    """Format JSON output."""
    reports = []
    for result in results:
        reports.append({
            "name": result.manifest.name,
            "path": str(result.manifest.path) if result.manifest.path else None,
            "changed": result.changed,
            "checksum": result.checksum,
            "excluded": sorted(result.excluded),
            "transitive": list(result.transitive),
        })

    return json.dumps({"reports": reports}, indent=2)


def load_graph(settings: PinSettings, manifests: list[Manifest], deps_file: Path | None) -> DependencyGraph:
    """Read resolver output from a file, or run the resolver on a synthetic root."""
    if deps_file is not None:
        return DependencyGraph.from_output(deps_file.read_text(encoding="utf-8"))

    synthetic_root = create_synthetic_root(settings.sdk_root, manifests, tempfile.gettempdir())
    try:
        # sdk dependencies resolve against the synthetic root, not the real SDK
        env = {SDK_ROOT_ENV_VAR: str(synthetic_root)}
        return resolve_graph(settings.resolver_command, synthetic_root, env=env)
    finally:
        if settings.keep_synthetic_root:
            console.print(f"Kept synthetic root at {synthetic_root}", soft_wrap=True)
        else:
            shutil.rmtree(synthetic_root, ignore_errors=True)


app = typer.Typer(
    name="pubpin",
    help="pubpin - Pin pubspec.yaml dependencies to resolved versions",
    add_completion=False,
)


@app.command()
def pin(
    sdk_root: Path = typer.Argument(help="Root of the SDK checkout (contains packages/)"),
    deps_file: Path | None = typer.Option(None, "--deps-file", help="Saved resolver output to use instead of running the resolver"),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-x", help="Package whose exclusive dependencies are left out (repeatable)"),
    resolver: str = typer.Option(DEFAULT_RESOLVER_COMMAND, "--resolver", help="Resolver command run in the synthetic root"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show changes without writing manifests"),
    keep_temp: bool = typer.Option(False, "--keep-temp", help="Keep the synthetic root for inspection"),
    format_type: str = typer.Option("text", "--format", help="Output format: text or json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Pin every package manifest under SDK_ROOT to resolved versions."""
    configure_logging(verbose)

    try:
        settings = PinSettings(
            sdk_root=sdk_root,
            excluded_roots=frozenset(exclude or ()),
            resolver_command=resolver,
            keep_synthetic_root=keep_temp,
            dry_run=dry_run,
        )
        manifests = load_manifests(settings.sdk_root)
        if not manifests:
            console.print("No packages found to pin")
            raise typer.Exit(0)

        graph = load_graph(settings, manifests, deps_file)
        results = [
            pin_manifest(manifest, graph, settings.excluded_roots, settings.overrides, dry_run=settings.dry_run)
            for manifest in manifests
        ]

        if format_type == "json":
            console.print(format_json_output(results), markup=False, highlight=False, soft_wrap=True)
            return

        for result in results:
            if not result.changed:
                console.print(f"{result.manifest.name}: up to date")
            elif settings.dry_run:
                console.print(format_diff_output(result), markup=False, highlight=False, soft_wrap=True)
            else:
                console.print(f"Updated {result.manifest.path}", soft_wrap=True)

    except typer.Exit:
        raise
    except (PubpinError, ValueError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command()
def verify(
    sdk_root: Path = typer.Argument(help="Root of the SDK checkout (contains packages/)"),
) -> None:
    """Check that every manifest's checksum matches its dependencies."""
    configure_logging()

    try:
        manifests = load_manifests(sdk_root)
    except (PubpinError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    stale = [manifest for manifest in manifests if not is_checksum_current(manifest)]
    for manifest in stale:
        reason = "has no checksum" if manifest.checksum is None else "checksum is stale"
        console.print(f"{manifest.path}: {reason}", style="yellow", soft_wrap=True)

    if stale:
        console.print('Run "pubpin pin" to update the pinned versions.')
        raise typer.Exit(1)
    console.print(f"All {len(manifests)} manifests are up to date")


@app.command("unpin")
def unpin_command(
    sdk_root: Path = typer.Argument(help="Root of the SDK checkout (contains packages/)"),
    out: Path | None = typer.Option(None, "--out", "-o", help="Directory to create the synthetic root in"),
) -> None:
    """Create a synthetic SDK root with unpinned manifests and print its path."""
    configure_logging()

    try:
        root = create_synthetic_root(sdk_root, load_manifests(sdk_root), out or tempfile.gettempdir())
    except (PubpinError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    console.print(str(root), soft_wrap=True, highlight=False)


@app.command()
def closure(
    names: list[str] = typer.Argument(help="Packages whose transitive dependencies to list"),
    deps_file: Path = typer.Option(..., "--deps-file", help="Saved resolver output"),
) -> None:
    """List the transitive dependencies of the given packages."""
    try:
        graph = DependencyGraph.from_output(deps_file.read_text(encoding="utf-8"))
    except (PubpinError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    for name in graph.transitive_dependencies_for(names):
        version = graph.version_of(name) or ""
        console.print(f"{name} {version}".rstrip(), highlight=False)


@app.command()
def paths(
    start: str = typer.Argument(help="Package to start from"),
    end: str = typer.Argument(help="Package to reach"),
    deps_file: Path = typer.Option(..., "--deps-file", help="Saved resolver output"),
) -> None:
    """Show every dependency path from START to END."""
    try:
        graph = DependencyGraph.from_output(deps_file.read_text(encoding="utf-8"))
    except (PubpinError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    found = graph.paths(start, end)
    if not found:
        console.print(f"No dependency path from {start} to {end}")
        raise typer.Exit(1)
    for path in found:
        console.print(" -> ".join(path), highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
