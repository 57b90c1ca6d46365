"""Synthetic SDK root used to drive the resolver in isolation."""

import logging
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, ValidationError

from .config import (
    AGGREGATE_PACKAGE_NAME,
    AGGREGATE_SDK_CONSTRAINT,
    BIN_CACHE_PARTS,
    MANIFEST_FILENAME,
    PACKAGES_DIRNAME,
    SDK_PACKAGE_CACHE_PARTS,
    SYNTHETIC_ROOT_PREFIX,
    UNPINNED_VERSION,
    VERSION_FILENAME,
    VERSION_INFO_FILENAME,
)
from .detect import discover_packages
from .exceptions import AssemblyError
from .models import DependencyKind, Manifest, ManifestDependency
from .rewrite import unpin

logger = logging.getLogger(__name__)


class VersionInfo(BaseModel):
    """Fields the version-info document must carry."""

    frameworkVersion: str
    channel: str
    repositoryUrl: str
    frameworkRevision: str
    frameworkCommitDate: str
    engineRevision: str
    dartSdkVersion: str
    devToolsVersion: str
    flutterVersion: str


def _read_version_info(path: Path) -> VersionInfo:
    try:
        return VersionInfo.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise AssemblyError(f"Invalid version info document {path}: {e}") from e


def _stage_sdk_package(sdk_root: Path, synthetic_root: Path, name: str) -> None:
    source = sdk_root.joinpath(*SDK_PACKAGE_CACHE_PARTS, name)
    target = synthetic_root.joinpath(*SDK_PACKAGE_CACHE_PARTS, name)
    if source.is_dir():
        shutil.copytree(source, target)
        return

    logger.warning("SDK package '%s' not found in %s; staging an empty package", name, source.parent)
    target.mkdir(parents=True, exist_ok=True)
    (target / MANIFEST_FILENAME).write_text(f"name: {name}\n", encoding="utf-8")


def _source_lines(dependency: ManifestDependency) -> list[str]:
    if dependency.is_hosted:
        return [f"  {dependency.name}: {UNPINNED_VERSION}"]
    if dependency.lock_line.startswith("{"):
        return [f"  {dependency.name}: {dependency.lock_line}"]
    return [f"  {dependency.name}:", *dependency.lock_line.splitlines()]


def aggregate_manifest(staged: Sequence[Manifest]) -> str:
    """Manifest for the synthetic root that depends on every staged package.

    Staged packages are referenced by path and overridden by path, so an
    sdk dependency on one of them resolves to the staged copy. Their hosted,
    sdk and git dev dependencies are lifted into the root's dev_dependencies,
    since the resolver only follows the dev dependencies of the root.
    """
    names = sorted(manifest.name for manifest in staged)
    by_path = [line for name in names for line in (f"  {name}:", f"    path: {PACKAGES_DIRNAME}/{name}")]

    dev_dependencies: dict[str, ManifestDependency] = {}
    for manifest in sorted(staged, key=lambda manifest: manifest.name):
        for dependency in manifest.dev_dependencies:
            if dependency.kind is DependencyKind.PATH or dependency.is_transitive:
                continue
            if dependency.name not in names:
                dev_dependencies.setdefault(dependency.name, dependency)

    lines = [
        f"name: {AGGREGATE_PACKAGE_NAME}",
        "publish_to: none",
        "",
        "environment:",
        f"  sdk: '{AGGREGATE_SDK_CONSTRAINT}'",
        "",
        "dependencies:",
        *by_path,
    ]
    if dev_dependencies:
        lines += ["", "dev_dependencies:"]
        for name in sorted(dev_dependencies):
            lines += _source_lines(dev_dependencies[name])
    lines += ["", "dependency_overrides:", *by_path]
    return "\n".join(lines) + "\n"


def create_synthetic_root(
    sdk_root: Path | str,
    manifests: Sequence[Manifest],
    destination_parent: Path | str,
) -> Path:
    """Build an SDK tree whose manifests carry unpinned dependencies.

    The root also gets a manifest of its own (see ``aggregate_manifest``)
    so the resolver can be run there once for every package.

    Args:
        sdk_root: Real SDK checkout to mirror
        manifests: Parsed manifests of the packages to stage
        destination_parent: Directory the new root is created in

    Returns:
        Path of the synthetic root. The caller removes it.

    Raises:
        AssemblyError: If the SDK root lacks its version files
    """
    sdk_root = Path(sdk_root)
    version_file = sdk_root / VERSION_FILENAME
    version_info = sdk_root.joinpath(*BIN_CACHE_PARTS, VERSION_INFO_FILENAME)
    for required in (version_file, version_info):
        if not required.is_file():
            raise AssemblyError(f"{sdk_root} is not an SDK root: missing {required}")
    info = _read_version_info(version_info)

    root = Path(tempfile.mkdtemp(prefix=SYNTHETIC_ROOT_PREFIX, dir=destination_parent))
    logger.debug("Assembling synthetic root %s for version %s", root, info.frameworkVersion)
    try:
        _populate(sdk_root, root, manifests, version_file, version_info)
    except BaseException:
        shutil.rmtree(root, ignore_errors=True)
        raise
    return root


def _populate(
    sdk_root: Path,
    root: Path,
    manifests: Sequence[Manifest],
    version_file: Path,
    version_info: Path,
) -> None:
    shutil.copyfile(version_file, root / VERSION_FILENAME)
    bin_cache = root.joinpath(*BIN_CACHE_PARTS)
    bin_cache.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(version_info, bin_cache / VERSION_INFO_FILENAME)

    by_name = {manifest.name: manifest for manifest in manifests}
    staged: list[Manifest] = []
    for package_dir in discover_packages(sdk_root):
        manifest = by_name.get(package_dir.name)
        if manifest is None:
            logger.warning("Unexpected package '%s' found in packages directory", package_dir.name)
            continue
        target = root / PACKAGES_DIRNAME / package_dir.name / MANIFEST_FILENAME
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(unpin(manifest), encoding="utf-8", newline="")
        staged.append(manifest)

    staged_names = {manifest.name for manifest in staged}
    sdk_packages = {
        dependency.name
        for manifest in manifests
        for dependency in manifest.all_dependencies
        if dependency.kind is DependencyKind.SDK
    }
    for name in sorted(sdk_packages - staged_names):
        _stage_sdk_package(sdk_root, root, name)

    (root / MANIFEST_FILENAME).write_text(aggregate_manifest(staged), encoding="utf-8")
