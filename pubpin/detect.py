"""Package discovery inside an SDK checkout."""

import logging
from pathlib import Path

from .config import MANIFEST_FILENAME, PACKAGES_DIRNAME
from .models import Manifest
from .parse_manifest import parse_manifest

logger = logging.getLogger(__name__)


def discover_packages(sdk_root: Path | str) -> list[Path]:
    """Find package directories under the SDK's packages directory.

    Args:
        sdk_root: Root of the SDK checkout

    Returns:
        Package directories containing a manifest, sorted by name
    """
    packages_dir = Path(sdk_root) / PACKAGES_DIRNAME
    if not packages_dir.is_dir():
        return []

    # A directory without a manifest is a leftover, not a package
    return sorted(
        entry
        for entry in packages_dir.iterdir()
        if entry.is_dir() and (entry / MANIFEST_FILENAME).is_file()
    )


def load_manifests(sdk_root: Path | str) -> list[Manifest]:
    """Parse the manifest of every package in the SDK, in name order."""
    manifests = [parse_manifest(directory) for directory in discover_packages(sdk_root)]
    logger.debug("Parsed %d manifests under %s", len(manifests), sdk_root)
    return manifests
