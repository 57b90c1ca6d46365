"""Manually pinned dependency versions."""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from packaging.version import InvalidVersion, Version

from .exceptions import InvalidPinError

# Add pinned packages here. Leave a comment explaining why.
MANUALLY_PINNED_DEPENDENCIES: Mapping[str, str] = MappingProxyType({
    "flutter_gallery_assets": "1.0.2",  # Tests depend on the exact version.
    "flutter_template_images": "4.2.0",  # Must match the tool templates.
    "video_player": "2.2.11",  # Later versions need a newer Android toolchain.
    "material_color_utilities": "0.11.1",  # Golden files are tied to this release.
})

_RANGE_PREFIXES = ("^", ">", "<", "=", "~")


def is_exact_version(value: str) -> bool:
    """Return True if value names one specific version."""
    text = value.strip()
    if not text or text == "any" or text.startswith(_RANGE_PREFIXES):
        return False
    try:
        Version(text)
    except InvalidVersion:
        return False
    return True


class PinnedOverrides(Mapping[str, str]):
    """Immutable name -> exact version table consulted before the graph."""

    def __init__(self, pins: Mapping[str, str] | None = None):
        pins = dict(pins or {})
        bad = sorted(name for name, version in pins.items() if not is_exact_version(version))
        if bad:
            details = ", ".join(f"{name}: {pins[name]!r}" for name in bad)
            raise InvalidPinError(f"Version pins must be exact versions, not ranges: {details}")
        self._pins = MappingProxyType(pins)

    def __getitem__(self, name: str) -> str:
        return self._pins[name]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._pins))

    def __len__(self) -> int:
        return len(self._pins)

    def __repr__(self) -> str:
        return f"PinnedOverrides({dict(self._pins)!r})"
