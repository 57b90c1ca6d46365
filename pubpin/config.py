"""File conventions and run settings for pubpin."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .pins import MANUALLY_PINNED_DEPENDENCIES, PinnedOverrides

MANIFEST_FILENAME = "pubspec.yaml"
VERSION_FILENAME = "version"
VERSION_INFO_FILENAME = "flutter.version.json"
PACKAGES_DIRNAME = "packages"
BIN_CACHE_PARTS = ("bin", "cache")
SDK_PACKAGE_CACHE_PARTS = ("bin", "cache", "pkg")

CHECKSUM_LABEL = "PUBSPEC"
TRANSITIVE_MARKER = "# THIS LINE IS AUTOGENERATED"
TRANSITIVE_COMMENT = f'{TRANSITIVE_MARKER} - TO UPDATE USE "pubpin pin"'
UNPINNED_VERSION = "any"

DEFAULT_RESOLVER_COMMAND = "dart pub deps --style=compact"
SYNTHETIC_ROOT_PREFIX = "pubpin_sdk."
AGGREGATE_PACKAGE_NAME = "pubpin_sdk_root"
AGGREGATE_SDK_CONSTRAINT = ">=3.0.0-0 <4.0.0"
SDK_ROOT_ENV_VAR = "FLUTTER_ROOT"


class PinSettings(BaseModel):
    """Settings for a single pinning run."""

    model_config = ConfigDict(frozen=True)

    sdk_root: Path
    excluded_roots: frozenset[str] = Field(default_factory=frozenset)
    resolver_command: str = DEFAULT_RESOLVER_COMMAND
    pins: dict[str, str] = Field(default_factory=lambda: dict(MANUALLY_PINNED_DEPENDENCIES))
    keep_synthetic_root: bool = False
    dry_run: bool = False

    @field_validator("resolver_command")
    @classmethod
    def _command_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("resolver command must not be empty")
        return value

    @field_validator("pins")
    @classmethod
    def _pins_are_exact(cls, value: dict[str, str]) -> dict[str, str]:
        # InvalidPinError is a ValueError, so pydantic reports it as a validation error
        PinnedOverrides(value)
        return value

    @property
    def overrides(self) -> PinnedOverrides:
        """The pins as an immutable override table for the rewriter."""
        return PinnedOverrides(self.pins)
