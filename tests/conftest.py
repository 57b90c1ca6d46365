"""Pytest configuration and fixtures."""

import pytest

from pubpin.graph import DependencyGraph
from pubpin.parse_manifest import parse_manifest

# An example pubspec.yaml, not necessarily up to date.
FLUTTER_PUBSPEC = """\
name: flutter
description: A framework for writing Flutter applications
homepage: http://flutter.dev

environment:
  sdk: ^3.7.0-0

dependencies:
  # To update these, use "pubpin pin".
  collection: 1.14.11
  meta: 1.1.8
  macros: 0.0.1
  typed_data: 1.1.6
  vector_math: 2.0.8

  sky_engine:
    sdk: flutter

  gallery:
    git:
      url: https://github.com/flutter/gallery.git
      ref: d00362e6bdd0f9b30bba337c358b9e4a6e4ca950

dev_dependencies:
  flutter_test:
    sdk: flutter
  flutter_goldens:
    sdk: flutter

  archive: 2.0.11 # THIS LINE IS AUTOGENERATED - TO UPDATE USE "pubpin pin"

# PUBSPEC CHECKSUM: 1437
"""

EXTRA_PUBSPEC = """\
name: nodeps
description: A dummy pubspec with no dependencies
homepage: http://flutter.dev

environment:
  sdk: ^3.7.0-0
"""

INVALID_GIT_PUBSPEC = """\
name: flutter
description: A framework for writing Flutter applications
homepage: http://flutter.dev

environment:
  sdk: ^3.7.0-0

dependencies:
  # To update these, use "pubpin pin".
  collection: 1.14.11
  meta: 1.1.8
  typed_data: 1.1.6
  vector_math: 2.0.8

  sky_engine:
    sdk: flutter

  gallery:
    git:
"""

VERSION_JSON = """\
{
  "frameworkVersion": "1.2.3",
  "channel": "[user-branch]",
  "repositoryUrl": "git@github.com:flutter/flutter.git",
  "frameworkRevision": "1234567812345678123456781234567812345678",
  "frameworkCommitDate": "2024-02-06 22:26:52 +0100",
  "engineRevision": "abcdef01abcdef01abcdef01abcdef01abcdef01",
  "dartSdkVersion": "1.2.3",
  "devToolsVersion": "1.2.3",
  "flutterVersion": "1.2.3"
}
"""

# "pub deps --style=compact" style output for FLUTTER_PUBSPEC
FLUTTER_DEPS = """\
Dart SDK 3.7.0
Flutter SDK 1.2.3
flutter 0.0.0

dependencies:
- flutter 0.0.0 [collection meta macros typed_data vector_math sky_engine gallery flutter_test flutter_goldens]
- collection 1.19.0
- meta 1.15.0
- macros 0.1.3 [_macros]
- _macros 0.3.3
- typed_data 1.4.0 [collection]
- vector_math 2.1.4
- sky_engine 
- gallery 
- flutter_test  [test_api]
- flutter_goldens  [flutter_test crypto archive]
- test_api 0.7.3 [meta]
- crypto 3.0.6 [typed_data]
- archive 3.6.1
"""


@pytest.fixture
def flutter_pubspec():
    """Sample pubspec.yaml content for the flutter package."""
    return FLUTTER_PUBSPEC


@pytest.fixture
def extra_pubspec():
    """Sample pubspec.yaml without dependencies."""
    return EXTRA_PUBSPEC


@pytest.fixture
def invalid_git_pubspec():
    """Sample pubspec.yaml whose git dependency is truncated."""
    return INVALID_GIT_PUBSPEC


@pytest.fixture
def flutter_deps():
    """Resolver output matching the sample flutter pubspec."""
    return FLUTTER_DEPS


@pytest.fixture
def flutter_graph():
    """Dependency graph loaded from the sample resolver output."""
    return DependencyGraph.from_output(FLUTTER_DEPS)


@pytest.fixture
def sdk_root(tmp_path):
    """A simplified SDK checkout with a single flutter package."""
    root = tmp_path / "flutter"
    root.mkdir()
    (root / "version").write_text("1.2.3")
    cache = root / "bin" / "cache"
    cache.mkdir(parents=True)
    (cache / "flutter.version.json").write_text(VERSION_JSON)
    package = root / "packages" / "flutter"
    package.mkdir(parents=True)
    (package / "pubspec.yaml").write_text(FLUTTER_PUBSPEC)
    return root


@pytest.fixture
def flutter_manifest(sdk_root):
    """Parsed manifest of the flutter package inside sdk_root."""
    return parse_manifest(sdk_root / "packages" / "flutter")
