"""Tests for pubspec.yaml parsing."""

import pytest

from pubpin.exceptions import ManifestParseError
from pubpin.models import DependencyKind, Section
from pubpin.parse_manifest import parse_manifest, parse_manifest_text


def _pairs(dependencies):
    return {f"{dependency.name}: {dependency.version}" for dependency in dependencies}


class TestManifestParser:
    """Test pubspec.yaml parsing."""

    def test_parse_name_and_declaration_order(self, flutter_pubspec):
        """Should keep dependencies in declaration order."""
        manifest = parse_manifest_text(flutter_pubspec)

        assert manifest.name == "flutter"
        assert manifest.text == flutter_pubspec
        assert [dep.name for dep in manifest.dependencies] == [
            "collection", "meta", "macros", "typed_data", "vector_math", "sky_engine", "gallery",
        ]
        assert [dep.name for dep in manifest.dev_dependencies] == [
            "flutter_test", "flutter_goldens", "archive",
        ]

    def test_parse_hosted_dependency(self, flutter_pubspec):
        """Should read the version of a hosted dependency."""
        manifest = parse_manifest_text(flutter_pubspec)

        collection = manifest.dependencies[0]
        assert collection.kind is DependencyKind.HOSTED
        assert collection.version == "1.14.11"
        assert collection.lock_line is None
        assert not collection.in_dev_dependencies

    def test_parse_git_dependency_lock_line(self, flutter_pubspec):
        """Should reproduce a git block exactly, nested indentation included."""
        manifest = parse_manifest_text(flutter_pubspec)

        git_dependency = next(dep for dep in manifest.dependencies if dep.kind is DependencyKind.GIT)
        assert git_dependency.name == "gallery"
        assert git_dependency.version == ""
        assert git_dependency.lock_line == (
            "    git:\n"
            "      url: https://github.com/flutter/gallery.git\n"
            "      ref: d00362e6bdd0f9b30bba337c358b9e4a6e4ca950\n"
        )

    def test_parse_sdk_dependency(self, flutter_pubspec):
        """Should recognise sdk dependencies in both blocks."""
        manifest = parse_manifest_text(flutter_pubspec)

        sky_engine = next(dep for dep in manifest.dependencies if dep.name == "sky_engine")
        assert sky_engine.kind is DependencyKind.SDK
        assert sky_engine.lock_line == "    sdk: flutter\n"

        flutter_test = manifest.dev_dependencies[0]
        assert flutter_test.kind is DependencyKind.SDK
        assert flutter_test.in_dev_dependencies

    def test_parse_path_dependency(self):
        """Should recognise path dependencies."""
        content = "name: app\ndependencies:\n  helper:\n    path: ../helper\n"
        manifest = parse_manifest_text(content)

        helper = manifest.dependencies[0]
        assert helper.kind is DependencyKind.PATH
        assert helper.lock_line == "    path: ../helper\n"

    def test_parse_inline_git_dependency(self):
        """Should accept a git dependency given as a single url."""
        content = "name: app\ndependencies:\n  tool:\n    git: https://example.com/tool.git\n"
        manifest = parse_manifest_text(content)

        assert manifest.dependencies[0].kind is DependencyKind.GIT

    def test_parse_transitive_marker(self, flutter_pubspec):
        """Should flag autogenerated lines as transitive."""
        manifest = parse_manifest_text(flutter_pubspec)

        archive = manifest.dev_dependencies[-1]
        assert archive.name == "archive"
        assert archive.version == "2.0.11"
        assert archive.is_transitive
        assert not any(dep.is_transitive for dep in manifest.dependencies)

    def test_parse_checksum(self, flutter_pubspec):
        """Should read the trailing checksum marker."""
        manifest = parse_manifest_text(flutter_pubspec)

        assert manifest.checksum == "1437"

    def test_parse_without_checksum(self, extra_pubspec):
        """Should handle manifests with no dependencies or checksum."""
        manifest = parse_manifest_text(extra_pubspec)

        assert manifest.name == "nodeps"
        assert manifest.checksum is None
        assert manifest.dependencies == ()
        assert manifest.all_dependencies == []

    def test_dependency_accessors(self, flutter_pubspec):
        """Should separate all, explicit and main dependencies."""
        manifest = parse_manifest_text(flutter_pubspec)

        assert _pairs(manifest.all_dependencies) == {
            "collection: 1.14.11",
            "meta: 1.1.8",
            "macros: 0.0.1",
            "typed_data: 1.1.6",
            "vector_math: 2.0.8",
            "sky_engine: ",
            "gallery: ",
            "flutter_test: ",
            "flutter_goldens: ",
            "archive: 2.0.11",
        }
        assert _pairs(manifest.all_explicit_dependencies) == {
            "collection: 1.14.11",
            "meta: 1.1.8",
            "macros: 0.0.1",
            "typed_data: 1.1.6",
            "vector_math: 2.0.8",
            "sky_engine: ",
            "gallery: ",
            "flutter_test: ",
            "flutter_goldens: ",
        }
        assert _pairs(manifest.dependencies) == {
            "collection: 1.14.11",
            "meta: 1.1.8",
            "macros: 0.0.1",
            "typed_data: 1.1.6",
            "vector_math: 2.0.8",
            "sky_engine: ",
            "gallery: ",
        }

    def test_duplicate_name_across_blocks_appears_once(self):
        """Should list a name from both blocks once, dev_dependencies winning."""
        content = """name: app
dependencies:
  meta: 1.1.8
  path: 1.8.0
dev_dependencies:
  meta: 1.9.0
"""
        manifest = parse_manifest_text(content)

        names = [dep.name for dep in manifest.all_dependencies]
        assert names == ["meta", "path"]
        meta = manifest.all_dependencies[0]
        assert meta.version == "1.9.0"
        assert meta.in_dev_dependencies

    def test_blocks_cover_dependency_sections(self, flutter_pubspec):
        """Should record the line range of each dependency block."""
        manifest = parse_manifest_text(flutter_pubspec)
        lines = flutter_pubspec.splitlines()

        dependencies = manifest.blocks[Section.DEPENDENCIES]
        dev_dependencies = manifest.blocks[Section.DEV_DEPENDENCIES]
        assert lines[dependencies.start] == "dependencies:"
        assert lines[dependencies.stop - 1] == "      ref: d00362e6bdd0f9b30bba337c358b9e4a6e4ca950"
        assert lines[dev_dependencies.start] == "dev_dependencies:"
        assert lines[dev_dependencies.stop - 1].startswith("  archive: 2.0.11")
        assert dev_dependencies.stop == len(lines) - 2

    def test_blocks_are_read_only(self, flutter_pubspec):
        """Should not allow the parsed block ranges to change."""
        manifest = parse_manifest_text(flutter_pubspec)

        with pytest.raises(TypeError):
            manifest.blocks[Section.OTHER] = range(0)

    def test_top_level_comment_ends_block(self):
        """Should leave a comment above the next section out of the block."""
        content = """name: app
dev_dependencies:
  test: any

# Flutter config
flutter:
  generate: true
"""
        manifest = parse_manifest_text(content)

        assert manifest.blocks[Section.DEV_DEPENDENCIES] == range(1, 3)

    def test_indented_comment_stays_in_block(self):
        """Should keep an indented trailing comment inside the block."""
        content = "name: app\ndependencies:\n  meta: any\n  # more to come\nflutter:\n"
        manifest = parse_manifest_text(content)

        assert manifest.blocks[Section.DEPENDENCIES] == range(1, 4)

    def test_newline_style(self):
        """Should record whether the file uses CRLF line endings."""
        assert parse_manifest_text("name: app\n").newline == "\n"
        crlf = parse_manifest_text("name: app\r\ndependencies:\r\n  meta: 1.1.8\r\n")
        assert crlf.newline == "\r\n"
        assert crlf.dependencies[0].version == "1.1.8"

    def test_parse_manifest_keeps_crlf(self, tmp_path):
        """Should read CRLF files without translating line endings."""
        (tmp_path / "pubspec.yaml").write_bytes(b"name: app\r\ndependencies:\r\n  meta: 1.1.8\r\n")

        manifest = parse_manifest(tmp_path)

        assert manifest.newline == "\r\n"
        assert manifest.text == "name: app\r\ndependencies:\r\n  meta: 1.1.8\r\n"

    @pytest.mark.parametrize("source, kind", [
        ("{path: ../foo}", DependencyKind.PATH),
        ("{sdk: flutter}", DependencyKind.SDK),
        ("{git: https://example.com/foo.git}", DependencyKind.GIT),
    ])
    def test_inline_source_mapping(self, source, kind):
        """Should read a source given as an inline mapping."""
        manifest = parse_manifest_text(f"name: app\ndependencies:\n  foo: {source}\n  meta: 1.1.8\n")

        foo = manifest.dependencies[0]
        assert foo.kind is kind
        assert foo.version == ""
        assert foo.lock_line == source
        assert manifest.dependencies[1].version == "1.1.8"

    @pytest.mark.parametrize("value", ["{hosted: https://pub.example.com}", "{path: }", "[a, b]"])
    def test_unsupported_inline_value_fails(self, value):
        """Should reject inline values that are not a supported source."""
        with pytest.raises(ManifestParseError) as exc_info:
            parse_manifest_text(f"name: app\ndependencies:\n  foo: {value}\n")
        assert "foo" in str(exc_info.value)

    def test_inline_comment_and_quoted_constraint(self):
        """Should keep the constraint and ignore a trailing comment."""
        content = """name: app
dependencies:
  meta: ">=1.0.0 <2.0.0"  # wide range on purpose
"""
        manifest = parse_manifest_text(content)

        meta = manifest.dependencies[0]
        assert meta.version == '">=1.0.0 <2.0.0"'
        assert not meta.is_transitive

    def test_truncated_git_block_fails(self, invalid_git_pubspec):
        """Should reject a git dependency without its nested fields."""
        with pytest.raises(ManifestParseError) as exc_info:
            parse_manifest_text(invalid_git_pubspec)
        assert "gallery" in str(exc_info.value)

    def test_parse_error_is_value_error(self, invalid_git_pubspec):
        """Should surface parse failures as ValueError too."""
        with pytest.raises(ValueError):
            parse_manifest_text(invalid_git_pubspec)

    def test_git_block_without_url_fails(self):
        """Should reject a git block that only names a ref."""
        content = """name: app
dependencies:
  tool:
    git:
      ref: main
"""
        with pytest.raises(ManifestParseError):
            parse_manifest_text(content)

    def test_dependency_without_source_fails(self):
        """Should reject a dependency with neither version nor source."""
        content = """name: app
dependencies:
  orphan:
  meta: 1.1.8
"""
        with pytest.raises(ManifestParseError) as exc_info:
            parse_manifest_text(content)
        assert "orphan" in str(exc_info.value)

    def test_unsupported_source_fails(self):
        """Should reject nested sources other than sdk, git and path."""
        content = """name: app
dependencies:
  meta:
    hosted: https://pub.example.com
"""
        with pytest.raises(ManifestParseError) as exc_info:
            parse_manifest_text(content)
        assert "hosted" in str(exc_info.value)

    def test_nested_line_under_hosted_dependency_fails(self):
        """Should reject extra indentation below a versioned dependency."""
        content = """name: app
dependencies:
  meta: 1.1.8
    sdk: flutter
"""
        with pytest.raises(ManifestParseError):
            parse_manifest_text(content)

    def test_missing_name_fails(self):
        """Should reject a manifest without a name."""
        with pytest.raises(ManifestParseError):
            parse_manifest_text("dependencies:\n  meta: 1.1.8\n")

    def test_parse_manifest_from_directory(self, sdk_root):
        """Should read pubspec.yaml from a package directory."""
        package = sdk_root / "packages" / "flutter"
        manifest = parse_manifest(package)

        assert manifest.name == "flutter"
        assert manifest.path == package / "pubspec.yaml"

    def test_parse_error_names_the_file(self, tmp_path, invalid_git_pubspec):
        """Should name the offending manifest and line in the error."""
        (tmp_path / "pubspec.yaml").write_text(invalid_git_pubspec)

        with pytest.raises(ManifestParseError) as exc_info:
            parse_manifest(tmp_path)
        assert str(tmp_path / "pubspec.yaml") in str(exc_info.value)
        assert exc_info.value.line is not None
