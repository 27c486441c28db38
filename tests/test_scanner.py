"""Tests for directory scanning and manifest building."""

import os
from unittest.mock import patch

import pytest

from pycodeai.exceptions import FileAccessError, ScopeViolationError
from pycodeai.sync.ignore import IgnoreRules
from pycodeai.sync.scanner import (
    DirectoryScanner,
    LocalFile,
    build_manifest,
    get_files_for_scope,
    hash_files,
)
from pycodeai.utils import calculate_content_hash


@pytest.fixture
def project(tmp_path):
    """Create a small project tree with noise, ignored and eligible files."""
    files = {
        "src/index.js": "A",
        "src/util.js": "B",
        "src/lib/helper.ts": "export const x = 1;\n",
        "node_modules/pkg/index.js": "module.exports = {};\n",
        "dist/bundle.js": "bundled",
        ".env": "SECRET=1\n",
        "debug.log": "log line\n",
        "README.md": "# Project\n",
        "logo.png": "not really a png",
        ".codeai.json": '{"projectId": "p1", "targetDirectory": "."}',
        ".gitignore": "secret.ts\n",
        "secret.ts": "const key = 'x';\n",
    }
    for relative_path, content in files.items():
        path = tmp_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return tmp_path


EXPECTED_FILES = ["src/index.js", "src/lib/helper.ts", "src/util.js"]


class TestLocalFile:
    """Tests for LocalFile."""

    def test_from_path(self, tmp_path):
        file_path = tmp_path / "sub" / "a.ts"
        file_path.parent.mkdir()
        file_path.write_text("abc")

        local_file = LocalFile.from_path(file_path, tmp_path)

        assert local_file.relative_path == "sub/a.ts"
        assert local_file.size == 3
        assert local_file.content_hash is None


class TestDirectoryScanner:
    """Tests for DirectoryScanner."""

    def test_scan_skips_noise_ignored_and_unsupported(self, project):
        scanner = DirectoryScanner(project)

        files = scanner.scan_local()

        assert [f.relative_path for f in files] == EXPECTED_FILES

    def test_scan_subdirectory_reports_project_relative_paths(self, project):
        scanner = DirectoryScanner(project)

        files = scanner.scan_local(project / "src" / "lib")

        assert [f.relative_path for f in files] == ["src/lib/helper.ts"]

    def test_scan_outside_root_raises(self, project, tmp_path_factory):
        other = tmp_path_factory.mktemp("other")
        scanner = DirectoryScanner(project)

        with pytest.raises(ScopeViolationError):
            scanner.scan_local(other)

    def test_scan_missing_directory_raises(self, project):
        scanner = DirectoryScanner(project)

        with pytest.raises(FileAccessError, match="does not exist"):
            scanner.scan_local(project / "missing")

    def test_ignore_file_can_be_disabled(self, project):
        scanner = DirectoryScanner(project, use_ignore_file=False)

        files = [f.relative_path for f in scanner.scan_local()]

        assert "secret.ts" in files

    def test_explicit_ignore_rules(self, project):
        scanner = DirectoryScanner(project, ignore_rules=IgnoreRules(["lib/"]))

        files = [f.relative_path for f in scanner.scan_local()]

        assert files == ["secret.ts", "src/index.js", "src/util.js"]

    def test_classifier_can_be_disabled(self, project):
        scanner = DirectoryScanner(project, apply_classifier=False)

        files = [f.relative_path for f in scanner.scan_local()]

        assert "logo.png" in files
        assert "README.md" in files
        # Noise is still pruned
        assert "debug.log" not in files
        assert not any(f.startswith("node_modules/") for f in files)

    def test_should_ignore_noise_directory(self, project):
        scanner = DirectoryScanner(project)

        assert scanner.should_ignore(project / "node_modules", is_dir=True)
        assert not scanner.should_ignore(project / "src", is_dir=True)


class TestBuildManifest:
    """Tests for build_manifest."""

    def test_manifest_contents(self, project):
        result = build_manifest(project)

        assert result.included_files == EXPECTED_FILES
        assert list(result.manifest) == EXPECTED_FILES
        assert result.manifest["src/index.js"] == calculate_content_hash(b"A")
        assert result.manifest["src/util.js"] == calculate_content_hash(b"B")

    def test_manifest_is_deterministic(self, project):
        first = build_manifest(project, project)
        second = build_manifest(project, project)

        assert first.manifest == second.manifest
        assert list(first.manifest) == list(second.manifest)

    def test_manifest_keys_are_relative_posix_paths(self, project):
        result = build_manifest(project)

        for path in result.manifest:
            assert "\\" not in path
            assert not path.startswith("/")
            assert ".." not in path.split("/")

    def test_scan_root_relative_to_project(self, project):
        result = build_manifest(project, "src/lib")

        assert result.included_files == ["src/lib/helper.ts"]

    def test_scan_root_outside_project_raises(self, tmp_path):
        project_root = tmp_path / "project"
        project_root.mkdir()
        (tmp_path / "elsewhere").mkdir()

        with pytest.raises(ScopeViolationError):
            build_manifest(project_root, "../elsewhere")

    def test_parallel_hashing_gives_same_manifest(self, project):
        sequential = build_manifest(project, max_workers=1)
        parallel = build_manifest(project, max_workers=4)

        assert list(parallel.manifest.items()) == list(sequential.manifest.items())

    def test_unreadable_file_raises(self, project):
        with patch(
            "pycodeai.sync.scanner.calculate_file_hash",
            side_effect=PermissionError("denied"),
        ):
            with pytest.raises(FileAccessError) as exc_info:
                build_manifest(project)

        assert exc_info.value.path == "src/index.js"

    def test_empty_project(self, tmp_path):
        result = build_manifest(tmp_path)

        assert result.manifest == {}
        assert result.included_files == []


class TestHashFiles:
    """Tests for hash_files."""

    def test_fills_content_hash(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_bytes(b"A")
        local_file = LocalFile.from_path(path, tmp_path)

        manifest = hash_files([local_file])

        assert manifest == {"a.ts": calculate_content_hash(b"A")}
        assert local_file.content_hash == calculate_content_hash(b"A")


class TestGetFilesForScope:
    """Tests for get_files_for_scope."""

    def test_directory_seed(self, project):
        assert get_files_for_scope(["src"], project_root=project) == EXPECTED_FILES

    def test_whole_project_seed(self, project):
        assert get_files_for_scope(["."], project_root=project) == EXPECTED_FILES

    def test_file_seed(self, project):
        result = get_files_for_scope(["src/util.js"], project_root=project)

        assert result == ["src/util.js"]

    def test_deduplicates_in_first_seen_order(self, project):
        result = get_files_for_scope(
            ["src/util.js", "src", "src/index.js"], project_root=project
        )

        assert result == ["src/util.js", "src/index.js", "src/lib/helper.ts"]

    def test_missing_seed_is_skipped(self, project):
        result = get_files_for_scope(
            ["does/not/exist.ts", "src/index.js"], project_root=project
        )

        assert result == ["src/index.js"]

    def test_excluded_and_unsupported_seeds_are_skipped(self, project):
        result = get_files_for_scope(
            ["node_modules", "logo.png", "README.md"], project_root=project
        )

        assert result == []

    def test_ignore_rules_applied(self, project):
        assert get_files_for_scope(["secret.ts"], project_root=project) == []

    def test_ignore_rules_can_be_disabled(self, project):
        result = get_files_for_scope(
            ["secret.ts"], project_root=project, respect_ignore_rules=False
        )

        assert result == ["secret.ts"]

    def test_absolute_seed(self, project):
        result = get_files_for_scope(
            [str(project / "src" / "index.js")], project_root=project
        )

        assert result == ["src/index.js"]

    def test_seed_outside_root_keeps_parent_prefix(self, tmp_path):
        project_root = tmp_path / "project"
        project_root.mkdir()
        (tmp_path / "secrets.txt").write_text("password")

        result = get_files_for_scope(["../secrets.txt"], project_root=project_root)

        assert result == ["../secrets.txt"]

    def test_seed_outside_root_bypasses_deny_list(self, tmp_path):
        project_root = tmp_path / "project"
        project_root.mkdir()
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "x.js").write_text("x")

        result = get_files_for_scope(["../build/x.js"], project_root=project_root)

        assert result == ["../build/x.js"]

    def test_symlinked_directory_is_skipped(self, project):
        try:
            os.symlink(project / "src", project / "src" / "loop")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks are not supported")

        result = get_files_for_scope(["src"], project_root=project)

        assert result == EXPECTED_FILES
        assert result == list(build_manifest(project).manifest)

    def test_changed_uses_git_change_list(self, project):
        with patch(
            "pycodeai.sync.scanner.get_changed_files",
            return_value=["src/util.js", "README.md", "deleted.ts"],
        ) as mock_changed:
            result = get_files_for_scope(
                ["ignored-when-changed"], changed=True, project_root=project
            )

        mock_changed.assert_called_once_with(os.path.abspath(project))
        assert result == ["src/util.js"]
