"""Tests for the archivers."""

from __future__ import annotations

import subprocess
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from isolator.core.errors import CollaboratorError, ConfigurationError
from isolator.isolation.archiver import (
    Archiver,
    ZipCommandArchiver,
    ZipfileArchiver,
    get_archiver,
    iter_staged_files,
)


def _stage(root: Path, files: dict[str, str]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


STAGED = {
    "package.json": '{"name": "repo"}',
    "packages/web/index.js": "require('../shared/util')",
    "packages/shared/util.js": "module.exports = 1",
}


class TestIterStagedFiles:
    def test_sorted_and_excludes_archive(self, tmp_path):
        staging = _stage(tmp_path / "s", {**STAGED, "deploy.zip": "old"})
        names = [p.relative_to(staging).as_posix() for p in iter_staged_files(staging)]
        assert names == ["package.json", "packages/shared/util.js", "packages/web/index.js"]

    def test_nested_deploy_zip_is_kept(self, tmp_path):
        staging = _stage(tmp_path / "s", {"pkg/deploy.zip": "nested"})
        names = [p.relative_to(staging).as_posix() for p in iter_staged_files(staging)]
        assert names == ["pkg/deploy.zip"]

    def test_directory_symlinks_followed(self, tmp_path):
        staging = _stage(tmp_path / "s", {"packages/shared/util.js": "x"})
        (staging / "node_modules").mkdir()
        (staging / "node_modules" / "shared").symlink_to(Path("../packages/shared"), target_is_directory=True)
        names = [p.relative_to(staging).as_posix() for p in iter_staged_files(staging)]
        assert names == ["node_modules/shared/util.js", "packages/shared/util.js"]

    def test_symlink_cycle_pruned(self, tmp_path):
        staging = _stage(tmp_path / "s", {"pkg/a.js": "a"})
        (staging / "pkg" / "self").symlink_to(Path(".."), target_is_directory=True)
        names = [p.relative_to(staging).as_posix() for p in iter_staged_files(staging)]
        assert names == ["pkg/a.js"]


class TestZipfileArchiver:
    def test_archive_contents(self, tmp_path):
        staging = _stage(tmp_path / "s", STAGED)
        result = ZipfileArchiver().archive(staging)
        assert result.is_ok()
        assert result.unwrap() == staging / "deploy.zip"
        with zipfile.ZipFile(staging / "deploy.zip") as zf:
            assert sorted(zf.namelist()) == sorted(STAGED)
            assert zf.read("packages/web/index.js") == b"require('../shared/util')"

    def test_manifest_only_tree_gives_single_entry(self, tmp_path):
        staging = _stage(tmp_path / "s", {"package.json": "{}"})
        ZipfileArchiver().archive(staging)
        with zipfile.ZipFile(staging / "deploy.zip") as zf:
            assert zf.namelist() == ["package.json"]

    def test_identical_trees_give_identical_bytes(self, tmp_path):
        first = _stage(tmp_path / "a", STAGED)
        second = _stage(tmp_path / "b", STAGED)
        ZipfileArchiver().archive(first)
        ZipfileArchiver().archive(second)
        assert (first / "deploy.zip").read_bytes() == (second / "deploy.zip").read_bytes()

    def test_rearchiving_does_not_include_previous_archive(self, tmp_path):
        staging = _stage(tmp_path / "s", STAGED)
        ZipfileArchiver().archive(staging)
        first = (staging / "deploy.zip").read_bytes()
        ZipfileArchiver().archive(staging)
        assert (staging / "deploy.zip").read_bytes() == first

    def test_os_error_becomes_err(self, tmp_path):
        staging = _stage(tmp_path / "s", STAGED)
        with patch("isolator.isolation.archiver.zipfile.ZipFile", side_effect=OSError("read-only")):
            result = ZipfileArchiver().archive(staging)
        assert result.is_err()
        assert isinstance(result.error, CollaboratorError)
        assert "read-only" in result.error.message


class TestZipCommandArchiver:
    def test_quiet_unless_verbose(self):
        archiver = ZipCommandArchiver()
        assert archiver.command(verbose=False) == ["zip", "-qq", "-r", "deploy.zip", ".", "-x", "deploy.zip"]
        assert archiver.command(verbose=True) == ["zip", "-r", "deploy.zip", ".", "-x", "deploy.zip"]

    @patch("isolator.isolation.archiver.subprocess.run")
    @patch("isolator.isolation.archiver.shutil.which", return_value="/usr/bin/zip")
    def test_runs_in_staging_root(self, mock_which, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        result = ZipCommandArchiver().archive(tmp_path)
        assert result.is_ok()
        assert result.unwrap() == tmp_path / "deploy.zip"
        assert mock_run.call_args.kwargs["cwd"] == tmp_path
        assert mock_run.call_args.kwargs["capture_output"] is True

    @patch("isolator.isolation.archiver.subprocess.run")
    @patch("isolator.isolation.archiver.shutil.which", return_value="/usr/bin/zip")
    def test_nonzero_exit_is_err(self, mock_which, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=12, stdout="", stderr="zip error: Nothing to do!")
        result = ZipCommandArchiver().archive(tmp_path)
        assert result.is_err()
        assert result.error.returncode == 12
        assert "Nothing to do" in result.error.message

    @patch("isolator.isolation.archiver.subprocess.run")
    @patch("isolator.isolation.archiver.shutil.which", return_value=None)
    def test_missing_binary_is_err(self, mock_which, mock_run, tmp_path):
        result = ZipCommandArchiver().archive(tmp_path)
        assert result.is_err()
        assert "not found" in result.error.message
        mock_run.assert_not_called()

    @patch("isolator.isolation.archiver.subprocess.run", side_effect=PermissionError("denied"))
    @patch("isolator.isolation.archiver.shutil.which", return_value="/usr/bin/zip")
    def test_launch_failure_is_err(self, mock_which, mock_run, tmp_path):
        result = ZipCommandArchiver().archive(tmp_path)
        assert result.is_err()
        assert "Cannot run zip" in result.error.message


class TestGetArchiver:
    def test_known_names(self):
        assert isinstance(get_archiver("zipfile"), ZipfileArchiver)
        assert isinstance(get_archiver("zip"), ZipCommandArchiver)
        assert isinstance(get_archiver("zipfile"), Archiver)

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            get_archiver("tar")
