"""Tests for publishing the archive and removing the staging root."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from isolator.core.errors import CleanupWarning, CopyError
from isolator.isolation.publisher import publish, remove_staging


@pytest.fixture
def staging(tmp_path) -> Path:
    path = tmp_path / "isolator-abc"
    (path / "pkg").mkdir(parents=True)
    (path / "pkg" / "index.js").write_text("x")
    (path / "deploy.zip").write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return path


class TestPublish:
    def test_copies_archive_and_removes_staging(self, staging, tmp_path):
        output = tmp_path / "out.zip"
        published, warning = publish(staging, output)
        assert published == output
        assert output.read_bytes() == b"PK\x05\x06" + b"\x00" * 18
        assert warning is None
        assert not staging.exists()

    def test_existing_directory_receives_deploy_zip(self, staging, tmp_path):
        out_dir = tmp_path / "dist"
        out_dir.mkdir()
        published, _ = publish(staging, out_dir)
        assert published == out_dir / "deploy.zip"
        assert published.is_file()

    def test_overwrites_existing_output(self, staging, tmp_path):
        output = tmp_path / "out.zip"
        output.write_bytes(b"stale")
        publish(staging, output)
        assert output.read_bytes() != b"stale"

    def test_missing_archive_raises_copy_error(self, staging, tmp_path):
        (staging / "deploy.zip").unlink()
        with pytest.raises(CopyError) as exc_info:
            publish(staging, tmp_path / "out.zip")
        assert exc_info.value.source == str(staging / "deploy.zip")
        assert staging.exists()

    def test_missing_output_parent_raises_copy_error(self, staging, tmp_path):
        with pytest.raises(CopyError):
            publish(staging, tmp_path / "no" / "such" / "out.zip")

    def test_cleanup_failure_is_only_a_warning(self, staging, tmp_path):
        output = tmp_path / "out.zip"
        with patch("isolator.isolation.publisher.shutil.rmtree", side_effect=PermissionError("busy")):
            with pytest.warns(CleanupWarning, match="busy"):
                published, warning = publish(staging, output)
        assert published.is_file()
        assert "busy" in warning


class TestRemoveStaging:
    def test_removes_tree(self, staging):
        assert remove_staging(staging) is None
        assert not staging.exists()

    def test_already_gone(self, tmp_path):
        assert remove_staging(tmp_path / "missing") is None
