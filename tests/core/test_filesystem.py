"""
Unit tests for filesystem utilities.

Tests cover:
- Atomic writes
- Recursive size-then-delete, including races with other processes
- Platform-specific archive extraction commands
"""

import errno
import os
import stat
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from sdkenv.core.exceptions import ExternalToolError
from sdkenv.core.filesystem import atomic_write, delete_recursive, extract_zip
from sdkenv.core.platform import EngineOS


def _tree_size(path: Path) -> int:
    total = path.lstat().st_size
    if stat.S_ISDIR(path.lstat().st_mode):
        for child in path.iterdir():
            total += _tree_size(child)
    return total


class TestAtomicWrite:
    """Tests for atomic_write."""

    def test_writes_text(self, tmp_path):
        target = tmp_path / "nested" / "prefs.json"
        atomic_write(target, '{"a": 1}')
        assert target.read_text() == '{"a": 1}'

    def test_writes_bytes(self, tmp_path):
        target = tmp_path / "blob.bin"
        atomic_write(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_replaces_existing_and_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "prefs.json"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["prefs.json"]


class TestDeleteRecursive:
    """Tests for delete_recursive."""

    def test_missing_path_returns_zero(self, tmp_path):
        assert delete_recursive(tmp_path / "nope") == 0

    def test_single_file(self, tmp_path):
        f = tmp_path / "engine.zip"
        f.write_bytes(b"x" * 1234)
        assert delete_recursive(f) == 1234
        assert not f.exists()

    def test_directory_tree_size_matches_lstat_walk(self, tmp_path):
        root = tmp_path / "cache"
        (root / "a" / "b").mkdir(parents=True)
        (root / "a" / "one.bin").write_bytes(b"1" * 100)
        (root / "a" / "b" / "two.bin").write_bytes(b"2" * 200)
        (root / "three.bin").write_bytes(b"3" * 300)
        expected = _tree_size(root)

        assert delete_recursive(root) == expected
        assert not root.exists()

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlinks_are_not_followed(self, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "keep.bin").write_bytes(b"k" * 500)

        root = tmp_path / "cache"
        root.mkdir()
        (root / "link").symlink_to(outside)

        delete_recursive(root)

        assert not root.exists()
        assert (outside / "keep.bin").exists()

    def test_node_vanishing_mid_walk_counts_zero(self, tmp_path):
        root = tmp_path / "cache"
        root.mkdir()
        real = root / "real.bin"
        real.write_bytes(b"r" * 50)
        ghost = root / "ghost.bin"

        original_iterdir = Path.iterdir

        def iterdir_with_ghost(self):
            children = list(original_iterdir(self))
            if self == root:
                # Listed, then removed by another process before we get to it
                children.append(ghost)
            return iter(children)

        with patch.object(Path, "iterdir", iterdir_with_ghost):
            reclaimed = delete_recursive(root)

        assert not root.exists()
        assert reclaimed >= 50

    def test_directory_not_empty_is_retried(self, tmp_path):
        root = tmp_path / "cache"
        root.mkdir()
        (root / "file.bin").write_bytes(b"f" * 10)

        original_rmdir = Path.rmdir
        failures = {"left": 1}

        def flaky_rmdir(self):
            if self == root and failures["left"]:
                failures["left"] -= 1
                raise OSError(errno.ENOTEMPTY, "Directory not empty", str(self))
            return original_rmdir(self)

        with patch.object(Path, "rmdir", flaky_rmdir), patch(
            "sdkenv.core.filesystem.time.sleep"
        ) as sleep:
            delete_recursive(root)

        assert not root.exists()
        sleep.assert_called_once()

    def test_late_arrivals_count_towards_reclaimed_size(self, tmp_path):
        root = tmp_path / "cache"
        root.mkdir()
        (root / "file.bin").write_bytes(b"f" * 10)
        expected_without_late = _tree_size(root)

        original_rmdir = Path.rmdir
        state = {"late_size": None}

        def rmdir_racing_writer(self):
            if self == root and state["late_size"] is None:
                late = root / "late.bin"
                late.write_bytes(b"l" * 4096)
                state["late_size"] = late.lstat().st_size
                raise OSError(errno.ENOTEMPTY, "Directory not empty", str(self))
            return original_rmdir(self)

        with patch.object(Path, "rmdir", rmdir_racing_writer), patch(
            "sdkenv.core.filesystem.time.sleep"
        ):
            reclaimed = delete_recursive(root)

        assert not root.exists()
        assert reclaimed == expected_without_late + state["late_size"]

    def test_directory_not_empty_gives_up_after_bounded_attempts(self, tmp_path):
        root = tmp_path / "cache"
        root.mkdir()

        def always_not_empty(self):
            raise OSError(errno.ENOTEMPTY, "Directory not empty", str(self))

        with patch.object(Path, "rmdir", always_not_empty), patch(
            "sdkenv.core.filesystem.time.sleep"
        ) as sleep:
            with pytest.raises(OSError):
                delete_recursive(root)

        # Backoff doubles between attempts
        delays = [call.args[0] for call in sleep.call_args_list]
        assert delays == [0.05, 0.1, 0.2]

    def test_other_errors_propagate(self, tmp_path):
        root = tmp_path / "cache"
        root.mkdir()

        def denied(self):
            raise PermissionError(errno.EACCES, "Permission denied", str(self))

        with patch.object(Path, "rmdir", denied):
            with pytest.raises(PermissionError):
                delete_recursive(root)


class TestExtractZip:
    """Tests for extract_zip command selection."""

    def test_posix_uses_unzip(self, tmp_path):
        runner = MagicMock()
        archive = tmp_path / "engine.zip"
        dest = tmp_path / "out"

        with patch("sdkenv.core.filesystem.detect_os", return_value=EngineOS.LINUX):
            extract_zip(runner, archive, dest)

        runner.run.assert_called_once_with(
            ["unzip", "-o", "-q", archive, "-d", dest], check=True
        )
        assert dest.is_dir()

    def test_windows_prefers_7zip(self, tmp_path):
        runner = MagicMock()
        archive = tmp_path / "engine.zip"
        dest = tmp_path / "out"
        seven_zip = Path("C:/Program Files/7-Zip/7z.exe")

        with patch(
            "sdkenv.core.filesystem.detect_os", return_value=EngineOS.WINDOWS
        ), patch("sdkenv.core.filesystem.find_program", return_value=seven_zip):
            extract_zip(runner, archive, dest)

        runner.run.assert_called_once_with(
            [seven_zip, "x", "-y", f"-o{dest}", archive], check=True
        )

    def test_windows_falls_back_to_powershell(self, tmp_path):
        runner = MagicMock()
        archive = tmp_path / "engine.zip"
        dest = tmp_path / "out"

        with patch(
            "sdkenv.core.filesystem.detect_os", return_value=EngineOS.WINDOWS
        ), patch("sdkenv.core.filesystem.find_program", return_value=None):
            extract_zip(runner, archive, dest)

        command = runner.run.call_args.args[0]
        assert command[0] == "powershell"
        assert "Expand-Archive" in command[-1]
        assert str(archive) in command[-1]

    def test_extraction_failure_propagates(self, tmp_path):
        runner = MagicMock()
        runner.run.side_effect = ExternalToolError(["unzip"], 9, "", "bad zip")

        with patch("sdkenv.core.filesystem.detect_os", return_value=EngineOS.MACOS):
            with pytest.raises(ExternalToolError) as exc_info:
                extract_zip(runner, tmp_path / "engine.zip", tmp_path / "out")

        assert exc_info.value.returncode == 9
