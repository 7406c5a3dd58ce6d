"""Tests for devflow.utils.filesystem module."""

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from devflow.utils.filesystem import (
    chmod_recursive,
    copy_directory,
    copy_file,
    create_file_exclusive,
    ensure_directory,
    read_text_if_exists,
    remove_directory,
    remove_file,
    write_text_file,
)


class TestEnsureDirectory:
    """Tests for ensure_directory function."""

    def test_creates_nested(self, temp_dir: Path):
        """Creates missing parents and returns the path."""
        path = temp_dir / "a" / "b"
        assert ensure_directory(path) == path
        assert path.is_dir()


class TestCopy:
    """Tests for copy_file and copy_directory."""

    def test_copy_file_into_directory(self, temp_dir: Path):
        """Copying into a directory keeps the file name."""
        src = temp_dir / "agent.md"
        src.write_text("agent")
        dest_dir = ensure_directory(temp_dir / "out")

        assert copy_file(src, dest_dir) == dest_dir / "agent.md"
        assert (dest_dir / "agent.md").read_text() == "agent"

    def test_copy_directory_replaces(self, temp_dir: Path):
        """Existing destination content is replaced, not merged."""
        src = temp_dir / "src"
        (src / "nested").mkdir(parents=True)
        (src / "nested" / "SKILL.md").write_text("new")
        dest = temp_dir / "dest"
        dest.mkdir()
        (dest / "stale.md").write_text("old")

        copy_directory(src, dest)

        assert (dest / "nested" / "SKILL.md").read_text() == "new"
        assert not (dest / "stale.md").exists()


class TestRemove:
    """Tests for remove_directory and remove_file."""

    def test_missing_is_noop(self, temp_dir: Path):
        """Removing something absent returns False."""
        assert remove_directory(temp_dir / "nope") is False
        assert remove_file(temp_dir / "nope.md") is False

    def test_removes(self, temp_dir: Path):
        """Existing targets are removed."""
        directory = ensure_directory(temp_dir / "d" / "e")
        file_path = temp_dir / "f.md"
        file_path.write_text("x")

        assert remove_directory(directory.parent) is True
        assert remove_file(file_path) is True
        assert not directory.exists()
        assert not file_path.exists()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
class TestChmodRecursive:
    """Tests for chmod_recursive function."""

    def test_sets_mode_on_all_files(self, temp_dir: Path):
        """Every file below the directory gets the mode."""
        (temp_dir / "hooks").mkdir()
        (temp_dir / "a.sh").write_text("")
        (temp_dir / "hooks" / "b.sh").write_text("")

        assert chmod_recursive(temp_dir, 0o755) == 2
        assert stat.S_IMODE((temp_dir / "hooks" / "b.sh").stat().st_mode) == 0o755


class TestTextFiles:
    """Tests for text reading and writing helpers."""

    def test_read_if_exists(self, temp_dir: Path):
        """Missing files read as None."""
        assert read_text_if_exists(temp_dir / "missing") is None
        (temp_dir / "x").write_text("hi")
        assert read_text_if_exists(temp_dir / "x") == "hi"

    def test_read_keeps_line_endings(self, temp_dir: Path):
        """CRLF endings are not translated on read or write."""
        path = temp_dir / "profile.ps1"
        path.write_bytes(b"one\r\ntwo\r\n")

        content = read_text_if_exists(path)
        write_text_file(path, content + "three\r\n")

        assert content == "one\r\ntwo\r\n"
        assert path.read_bytes() == b"one\r\ntwo\r\nthree\r\n"

    def test_write_creates_parents(self, temp_dir: Path):
        """Parent directories are created."""
        path = temp_dir / "a" / "settings.json"
        write_text_file(path, "{}\n")
        assert path.read_text() == "{}\n"

    def test_write_leaves_no_temp_files(self, temp_dir: Path):
        """Only the target remains after a write."""
        path = temp_dir / "settings.json"
        write_text_file(path, "1")
        write_text_file(path, "2")
        assert [p.name for p in temp_dir.iterdir()] == ["settings.json"]
        assert path.read_text() == "2"

    def test_write_failure_keeps_original(self, temp_dir: Path):
        """A failed replace leaves the original content and no temp file."""
        path = temp_dir / "settings.json"
        path.write_text("original")

        with patch("devflow.utils.filesystem.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_text_file(path, "new")

        assert path.read_text() == "original"
        assert [p.name for p in temp_dir.iterdir()] == ["settings.json"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_write_preserves_mode(self, temp_dir: Path):
        """Rewriting a file keeps its permissions."""
        path = temp_dir / ".zshrc"
        path.write_text("x")
        path.chmod(0o600)

        write_text_file(path, "y")

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_create_exclusive(self, temp_dir: Path):
        """Creates once, then refuses to overwrite."""
        path = temp_dir / "CLAUDE.md"
        assert create_file_exclusive(path, "first") is True
        assert create_file_exclusive(path, "second") is False
        assert path.read_text() == "first"
