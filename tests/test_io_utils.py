"""
Tests for whole-file text I/O
"""
import os
import stat

import pytest

from changelog_action import io_utils


class TestAtomicWrite:
    """atomic_write_text replaces files as a whole."""

    def test_writes_new_file(self, tmp_path):
        path = tmp_path / "sub" / "CHANGES.md"
        io_utils.atomic_write_text(path, "# Changelog\n")
        assert path.read_text(encoding="utf-8") == "# Changelog\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "CHANGES.md"
        io_utils.atomic_write_text(path, "one\n")
        io_utils.atomic_write_text(path, "two\n")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["CHANGES.md"]
        assert path.read_text(encoding="utf-8") == "two\n"

    def test_keeps_file_mode(self, tmp_path):
        path = tmp_path / "CHANGES.md"
        path.write_text("old\n", encoding="utf-8")
        os.chmod(path, 0o640)
        io_utils.atomic_write_text(path, "new\n")
        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_failed_replace_keeps_original(self, tmp_path, monkeypatch):
        path = tmp_path / "CHANGES.md"
        path.write_text("original\n", encoding="utf-8")

        def fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(io_utils.os, "replace", fail)
        with pytest.raises(OSError):
            io_utils.atomic_write_text(path, "replacement\n")
        monkeypatch.undo()
        assert path.read_text(encoding="utf-8") == "original\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["CHANGES.md"]

    def test_newlines_written_verbatim(self, tmp_path):
        path = tmp_path / "CHANGES.md"
        io_utils.atomic_write_text(path, "a\r\nb\n")
        assert path.read_bytes() == b"a\r\nb\n"


class TestReadText:

    def test_line_endings_preserved(self, tmp_path):
        path = tmp_path / "CHANGES.md"
        path.write_bytes(b"a\r\nb\n")
        assert io_utils.read_text(path) == "a\r\nb\n"
