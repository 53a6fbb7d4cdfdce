"""Tests for restore and list_backups."""

from pathlib import Path

import pytest

import sft_smalledit
from sft_smalledit import (
    InvalidArgumentError,
    NoBackupFoundError,
    _line_edit_impl,
    _list_backups_impl,
    _restore_impl,
)


class TestRestore:
    def test_round_trip_after_edit(self, numbered, workdir: Path):
        """
        Given a file edited with a backup
        When restore is called
        Then the pre-edit bytes come back and the edited version is kept aside
        """
        f = numbered(count=4)
        original = f.read_bytes()
        _line_edit_impl(str(f), "delete", line_number=1)
        edited = f.read_bytes()

        result = _restore_impl(str(f))

        assert f.read_bytes() == original
        assert (workdir / "sample.txt.before-restore").read_bytes() == edited
        assert (workdir / "sample.txt.bak").exists()
        assert "[OK] Restored" in result

    def test_delete_backup_after_restore(self, numbered, workdir: Path):
        f = numbered(count=2)
        _line_edit_impl(str(f), "delete", line_number=2)

        _restore_impl(str(f), keep_backup=False)

        assert not (workdir / "sample.txt.bak").exists()
        assert len(f.read_text().splitlines()) == 2

    def test_alternate_backup_is_reported_not_used(self, workdir: Path):
        """
        Given only data.txt.orig exists next to data.txt
        When restore is called
        Then NoBackupFoundError names the alternate and nothing changes
        """
        f = workdir / "data.txt"
        f.write_text("current\n")
        orig = workdir / "data.txt.orig"
        orig.write_text("older\n")

        with pytest.raises(NoBackupFoundError, match="data.txt.orig"):
            _restore_impl(str(f))

        assert f.read_text() == "current\n"
        assert orig.read_text() == "older\n"
        assert not (workdir / "data.txt.before-restore").exists()

    def test_no_backup_never_touches_target(self, numbered, workdir: Path):
        """
        Given a file with no backup of any kind
        When restore is attempted twice
        Then both attempts fail and the file bytes and mtime are unchanged
        """
        f = numbered()
        before_bytes = f.read_bytes()
        before_mtime = f.stat().st_mtime_ns

        for _ in range(2):
            with pytest.raises(NoBackupFoundError):
                _restore_impl(str(f))

        assert f.read_bytes() == before_bytes
        assert f.stat().st_mtime_ns == before_mtime
        assert not (workdir / "sample.txt.before-restore").exists()

    def test_empty_backup_suffix_rejected(self, numbered, monkeypatch):
        monkeypatch.setitem(sft_smalledit.CONFIG, "backup_suffix", "")
        f = numbered(count=2)
        before = f.read_bytes()

        with pytest.raises(InvalidArgumentError, match="Backup suffix"):
            _line_edit_impl(str(f), "delete", line_number=1)
        with pytest.raises(InvalidArgumentError):
            _restore_impl(str(f))

        assert f.read_bytes() == before

    def test_restore_deleted_target(self, workdir: Path):
        (workdir / "gone.txt.bak").write_text("saved\n")

        _restore_impl("gone.txt")

        assert (workdir / "gone.txt").read_text() == "saved\n"
        assert not (workdir / "gone.txt.before-restore").exists()


class TestListBackups:
    def test_lists_recursively_with_original_name(self, workdir: Path):
        (workdir / "a.txt.bak").write_text("x")
        (workdir / "sub").mkdir()
        (workdir / "sub" / "b.py.bak").write_text("yy")
        (workdir / "c.txt").write_text("not a backup")

        result = _list_backups_impl(str(workdir))

        assert "Backups: 2" in result
        assert "-> a.txt" in result
        assert str(Path("sub") / "b.py") in result
        assert "c.txt" not in result

    def test_custom_pattern(self, workdir: Path):
        (workdir / "notes.md.orig").write_text("x")

        result = _list_backups_impl(".", "*.orig")

        assert "-> notes.md" in result

    def test_none_found(self, workdir: Path):
        assert "No backups" in _list_backups_impl(str(workdir))

    def test_missing_directory(self):
        with pytest.raises(FileNotFoundError):
            _list_backups_impl("does-not-exist")
