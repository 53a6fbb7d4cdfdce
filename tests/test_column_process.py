"""Tests for awk-backed column processing and awk diff previews."""

import shutil
from pathlib import Path

import pytest

import sft_smalledit
from sft_smalledit import ExternalToolError, _column_process_impl, _diff_preview_impl

needs_awk = pytest.mark.skipif(shutil.which("awk") is None, reason="awk not installed")


@pytest.fixture
def table(workdir: Path) -> Path:
    path = workdir / "table.txt"
    path.write_text("alice 3\nbob 4\ncarol 5\n")
    return path


@needs_awk
class TestColumnProcess:
    def test_returns_output(self, table: Path):
        result = _column_process_impl(str(table), "{sum += $2} END {print sum}")

        assert result.strip() == "12"

    def test_writes_output_file_and_backs_up_existing(self, table: Path, workdir: Path):
        """
        Given an output file that already exists
        When column_process writes to it
        Then the old content is saved to a .bak and the new output replaces it
        """
        out = workdir / "names.txt"
        out.write_text("old\n")

        result = _column_process_impl(str(table), "{print $1}", output_file=str(out))

        assert out.read_text() == "alice\nbob\ncarol\n"
        assert (workdir / "names.txt.bak").read_text() == "old\n"
        assert "[OK]" in result

    def test_awk_error_is_reported(self, table: Path):
        with pytest.raises(ExternalToolError, match="exited with status"):
            _column_process_impl(str(table), "{print $1")

    def test_input_is_unchanged(self, table: Path):
        before = table.read_bytes()

        _column_process_impl(str(table), "{print toupper($0)}")

        assert table.read_bytes() == before

    def test_awk_diff_preview(self, table: Path):
        result = _diff_preview_impl(str(table), '{print $1}', tool="awk")

        assert "-alice 3" in result
        assert "+alice" in result
        assert table.read_text().startswith("alice 3")


class TestAwkMissing:
    def test_missing_binary(self, table: Path, monkeypatch):
        monkeypatch.setattr(sft_smalledit, "_get_tool_path", lambda name, env_var: None)

        with pytest.raises(ExternalToolError, match="not found"):
            _column_process_impl(str(table), "{print}")

    def test_missing_input_file(self):
        with pytest.raises(FileNotFoundError):
            _column_process_impl("nope.txt", "{print}")
