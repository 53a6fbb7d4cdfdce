"""Shared fixtures: isolated log file and a scratch working directory per test."""

from pathlib import Path

import pytest

import sft_smalledit


@pytest.fixture(autouse=True)
def workdir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setattr(sft_smalledit, "_LOG", tmp_path / "sft_smalledit_log.tsv")
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def numbered(workdir: Path):
    """Factory writing a file with lines "line 1".."line N"."""

    def _make(name: str = "sample.txt", count: int = 10) -> Path:
        path = workdir / name
        path.write_text("".join(f"line {i}\n" for i in range(1, count + 1)))
        return path

    return _make
