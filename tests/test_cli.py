"""Tests for the command-line entry point."""

import sys
import pytest
from pathlib import Path

from chronicle.__main__ import main
from chronicle.graph.snapshot import SnapshotStore
from chronicle.models import UserData

from fakes import sample_user


@pytest.fixture
def snapshot_dir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("CHRONICLE_SNAPSHOT_DIR", str(tmp_path / "snaps"))
    monkeypatch.delenv("CHRONICLE_USER", raising=False)
    return tmp_path / "snaps"


def run(monkeypatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["chronicle", *args])
    main()


class TestCli:
    def test_show_without_snapshot(self, snapshot_dir: Path, monkeypatch, capsys):
        with pytest.raises(SystemExit):
            run(monkeypatch, "show")
        assert "No snapshot yet" in capsys.readouterr().err

    def test_show_projects(self, snapshot_dir: Path, monkeypatch, capsys):
        SnapshotStore(snapshot_dir).save(UserData.from_dict(sample_user()))
        run(monkeypatch, "show")
        out = capsys.readouterr().out
        assert "aria:" in out
        assert "p1  The Sundered Age" in out

    def test_show_timeline(self, snapshot_dir: Path, monkeypatch, capsys):
        SnapshotStore(snapshot_dir).save(UserData.from_dict(sample_user()))
        run(monkeypatch, "show", "p1")
        out = capsys.readouterr().out
        assert out.index("Age of Beginnings") < out.index("Coronation") < out.index("Tournament")
        assert "links point at deleted entities" not in out

    def test_export(self, snapshot_dir: Path, tmp_path: Path, monkeypatch, capsys):
        SnapshotStore(snapshot_dir).save(UserData.from_dict(sample_user()))
        run(monkeypatch, "export", "p1", str(tmp_path / "out"))
        assert (tmp_path / "out" / "Chapter-1.md").exists()
        assert "Exported 1 manuscripts" in capsys.readouterr().out

    def test_usage(self, snapshot_dir: Path, monkeypatch, capsys):
        with pytest.raises(SystemExit):
            run(monkeypatch, "bogus")
        assert "Usage" in capsys.readouterr().out
