"""Summary: CLI smoke tests.

Importance: Ensures commands wire arguments through to services and print results.
Alternatives: Exercise the CLI manually in a shell.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from responsetime.cli import build_parser, run_cli

DEFAULTS = Path(__file__).resolve().parents[1] / "config" / "defaults.json"


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in list(os.environ):
        if key.startswith("RESPONSETIME_"):
            monkeypatch.delenv(key, raising=False)
    (tmp_path / "config").mkdir()
    shutil.copy(DEFAULTS, tmp_path / "config" / "defaults.json")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RESPONSETIME_DB_PATH", str(tmp_path / "cli.db"))
    return tmp_path


def test_parser_rejects_unknown_platform() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["add-account", "acct-1", "fax"])


def test_demo_workflow(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Summary: Register an account, load demo data, and print reports.

    Importance: Covers the path a first-time user takes.
    Alternatives: Test each command in isolation.
    """

    run_cli(["add-account", "acct-1", "slack", "--name", "Team"])
    run_cli(["ingest-demo", "acct-1", "--days", "14", "--seed", "cli"])
    run_cli(["metrics", "--range", "month"])
    run_cli(["score", "--range", "month"])
    run_cli(["add-goal", "45"])
    run_cli(["list-goals"])
    output = capsys.readouterr().out
    assert "Added account acct-1 (Slack)." in output
    assert "Stored " in output
    assert "Median: " in output
    assert "Score: " in output
    assert "Added goal 1." in output
    assert "streak 0" in output


def test_sync_demo_prints_progress(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    run_cli(["add-account", "acct-1", "gmail"])
    run_cli(["add-account", "acct-2", "outlook"])
    run_cli(["sync-demo", "--days", "7"])
    output = capsys.readouterr().out
    assert "Progress: 50%" in output
    assert "Progress: 100%" in output
