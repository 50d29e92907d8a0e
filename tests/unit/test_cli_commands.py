"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
from pytest_mock import MockerFixture
from rich.console import Console
from typer.testing import CliRunner

from src.cli.commands import app

runner = CliRunner()

RULES = [
    {
        "name": "comment",
        "event_type": "content.created.comment",
        "elements": [{"name": "author", "key": "author.public_name"}],
        "filters": [{"name": "ws", "key": "workspace.label", "match": "not_equal", "value": "Private"}],
        "notification": {"title": "{{author}} commented", "message": "in {{workspace}}", "priority": 5},
    },
    {
        "name": "odd",
        "event_type": "content.created.comment",
        "filters": [{"name": "x", "key": "a", "match": "regex", "value": "."}],
        "notification": {"title": "never", "message": "", "priority": 1},
    },
]


@pytest.fixture(autouse=True)
def wide_console(mocker: MockerFixture) -> None:
    """Keep rich from wrapping long paths in captured output."""
    mocker.patch("src.cli.commands.console", Console(width=300))


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    """Directory with one valid and one broken rule document."""
    directory = tmp_path / "rules"
    directory.mkdir()
    (directory / "comments.json").write_text(json.dumps(RULES))
    (directory / "zz_broken.json").write_text("{")
    return directory


def test_version() -> None:
    """Test version command."""
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.stdout


def test_init_config(tmp_path: Path) -> None:
    """Test default configuration creation."""
    result = runner.invoke(app, ["init-config", "--config-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert (tmp_path / "TracimPushNotification" / "config.json").exists()
    assert (tmp_path / "TracimPushNotification" / "notifications").is_dir()


def test_check_reports_rules_and_warnings(rules_dir: Path) -> None:
    """Test rule summary output."""
    result = runner.invoke(app, ["check", "--rules", str(rules_dir)])

    assert result.exit_code == 0
    assert "content.created.comment" in result.stdout
    assert "zz_broken.json" in result.stdout
    assert "regex" in result.stdout
    assert "{{workspace}}" in result.stdout


def test_check_fails_without_loadable_rules(tmp_path: Path) -> None:
    """Test that check exits non-zero when nothing loads."""
    (tmp_path / "bad.json").write_text("[{}]")

    result = runner.invoke(app, ["check", "--rules", str(tmp_path / "bad.json")])

    assert result.exit_code == 1


def test_render_event(rules_dir: Path, tmp_path: Path) -> None:
    """Test dry-run rendering of an event file."""
    event_file = tmp_path / "event.json"
    event_file.write_text(
        json.dumps(
            {
                "event_type": "content.created.comment",
                "fields": {"author": {"public_name": "Ann"}, "workspace": {"label": "Docs"}},
            }
        )
    )

    result = runner.invoke(app, ["render", str(event_file), "--rules", str(rules_dir)])

    assert result.exit_code == 0
    assert "Ann commented" in result.stdout
    assert "odd: filtered out" in result.stdout


def test_render_invalid_event(rules_dir: Path, tmp_path: Path) -> None:
    """Test that an unreadable event file is an error."""
    event_file = tmp_path / "event.json"
    event_file.write_text(json.dumps({"fields": {}}))

    result = runner.invoke(app, ["render", str(event_file), "--rules", str(rules_dir)])

    assert result.exit_code == 1


def test_run_requires_configuration(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that missing startup values abort the run command."""
    monkeypatch.delenv("GOTIFY_URL", raising=False)

    result = runner.invoke(app, ["run", "--config-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "gotify_url" in result.stdout
