"""Tests for the typer CLI against a throwaway SQLite file.

Usage:
    pytest tests/test_cli.py -v
"""

import pytest
from typer.testing import CliRunner

from cfb_fantasy.cli import scoring as cli
from cfb_fantasy.database.connection import build_engine, build_session_factory
from cfb_fantasy.database.models import Season

runner = CliRunner()


@pytest.fixture
def cli_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(cli.settings, "database_url", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(cli.settings, "log_file", tmp_path / "logs" / "cli.log")
    monkeypatch.setattr(cli.settings, "write_retry_wait_seconds", 0)
    return cli.settings


def test_init_db_creates_season(cli_settings):
    result = runner.invoke(cli.app, ["init-db", "--season", "2025"])

    assert result.exit_code == 0, result.output
    engine = build_engine(cli_settings.database_url)
    session = build_session_factory(engine)()
    try:
        season = session.query(Season).filter_by(year=2025).one()
        assert season.bracket_format == cli_settings.bracket_format
    finally:
        session.close()
        engine.dispose()


def test_unknown_bracket_format_rejected(cli_settings):
    result = runner.invoke(cli.app, ["init-db", "--season", "2025", "--bracket-format", "bcs"])

    assert result.exit_code == 1
    assert "Unknown bracket format" in result.output


def test_run_on_empty_season(cli_settings):
    runner.invoke(cli.app, ["init-db", "--season", "2025"])

    result = runner.invoke(cli.app, ["run", "--mode", "season", "--season", "2025", "--output-format", "json"])

    assert result.exit_code == 0, result.output
    assert '"season_year": 2025' in result.output


def test_run_errors_exit_nonzero(cli_settings):
    runner.invoke(cli.app, ["init-db", "--season", "2025"])

    assert runner.invoke(cli.app, ["run", "--mode", "week", "--season", "2025"]).exit_code == 1
    assert runner.invoke(cli.app, ["run", "--mode", "week", "--season", "1999", "--week", "1"]).exit_code == 1
    assert runner.invoke(cli.app, ["standings", "--league", "42"]).exit_code == 1
