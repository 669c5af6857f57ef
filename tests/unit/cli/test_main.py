"""Tests for the top-level CLI: version and global options."""

from __future__ import annotations

import logging
import os

from typer.testing import CliRunner

from contextor.cli.main import app

runner = CliRunner()


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("contextor ")


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "contextor" in result.output


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("ingest", "search", "generate", "remove"):
        assert command in result.output


def test_verbose_sets_info_level(cli_workspace):
    runner.invoke(app, ["--verbose", "version"])
    assert logging.getLogger().level == logging.INFO


def test_env_file_is_loaded(cli_workspace, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")
    (cli_workspace / ".env.local").write_text("OPENAI_API_KEY=sk-from-file\n", encoding="utf-8")

    runner.invoke(app, ["version"])

    assert os.environ["OPENAI_API_KEY"] == "sk-from-file"
