"""Tests for setup_logging()."""

from __future__ import annotations

import json

import structlog

from contextor.logging_config import setup_logging


def test_console_output_on_stderr(capsys):
    setup_logging("INFO")
    structlog.get_logger("contextor.test").info("ingest_finished", documents=3)

    err = capsys.readouterr().err
    assert "ingest_finished" in err
    assert "documents=3" in err


def test_level_filters_events(capsys):
    setup_logging("WARNING")
    log = structlog.get_logger("contextor.test")
    log.info("quiet_event")
    log.warning("loud_event")

    err = capsys.readouterr().err
    assert "quiet_event" not in err
    assert "loud_event" in err


def test_json_logs(capsys):
    setup_logging("INFO", json_logs=True)
    structlog.get_logger("contextor.test").warning("chunk_skipped", path="a.py")

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["event"] == "chunk_skipped"
    assert record["path"] == "a.py"
    assert record["level"] == "warning"
    assert record["logger"] == "contextor.test"


def test_env_level_wins(capsys, monkeypatch):
    monkeypatch.setenv("CONTEXTOR_LOG_LEVEL", "DEBUG")
    setup_logging("WARNING")
    structlog.get_logger("contextor.test").debug("debug_event")
    assert "debug_event" in capsys.readouterr().err
