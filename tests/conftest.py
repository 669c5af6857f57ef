"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog
import yaml

from contextor.db.connection import Database
from contextor.db.repository import Repository
from contextor.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".contextor.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    """Repository over tmp_db storing 3-dimensional embeddings."""
    return Repository(tmp_db, dimensions=3)


@pytest.fixture
def project(repo):
    return repo.create_project(name="demo", description="Demo project", tech_stack=["python"])


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep host config and credentials out of every test."""
    for var in (
        "CONTEXTOR_EMBEDDING_MODEL",
        "CONTEXTOR_DB",
        "CONTEXTOR_LOG_LEVEL",
        "AIRTABLE_API_KEY",
        "AIRTABLE_BASE_ID",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "contextor.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml"
    )


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo setup_logging() so later tests never write to a closed CliRunner stream."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


@pytest.fixture
def cli_workspace(tmp_path, monkeypatch):
    """CWD with a contextor.yaml for 3-dimensional, unthrottled embeddings."""
    (tmp_path / "contextor.yaml").write_text(
        yaml.safe_dump({"embedding": {"dimensions": 3, "batch_delay": 0}}),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return tmp_path


@pytest.fixture
def fake_embedding():
    """Patch litellm.embedding to return [1, 0, 0] for every input."""

    def _embed(**kwargs):
        response = MagicMock()
        response.data = [
            {"embedding": [1.0, 0.0, 0.0], "index": i} for i in range(len(kwargs["input"]))
        ]
        return response

    with patch("contextor.ingest.embeddings.litellm.embedding", side_effect=_embed) as mock:
        yield mock
