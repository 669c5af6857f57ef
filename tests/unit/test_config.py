"""Tests for the contextor config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from contextor.config import (
    DEFAULT_EXTENSIONS,
    ContextorConfig,
    load_config,
    load_environment,
    require_env,
)
from contextor.errors import ConfigurationError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _load(tmp_path: Path, global_cfg: Path | None = None) -> ContextorConfig:
    return load_config(
        project_dir=tmp_path,
        global_config_path=global_cfg or tmp_path / "nonexistent" / "config.yaml",
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_defaults_no_files(tmp_path: Path) -> None:
    cfg = _load(tmp_path)

    assert cfg.embedding.model == "openai/text-embedding-3-small"
    assert cfg.embedding.dimensions == 1536
    assert cfg.embedding.batch_size == 100
    assert cfg.embedding.max_input_chars == 8_000
    assert cfg.chunker.chunk_size == 1000
    assert cfg.chunker.overlap == 200
    assert cfg.retrieval.threshold == 0.6
    assert cfg.retrieval.limit == 10
    assert cfg.retrieval.context_limit == 20
    assert cfg.sources.extensions == list(DEFAULT_EXTENSIONS)
    assert "node_modules/" in cfg.sources.ignore
    assert cfg.output.knowledge_base_dir == "knowledge-base"
    assert cfg.database.path == ".contextor.db"


def test_global_empty_file(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("# nothing here\n", encoding="utf-8")
    assert _load(tmp_path, global_cfg).chunker.chunk_size == 1000


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"embedding": {"model": "ollama/nomic-embed-text", "dimensions": 768}})

    cfg = _load(tmp_path, global_cfg)

    assert cfg.embedding.model == "ollama/nomic-embed-text"
    assert cfg.embedding.dimensions == 768
    assert cfg.embedding.batch_size == 100


def test_project_partial_override_keeps_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"retrieval": {"threshold": 0.5, "limit": 25}})
    _write_yaml(tmp_path / "contextor.yaml", {"retrieval": {"limit": 5}})

    cfg = _load(tmp_path, global_cfg)

    assert cfg.retrieval.limit == 5
    assert cfg.retrieval.threshold == 0.5


def test_project_sources_and_output(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "contextor.yaml",
        {
            "sources": {"extensions": [".go"], "ignore": ["vendor/"]},
            "output": {"knowledge_base_dir": "kb"},
            "database": {"path": "data/kb.db"},
        },
    )

    cfg = _load(tmp_path)

    assert cfg.sources.extensions == [".go"]
    assert cfg.sources.ignore == ["vendor/"]
    assert cfg.output.knowledge_base_dir == "kb"
    assert cfg.database.path == "data/kb.db"


def test_env_overrides_files(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "contextor.yaml", {"embedding": {"model": "openai/text-embedding-3-large"}})
    monkeypatch.setenv("CONTEXTOR_EMBEDDING_MODEL", "cohere/embed-english-v3.0")
    monkeypatch.setenv("CONTEXTOR_DB", "/tmp/other.db")

    cfg = _load(tmp_path)

    assert cfg.embedding.model == "cohere/embed-english-v3.0"
    assert cfg.database.path == "/tmp/other.db"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_global_api_key_rejected(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"embedding": {"api_key": "sk-oops"}})

    with pytest.raises(ConfigurationError, match="forbidden key 'embedding.api_key'"):
        _load(tmp_path, global_cfg)


def test_batch_size_is_not_a_secret(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"embedding": {"batch_size": 50, "max_input_chars": 4000}})
    assert _load(tmp_path, global_cfg).embedding.batch_size == 50


def test_unknown_key_warns(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "contextor.yaml", {"generation": {"model": "x"}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        _load(tmp_path)
    assert any("generation" in str(w.message) for w in caught)


@pytest.mark.parametrize(
    "data",
    [
        {"chunker": {"chunk_size": 100, "overlap": 100}},
        {"chunker": {"chunk_size": 0}},
        {"embedding": {"batch_size": 0}},
        {"retrieval": {"threshold": 1.5}},
        {"retrieval": {"context_threshold": -0.1}},
        {"embedding": {"dimensions": "many"}},
    ],
)
def test_invalid_values_rejected(tmp_path: Path, data: dict) -> None:
    _write_yaml(tmp_path / "contextor.yaml", data)
    with pytest.raises(ConfigurationError):
        _load(tmp_path)


# ---------------------------------------------------------------------------
# Environment files and credentials
# ---------------------------------------------------------------------------


def test_load_environment_reads_env_local_first(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("CONTEXTOR_TEST_VALUE", raising=False)
    (tmp_path / ".env.local").write_text("CONTEXTOR_TEST_VALUE=local\n", encoding="utf-8")
    (tmp_path / ".env").write_text("CONTEXTOR_TEST_VALUE=shared\n", encoding="utf-8")

    loaded = load_environment(tmp_path)

    assert [p.name for p in loaded] == [".env.local", ".env"]
    assert require_env("CONTEXTOR_TEST_VALUE") == "local"
    monkeypatch.delenv("CONTEXTOR_TEST_VALUE")


def test_load_environment_does_not_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("CONTEXTOR_TEST_VALUE", "shell")
    (tmp_path / ".env").write_text("CONTEXTOR_TEST_VALUE=file\n", encoding="utf-8")

    load_environment(tmp_path)

    assert require_env("CONTEXTOR_TEST_VALUE") == "shell"


def test_load_environment_no_files(tmp_path: Path) -> None:
    assert load_environment(tmp_path) == []


def test_require_env_missing(monkeypatch) -> None:
    monkeypatch.delenv("AIRTABLE_BASE_ID", raising=False)
    with pytest.raises(ConfigurationError, match="AIRTABLE_BASE_ID"):
        require_env("AIRTABLE_BASE_ID")
