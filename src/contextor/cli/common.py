"""Helpers shared by the CLI commands: config, store and embedder wiring."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from contextor.cli.errors import err_configuration, err_no_db, err_project_not_found
from contextor.config import ContextorConfig, load_config
from contextor.db.connection import Database
from contextor.db.models import Project
from contextor.db.repository import Repository
from contextor.db.schema import initialize
from contextor.errors import ConfigurationError
from contextor.ingest.embeddings import EmbeddingClient, EmbeddingConfig

console = Console()


def load_cfg() -> ContextorConfig:
    """Load config or exit 1 with an actionable message."""
    try:
        return load_config()
    except ConfigurationError as exc:
        console.print(err_configuration(str(exc)))
        raise typer.Exit(1) from None


def db_path(cfg: ContextorConfig, override: Path | None) -> Path:
    return override if override is not None else Path(cfg.database.path)


def open_db(path: Path, must_exist: bool = False) -> sqlite3.Connection:
    if must_exist and not path.exists():
        console.print(err_no_db(str(path)))
        raise typer.Exit(1)
    conn = Database(path).connect()
    initialize(conn)
    return conn


def make_embedder(cfg: ContextorConfig) -> EmbeddingClient:
    """Build the embedding client or exit 1 when its API key is missing."""
    try:
        return EmbeddingClient(
            EmbeddingConfig(
                model=cfg.embedding.model,
                dimensions=cfg.embedding.dimensions,
                batch_size=cfg.embedding.batch_size,
                max_input_chars=cfg.embedding.max_input_chars,
                batch_delay=cfg.embedding.batch_delay,
            )
        )
    except ConfigurationError as exc:
        console.print(err_configuration(str(exc)))
        raise typer.Exit(1) from None


def get_project_or_exit(repo: Repository, name: str) -> Project:
    project = repo.get_project(name)
    if project is None:
        console.print(err_project_not_found(name, [p.name for p in repo.list_projects()]))
        raise typer.Exit(1)
    return project
