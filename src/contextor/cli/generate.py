"""contextor generate — write context files for an ingested project.

Without --query: project-overview.md, code-summary.md, issues-summary.md.
With --query:    query-context-<epoch ms>.md (also recorded in the database).

Usage:
  contextor generate --project myapp
  contextor generate --project myapp --query "how is auth wired?" -o .
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from contextor.cli.common import (
    console,
    db_path,
    get_project_or_exit,
    load_cfg,
    make_embedder,
    open_db,
)
from contextor.cli.errors import err_embedding, err_output_path_unsafe, err_store
from contextor.db.repository import Repository
from contextor.errors import EmbeddingFailure, OutputPathError, StoreError
from contextor.generate.generator import ContextGenerator


def generate_cmd(
    project: Annotated[str, typer.Option("--project", "-p", help="Project name.")],
    query: Annotated[
        str | None, typer.Option("--query", "-q", help="Render a query context instead.")
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", "-t", min=0.0, max=1.0, help="Minimum similarity (exclusive)."),
    ] = None,
    limit: Annotated[
        int | None, typer.Option("--limit", "-l", min=1, help="Maximum chunks in a query context.")
    ] = None,
    output_path: Annotated[
        Path | None,
        typer.Option("--output-path", "-o", help="Write files to <DIR>/.claude/."),
    ] = None,
    db: Annotated[
        Path | None, typer.Option("--db", help="Path to the knowledge base database.")
    ] = None,
) -> None:
    """Generate context markdown for PROJECT."""
    cfg = load_cfg()
    conn = open_db(db_path(cfg, db), must_exist=True)
    repo = Repository(conn, dimensions=cfg.embedding.dimensions)
    try:
        target = get_project_or_exit(repo, project)
        embedder = make_embedder(cfg) if query else None
        generator = ContextGenerator(repo, embedder, cfg.output.knowledge_base_dir)
        try:
            written = generator.generate(
                target,
                query=query,
                output_path=output_path,
                threshold=cfg.retrieval.context_threshold if threshold is None else threshold,
                limit=cfg.retrieval.context_limit if limit is None else limit,
            )
        except OutputPathError as exc:
            console.print(err_output_path_unsafe(exc.path))
            raise typer.Exit(1) from None
        except EmbeddingFailure as exc:
            console.print(err_embedding(str(exc)))
            raise typer.Exit(1) from None
        except StoreError as exc:
            console.print(err_store(str(exc)))
            raise typer.Exit(1) from None

        if not written:
            console.print(f"[yellow]No relevant chunks found for:[/] {query}")
            return
        for out in written:
            console.print(f"[green]✓[/] {out}")
    finally:
        conn.close()
