"""contextor search — similarity search over the knowledge base.

Prints a ranked table of matching chunks. With --generate-context the same
query is rendered to a query-context file for the project.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

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
from contextor.generate.templates import format_similarity, preview
from contextor.rag.retriever import RetrieverConfig, search

_ROW_PREVIEW = 120


def search_cmd(
    query: Annotated[str, typer.Argument(help="Natural-language query.")],
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Restrict to one project.")
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", "-t", min=0.0, max=1.0, help="Minimum similarity (exclusive)."),
    ] = None,
    limit: Annotated[
        int | None, typer.Option("--limit", "-l", min=1, help="Maximum number of results.")
    ] = None,
    generate_context: Annotated[
        bool,
        typer.Option("--generate-context", help="Also write a query-context file (needs --project)."),
    ] = False,
    output_path: Annotated[
        Path | None,
        typer.Option("--output-path", "-o", help="Write the context file to <DIR>/.claude/."),
    ] = None,
    db: Annotated[
        Path | None, typer.Option("--db", help="Path to the knowledge base database.")
    ] = None,
) -> None:
    """Search the knowledge base for chunks similar to QUERY."""
    if generate_context and project is None:
        console.print("[red]Error:[/] --generate-context requires --project NAME.")
        raise typer.Exit(1)

    cfg = load_cfg()
    conn = open_db(db_path(cfg, db), must_exist=True)
    repo = Repository(conn, dimensions=cfg.embedding.dimensions)
    try:
        target = get_project_or_exit(repo, project) if project else None
        embedder = make_embedder(cfg)
        retriever_cfg = RetrieverConfig(
            threshold=cfg.retrieval.threshold if threshold is None else threshold,
            limit=cfg.retrieval.limit if limit is None else limit,
            project_id=target.id if target else None,
        )
        try:
            results = search(query, repo, embedder, retriever_cfg)
        except EmbeddingFailure as exc:
            console.print(err_embedding(str(exc)))
            raise typer.Exit(1) from None
        except StoreError as exc:
            console.print(err_store(str(exc)))
            raise typer.Exit(1) from None

        if not results:
            console.print(
                f"[yellow]No chunks above similarity {retriever_cfg.threshold} for:[/] {query}"
            )
        else:
            table = Table(title=f'Results for "{query}"')
            table.add_column("#", justify="right")
            table.add_column("Similarity", justify="right")
            table.add_column("Type")
            table.add_column("Path", overflow="fold")
            table.add_column("Preview", overflow="fold")
            for n, result in enumerate(results, 1):
                snippet = preview(result.chunk.content, _ROW_PREVIEW).replace("\n", " ")
                table.add_row(
                    str(n),
                    format_similarity(result.similarity),
                    result.chunk.source_type,
                    result.chunk.path,
                    snippet,
                )
            console.print(table)

        if generate_context and target is not None:
            generator = ContextGenerator(repo, embedder, cfg.output.knowledge_base_dir)
            try:
                written = generator.generate(
                    target,
                    query=query,
                    output_path=output_path,
                    threshold=retriever_cfg.threshold,
                    limit=cfg.retrieval.context_limit,
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
            for out in written:
                console.print(f"[green]✓[/] Context written: {out}")
    finally:
        conn.close()
