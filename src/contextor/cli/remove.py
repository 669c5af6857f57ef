"""contextor remove — delete a project and everything stored for it.

Chunks and knowledge-context records go with the project (ON DELETE CASCADE).
Files already written to disk are left alone.

Usage:
  contextor remove --project myapp
  contextor remove --project myapp --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from contextor.cli.common import console, db_path, get_project_or_exit, load_cfg, open_db
from contextor.cli.errors import err_store
from contextor.db.repository import Repository
from contextor.errors import StoreError


def remove_cmd(
    project: Annotated[str, typer.Option("--project", "-p", help="Project name to remove.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    db: Annotated[
        Path | None, typer.Option("--db", help="Path to the knowledge base database.")
    ] = None,
) -> None:
    """Remove a project and all its chunks from the knowledge base."""
    cfg = load_cfg()
    conn = open_db(db_path(cfg, db), must_exist=True)
    repo = Repository(conn, dimensions=cfg.embedding.dimensions)
    try:
        target = get_project_or_exit(repo, project)
        stats = repo.count_chunks_by_source_type(target.id)
        contexts = len(repo.list_contexts(target.id))

        console.print(f"\nRemove project: [bold]{target.name}[/]")
        breakdown = ", ".join(f"{k}: {v}" for k, v in stats.items()) or "none"
        console.print(f"  Chunks: {sum(stats.values())} ({breakdown})  |  Contexts: {contexts}")

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        try:
            repo.delete_project(target.id)
        except StoreError as exc:
            console.print(err_store(str(exc)))
            raise typer.Exit(1) from None
        console.print(f"\n[green]✓[/] Removed: {target.name}")
    finally:
        conn.close()
