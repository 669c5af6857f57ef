"""contextor ingest — load a project's sources into the knowledge base.

Sources:
  --path DIR          git checkout; tracked files only (git ls-files)
  --repo URL          recorded on the project; without --path the CWD is ingested
  --airtable t1,t2    Airtable tables (AIRTABLE_API_KEY / AIRTABLE_BASE_ID)

After a successful run the project overview, code and issue summaries are
written unless --no-context is given.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from contextor.cli.common import console, db_path, load_cfg, make_embedder, open_db
from contextor.cli.errors import (
    err_configuration,
    err_no_sources,
    err_output_path_unsafe,
    err_store,
    warn_ingest_failures,
)
from contextor.config import require_env
from contextor.db.repository import Repository
from contextor.errors import ConfigurationError, OutputPathError, StoreError
from contextor.generate.generator import ContextGenerator
from contextor.ingest.airtable import AirtableSource
from contextor.ingest.base import BaseSource
from contextor.ingest.git_source import GitSource
from contextor.ingest.pipeline import IngestPipeline, ProjectRequest
from contextor.ingest.splitter import TextSplitter


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def ingest_cmd(
    name: Annotated[str, typer.Option("--name", "-n", help="Project name.")],
    description: Annotated[
        str | None, typer.Option("--description", help="Project description.")
    ] = None,
    tech_stack: Annotated[
        str | None, typer.Option("--tech-stack", help="Comma-separated technologies.")
    ] = None,
    path: Annotated[
        Path | None, typer.Option("--path", "-p", help="Local git checkout to ingest (default with --repo: CWD).")
    ] = None,
    repo_url: Annotated[
        str | None, typer.Option("--repo", help="Repository URL recorded on the project.")
    ] = None,
    airtable: Annotated[
        str | None, typer.Option("--airtable", help="Comma-separated Airtable tables.")
    ] = None,
    no_context: Annotated[
        bool, typer.Option("--no-context", help="Skip writing context files afterwards.")
    ] = False,
    output_path: Annotated[
        Path | None,
        typer.Option("--output-path", "-o", help="Write context files to <DIR>/.claude/."),
    ] = None,
    db: Annotated[
        Path | None, typer.Option("--db", help="Path to the knowledge base database.")
    ] = None,
) -> None:
    """Ingest a project's sources into the knowledge base."""
    if path is None and repo_url:
        path = Path.cwd()
    if path is None and not airtable:
        console.print(err_no_sources())
        raise typer.Exit(1)

    cfg = load_cfg()
    embedder = make_embedder(cfg)

    sources: list[BaseSource] = []
    if path is not None:
        sources.append(GitSource(path, extensions=cfg.sources.extensions, ignore=cfg.sources.ignore))
    tables = _split_csv(airtable)
    if tables:
        try:
            api_key = require_env("AIRTABLE_API_KEY")
            base_id = require_env("AIRTABLE_BASE_ID")
        except ConfigurationError as exc:
            console.print(err_configuration(str(exc)))
            raise typer.Exit(1) from None
        sources.extend(AirtableSource(t, api_key=api_key, base_id=base_id) for t in tables)

    request = ProjectRequest(
        name=name,
        description=description,
        tech_stack=_split_csv(tech_stack),
        repository_url=repo_url,
    )

    conn = open_db(db_path(cfg, db))
    repo = Repository(conn, dimensions=cfg.embedding.dimensions)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task(f"Ingesting {name}…", total=None)

            def _on_document(document, stored: int) -> None:
                prog.update(task, description=f"{document.path} ({stored} chunks)")

            pipeline = IngestPipeline(
                repo,
                embedder,
                TextSplitter(cfg.chunker.chunk_size, cfg.chunker.overlap),
                on_document=_on_document,
            )
            try:
                report = pipeline.run(request, sources)
            except (ValueError, RuntimeError) as exc:
                console.print(f"[red]Error:[/] {exc}")
                raise typer.Exit(1) from None
            except StoreError as exc:
                console.print(err_store(str(exc)))
                raise typer.Exit(1) from None

        verb = "Created" if report.created else "Updated"
        console.print(f"[green]✓[/] {verb} project [bold]{report.project.name}[/]")
        console.print(f"  {report.documents} documents, {report.chunks_stored} chunks stored")

        if not no_context:
            generator = ContextGenerator(repo, embedder, cfg.output.knowledge_base_dir)
            try:
                written = generator.generate(report.project, output_path=output_path)
            except OutputPathError as exc:
                console.print(err_output_path_unsafe(exc.path))
                raise typer.Exit(1) from None
            except StoreError as exc:
                console.print(err_store(str(exc)))
                raise typer.Exit(1) from None
            for out in written:
                console.print(f"  [green]✓[/] {out}")

        if not report.ok:
            for failure in report.failures:
                console.print(f"  [red]✗[/] {failure.path} ({failure.stage}): {failure.message}")
            console.print(warn_ingest_failures(len(report.failures)))
            raise typer.Exit(1)
    finally:
        for source in sources:
            if isinstance(source, AirtableSource):
                source.close()
        conn.close()
