"""contextor CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from contextor.cli.generate import generate_cmd
from contextor.cli.ingest import ingest_cmd
from contextor.cli.remove import remove_cmd
from contextor.cli.search import search_cmd
from contextor.config import load_environment
from contextor.logging_config import setup_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("contextor")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"contextor {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="contextor",
    help=(
        "contextor — personal RAG knowledge base.\n\n"
        "  contextor ingest    Chunk, embed and store a project's sources.\n"
        "  contextor search    Similarity search across the knowledge base.\n"
        "  contextor generate  Write context markdown for an AI assistant."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress events to stderr."),
    ] = False,
) -> None:
    """contextor — personal RAG knowledge base."""
    setup_logging("INFO" if verbose else "WARNING")
    load_environment()


app.command("ingest")(ingest_cmd)
app.command("search")(search_cmd)
app.command("generate")(generate_cmd)
app.command("remove")(remove_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed contextor version."""
    typer.echo(f"contextor {_installed_version()}")


if __name__ == "__main__":
    app()
