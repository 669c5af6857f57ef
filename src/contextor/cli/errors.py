"""contextor rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from contextor.cli.errors import err_no_db
    console.print(err_no_db(".contextor.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_configuration(message: str) -> str:
    """Missing credential or invalid config value."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Check contextor.yaml, ~/.contextor/config.yaml and .env.local."
    )


def err_no_db(db_path: str = ".contextor.db") -> str:
    """No database at the given path."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  contextor ingest --name <project> --path <repo>"
    )


def err_project_not_found(name: str, known: list[str]) -> str:
    """Named project does not exist in the knowledge base."""
    known_list = ", ".join(known) if known else "(none)"
    return (
        f"[red]Error:[/] Project '{name}' not found.\n"
        f"  Known projects: {known_list}"
    )


def err_no_sources() -> str:
    """ingest called without --path, --repo or --airtable."""
    return (
        "[red]Error:[/] Nothing to ingest.\n"
        "  Pass --path <git checkout>, --repo <url> and/or --airtable <table,...>."
    )


def err_store(message: str) -> str:
    """Vector store read or write failed."""
    return (
        f"[red]Error:[/] Knowledge base operation failed: {message}\n"
        "  Check the database file is writable and not locked by another process."
    )


def err_embedding(message: str) -> str:
    """Query or document embedding failed."""
    return (
        f"[red]Error:[/] Embedding request failed: {message}\n"
        "  Check your API key, model name and network connection, then retry."
    )


def err_output_path_unsafe(path: str) -> str:
    """--output-path fails security validation."""
    return (
        f"[red]Error:[/] Output path is not allowed: '{path}'\n"
        "  Use a path within the current working directory."
    )


def warn_ingest_failures(count: int) -> str:
    """Shown after an ingest run that skipped documents or chunks."""
    return (
        f"[yellow]⚠[/] {count} item(s) were skipped.\n"
        "  Re-run ingest once the cause is fixed; stored chunks are replaced in place."
    )
