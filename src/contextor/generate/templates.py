"""Markdown renderers for context documents.

All renderers are pure: they take data plus a ``generated`` timestamp and
return a string. Layouts:

  query context     # Context for: "<query>" / ### <TYPE> Sources / #### Source n
  project overview  # <name> - Project Overview / ## Knowledge Base Statistics
  code summary      # Code Structure Summary / ## <file> / ### Preview
  issues summary    # Issues and Tasks Summary / ## Issue n
"""

from __future__ import annotations

from datetime import datetime, timezone

from contextor.db.models import Chunk, Project, RetrievalResult
from contextor.ingest.splitter import split_ordinal

PREVIEW_CHARS = 500
ISSUE_LIMIT = 10


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_similarity(similarity: float) -> str:
    """``0.9512`` → ``"95.1%"``."""
    return f"{similarity * 100:.1f}%"


def render_query_context(
    query: str,
    groups: dict[str, list[RetrievalResult]],
    generated: str | None = None,
) -> str:
    """Render grouped search results for *query*."""
    lines = [
        f'# Context for: "{query}"',
        "",
        f"Generated: {generated or now_iso()}",
        "",
        "## Relevant Information",
        "",
    ]
    for source_type, results in groups.items():
        lines += [f"### {source_type.upper()} Sources", ""]
        for n, result in enumerate(results, start=1):
            lines += [
                f"#### Source {n}: {result.chunk.path or 'Unknown'}",
                f"Similarity: {format_similarity(result.similarity)}",
                "",
                "```",
                result.chunk.content,
                "```",
                "",
            ]
    return "\n".join(lines)


def render_project_overview(
    project: Project,
    stats: dict[str, int],
    generated: str | None = None,
) -> str:
    """Render project metadata plus chunk counts per source type."""
    tech_stack = ", ".join(project.tech_stack) if project.tech_stack else "Not specified"
    lines = [
        f"# {project.name} - Project Overview",
        "",
        f"**Description**: {project.description or 'No description provided'}",
        "",
        f"**Tech Stack**: {tech_stack}",
        "",
        f"**Repository**: {project.repository_url or 'Not specified'}",
        "",
        "## Knowledge Base Statistics",
        "",
    ]
    if stats:
        lines += [f"- {source_type}: {count} chunks" for source_type, count in stats.items()]
    else:
        lines.append("- no chunks ingested")
    lines += [
        "",
        f"**Total**: {sum(stats.values())} chunks",
        "",
        f"**Last Updated**: {generated or now_iso()}",
        "",
    ]
    return "\n".join(lines)


def group_by_file(chunks: list[Chunk]) -> dict[str, list[Chunk]]:
    """Group chunks by their path without the ``#chunk-<n>`` suffix, ordinal order."""
    files: dict[str, list[tuple[int, Chunk]]] = {}
    for chunk in chunks:
        base, ordinal = split_ordinal(chunk.path)
        files.setdefault(base, []).append((ordinal, chunk))
    return {
        base: [chunk for _, chunk in sorted(entries, key=lambda e: e[0])]
        for base, entries in files.items()
    }


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def render_code_summary(chunks: list[Chunk], generated: str | None = None) -> str:
    """Render one section per file, previewing the file's first chunk."""
    lines = [
        "# Code Structure Summary",
        "",
        f"Generated: {generated or now_iso()}",
        "",
    ]
    for path, file_chunks in group_by_file(chunks).items():
        lines += [
            f"## {path}",
            "",
            f"**Chunks**: {len(file_chunks)}",
            "",
            "### Preview",
            "",
            "```",
            preview(file_chunks[0].content),
            "```",
            "",
        ]
    return "\n".join(lines)


def render_issue_summary(chunks: list[Chunk], generated: str | None = None) -> str:
    """Render the first ``ISSUE_LIMIT`` issue chunks (callers pass newest first)."""
    lines = [
        "# Issues and Tasks Summary",
        "",
        f"Generated: {generated or now_iso()}",
        "",
        f"**Total Issues**: {len(chunks)}",
        "",
    ]
    for n, chunk in enumerate(chunks[:ISSUE_LIMIT], start=1):
        lines += [
            f"## Issue {n}",
            "",
            f"**Path**: {chunk.path}",
            "",
            chunk.content,
            "",
            "---",
            "",
        ]
    return "\n".join(lines)
