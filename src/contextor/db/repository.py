"""SQLite implementation of the VectorStore contract.

Similarity is computed explicitly as ``1 - vec_distance_cosine(embedding, q)``
with the sqlite-vec scalar function, so the score convention does not depend
on any index type. The (project_id, path) unique index is the upsert key.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from contextor.db.gateway import VectorStore
from contextor.db.models import Chunk, KnowledgeContext, Project, RetrievalResult
from contextor.db.vectors import EMBEDDING_DIMENSIONS, decode_embedding, encode_embedding
from contextor.errors import StoreError

_PROJECT_COLUMNS = (
    "id, name, description, tech_stack, repository_url, settings, created_at, updated_at"
)
_CHUNK_COLUMNS = (
    "id, project_id, source_type, path, content, contextual_content, metadata, "
    "embedding, created_at, updated_at"
)
_CHUNK_ORDERS = {
    "path": "path",
    "recent": "created_at DESC, rowid DESC",
}


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Re-raise sqlite3 errors as StoreError naming *operation*."""
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreError(f"{operation} failed: {exc}") from exc


class Repository(VectorStore):
    """Data access layer for projects, chunks and knowledge contexts.

    Wraps an open sqlite3.Connection; the connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection, dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see contextor.db.schema.initialize).
            dimensions: Length every stored and queried embedding must have.
        """
        self._conn = conn
        self.dimensions = dimensions

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_project(self, name: str) -> Project | None:
        with _store_errors("get_project"):
            row = self._conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE name = ?", (name,)
            ).fetchone()
        return _row_to_project(row) if row else None

    def get_project_by_id(self, project_id: str) -> Project | None:
        with _store_errors("get_project_by_id"):
            row = self._conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
        return _row_to_project(row) if row else None

    def list_projects(self) -> list[Project]:
        """Return all projects ordered by name."""
        with _store_errors("list_projects"):
            rows = self._conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects ORDER BY name"
            ).fetchall()
        return [_row_to_project(r) for r in rows]

    def create_project(
        self,
        name: str,
        description: str | None = None,
        tech_stack: list[str] | None = None,
        repository_url: str | None = None,
        settings: dict | None = None,
    ) -> Project:
        project_id = str(uuid.uuid4())
        with _store_errors("create_project"):
            self._conn.execute(
                """
                INSERT INTO projects (id, name, description, tech_stack, repository_url, settings)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    project_id,
                    name,
                    description,
                    json.dumps(tech_stack or []),
                    repository_url,
                    json.dumps(settings or {}),
                ),
            )
            self._conn.commit()
        project = self.get_project_by_id(project_id)
        if project is None:
            raise StoreError(f"create_project failed: project {project_id} not readable after insert")
        return project

    def update_project(self, project: Project) -> Project:
        with _store_errors("update_project"):
            cur = self._conn.execute(
                """
                UPDATE projects
                SET description = ?, tech_stack = ?, repository_url = ?, settings = ?,
                    updated_at = datetime('now')
                WHERE id = ?
                """,
                (
                    project.description,
                    json.dumps(project.tech_stack),
                    project.repository_url,
                    json.dumps(project.settings),
                    project.id,
                ),
            )
            self._conn.commit()
        if cur.rowcount == 0:
            raise StoreError(f"update_project failed: no project with id {project.id}")
        updated = self.get_project_by_id(project.id)
        if updated is None:
            raise StoreError(f"update_project failed: project {project.id} not readable after update")
        return updated

    def delete_project(self, project_id: str) -> bool:
        """Delete a project; its chunks and contexts go with it (ON DELETE CASCADE)."""
        with _store_errors("delete_project"):
            cur = self._conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            self._conn.commit()
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def upsert_chunk(self, chunk: Chunk) -> str:
        """Write *chunk*, replacing whatever is stored at (project_id, path).

        Sets ``chunk.id`` and returns it.
        """
        embedding = (
            encode_embedding(chunk.embedding, self.dimensions)
            if chunk.embedding is not None
            else None
        )
        metadata = json.dumps(chunk.metadata)

        with _store_errors(f"upsert_chunk({chunk.path})"):
            row = self._conn.execute(
                "SELECT id FROM document_chunks WHERE project_id = ? AND path = ?",
                (chunk.project_id, chunk.path),
            ).fetchone()
            if row is not None:
                chunk_id = row["id"]
                self._conn.execute(
                    """
                    UPDATE document_chunks
                    SET source_type = ?, content = ?, contextual_content = ?,
                        metadata = ?, embedding = ?, updated_at = datetime('now')
                    WHERE id = ?
                    """,
                    (
                        chunk.source_type,
                        chunk.content,
                        chunk.contextual_content,
                        metadata,
                        embedding,
                        chunk_id,
                    ),
                )
            else:
                chunk_id = str(uuid.uuid4())
                self._conn.execute(
                    """
                    INSERT INTO document_chunks
                        (id, project_id, source_type, path, content,
                         contextual_content, metadata, embedding)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        chunk_id,
                        chunk.project_id,
                        chunk.source_type,
                        chunk.path,
                        chunk.content,
                        chunk.contextual_content,
                        metadata,
                        embedding,
                    ),
                )
            self._conn.commit()

        chunk.id = chunk_id
        return chunk_id

    def get_chunk(self, project_id: str, path: str) -> Chunk | None:
        """Return the chunk stored at (project_id, path), or None."""
        with _store_errors("get_chunk"):
            row = self._conn.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM document_chunks WHERE project_id = ? AND path = ?",
                (project_id, path),
            ).fetchone()
        return _row_to_chunk(row) if row else None

    def get_chunks(
        self,
        project_id: str,
        source_type: str | None = None,
        order: str = "path",
    ) -> list[Chunk]:
        """Return a project's chunks.

        Args:
            project_id: Owning project.
            source_type: Optional source-type filter.
            order: ``"path"`` (ascending path) or ``"recent"`` (newest first).
        """
        if order not in _CHUNK_ORDERS:
            raise ValueError(f"order must be one of {sorted(_CHUNK_ORDERS)}, got {order!r}")
        sql = f"SELECT {_CHUNK_COLUMNS} FROM document_chunks WHERE project_id = ?"
        params: list[object] = [project_id]
        if source_type is not None:
            sql += " AND source_type = ?"
            params.append(source_type)
        sql += f" ORDER BY {_CHUNK_ORDERS[order]}"
        with _store_errors("get_chunks"):
            rows = self._conn.execute(sql, params).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def count_chunks_by_source_type(self, project_id: str) -> dict[str, int]:
        with _store_errors("count_chunks_by_source_type"):
            rows = self._conn.execute(
                """
                SELECT source_type, COUNT(*) AS n FROM document_chunks
                WHERE project_id = ?
                GROUP BY source_type
                ORDER BY source_type
                """,
                (project_id,),
            ).fetchall()
        return {r["source_type"]: r["n"] for r in rows}

    # ------------------------------------------------------------------
    # Similarity search
    # ------------------------------------------------------------------

    def similarity_search(
        self,
        query_vector: list[float],
        project_id: str | None = None,
        threshold: float = 0.7,
        limit: int = 10,
    ) -> list[RetrievalResult]:
        """Exhaustive cosine search. Returns results best-first.

        Only chunks with ``1 - cosine_distance > threshold`` are returned.
        """
        if limit < 1:
            return []
        query = encode_embedding(query_vector, self.dimensions)
        with _store_errors("similarity_search"):
            rows = self._conn.execute(
                f"""
                SELECT * FROM (
                    SELECT {_CHUNK_COLUMNS},
                           1.0 - vec_distance_cosine(embedding, ?) AS similarity
                    FROM document_chunks
                    WHERE embedding IS NOT NULL
                      AND (? IS NULL OR project_id = ?)
                )
                WHERE similarity > ?
                ORDER BY similarity DESC, path
                LIMIT ?
                """,
                (query, project_id, project_id, threshold, limit),
            ).fetchall()
        return [
            RetrievalResult(chunk=_row_to_chunk(r), similarity=float(r["similarity"]))
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Knowledge contexts
    # ------------------------------------------------------------------

    def add_context(self, context: KnowledgeContext) -> str:
        context_id = str(uuid.uuid4())
        with _store_errors("add_context"):
            self._conn.execute(
                """
                INSERT INTO knowledge_contexts
                    (id, project_id, context_type, title, content, file_path, tags)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    context_id,
                    context.project_id,
                    context.context_type,
                    context.title,
                    context.content,
                    context.file_path,
                    json.dumps(context.tags),
                ),
            )
            self._conn.commit()
        context.id = context_id
        return context_id

    def list_contexts(self, project_id: str) -> list[KnowledgeContext]:
        """Return a project's recorded contexts, newest first."""
        with _store_errors("list_contexts"):
            rows = self._conn.execute(
                """
                SELECT id, project_id, context_type, title, content, file_path, tags, created_at
                FROM knowledge_contexts WHERE project_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (project_id,),
            ).fetchall()
        return [
            KnowledgeContext(
                id=r["id"],
                project_id=r["project_id"],
                context_type=r["context_type"],
                title=r["title"],
                content=r["content"],
                file_path=r["file_path"],
                tags=json.loads(r["tags"]),
                created_at=r["created_at"],
            )
            for r in rows
        ]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        tech_stack=json.loads(row["tech_stack"]),
        repository_url=row["repository_url"],
        settings=json.loads(row["settings"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        id=row["id"],
        project_id=row["project_id"],
        source_type=row["source_type"],
        path=row["path"],
        content=row["content"],
        contextual_content=row["contextual_content"],
        metadata=json.loads(row["metadata"]),
        embedding=decode_embedding(row["embedding"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
