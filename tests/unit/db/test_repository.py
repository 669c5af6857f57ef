"""Tests for Repository — projects, chunk upsert, similarity search, contexts."""

from __future__ import annotations

import math
from unittest.mock import patch

import pytest

from contextor.db.models import Chunk, KnowledgeContext, Project
from contextor.errors import StoreError

# Unit vectors with known cosine similarity to QUERY.
QUERY = [1.0, 0.0, 0.0]
SIM_100 = [1.0, 0.0, 0.0]
SIM_095 = [0.95, math.sqrt(1 - 0.95**2), 0.0]
SIM_050 = [0.5, math.sqrt(1 - 0.5**2), 0.0]
SIM_000 = [0.0, 1.0, 0.0]


def _chunk(project: Project, path: str, embedding, source_type: str = "code", content: str = "") -> Chunk:
    return Chunk(
        project_id=project.id,
        source_type=source_type,
        path=path,
        content=content or f"content of {path}",
        embedding=embedding,
    )


# ------------------------------------------------------------------
# Projects
# ------------------------------------------------------------------


def test_create_and_get_project(repo):
    created = repo.create_project(
        name="shop",
        description="A shop",
        tech_stack=["nextjs", "prisma"],
        repository_url="https://example.com/shop.git",
    )
    fetched = repo.get_project("shop")
    assert fetched == created
    assert fetched.tech_stack == ["nextjs", "prisma"]
    assert fetched.settings == {}
    assert fetched.created_at is not None


def test_get_project_missing(repo):
    assert repo.get_project("nope") is None


def test_duplicate_project_name_raises_store_error(repo, project):
    with pytest.raises(StoreError):
        repo.create_project(name=project.name)


def test_update_project(repo, project):
    project.description = "Updated"
    project.settings = {"airtable_tables": ["Issues"]}
    updated = repo.update_project(project)
    assert updated.description == "Updated"
    assert updated.settings == {"airtable_tables": ["Issues"]}


def test_update_missing_project_raises(repo):
    ghost = Project(id="missing", name="ghost")
    with pytest.raises(StoreError, match="no project"):
        repo.update_project(ghost)


def test_create_project_unreadable_after_insert_raises(repo):
    with patch.object(repo, "get_project_by_id", return_value=None):
        with pytest.raises(StoreError, match="create_project failed"):
            repo.create_project(name="vanishing")


def test_update_project_unreadable_after_update_raises(repo, project):
    with patch.object(repo, "get_project_by_id", return_value=None):
        with pytest.raises(StoreError, match="update_project failed"):
            repo.update_project(project)


def test_list_projects_ordered_by_name(repo):
    repo.create_project(name="zeta")
    repo.create_project(name="alpha")
    assert [p.name for p in repo.list_projects()] == ["alpha", "zeta"]


def test_delete_project_cascades(repo, project):
    repo.upsert_chunk(_chunk(project, "a.py", SIM_100))
    repo.add_context(
        KnowledgeContext(
            project_id=project.id,
            context_type="query",
            title="t",
            content="c",
            file_path="f.md",
        )
    )
    assert repo.delete_project(project.id) is True
    assert repo.get_chunks(project.id) == []
    assert repo.list_contexts(project.id) == []
    assert repo.delete_project(project.id) is False


# ------------------------------------------------------------------
# Chunk upsert
# ------------------------------------------------------------------


def test_upsert_inserts_and_sets_id(repo, project):
    chunk = _chunk(project, "src/app.py", SIM_100)
    chunk_id = repo.upsert_chunk(chunk)
    assert chunk.id == chunk_id
    stored = repo.get_chunk(project.id, "src/app.py")
    assert stored.content == "content of src/app.py"
    assert stored.embedding == pytest.approx(SIM_100)


def test_upsert_replaces_by_path(repo, project):
    first_id = repo.upsert_chunk(_chunk(project, "src/app.py", SIM_100, content="old"))
    second_id = repo.upsert_chunk(_chunk(project, "src/app.py", SIM_050, content="new"))

    assert first_id == second_id
    chunks = repo.get_chunks(project.id)
    assert len(chunks) == 1
    assert chunks[0].content == "new"
    assert chunks[0].embedding == pytest.approx(SIM_050)


def test_same_path_in_two_projects_is_two_chunks(repo, project):
    other = repo.create_project(name="other")
    repo.upsert_chunk(_chunk(project, "README.md", SIM_100, source_type="docs"))
    repo.upsert_chunk(_chunk(other, "README.md", SIM_100, source_type="docs"))
    assert len(repo.get_chunks(project.id)) == 1
    assert len(repo.get_chunks(other.id)) == 1


def test_upsert_metadata_round_trips(repo, project):
    chunk = _chunk(project, "a.py", SIM_100)
    chunk.metadata = {"file_type": ".py", "chunk_index": 1}
    repo.upsert_chunk(chunk)
    assert repo.get_chunk(project.id, "a.py").metadata == {"file_type": ".py", "chunk_index": 1}


def test_upsert_without_embedding(repo, project):
    repo.upsert_chunk(_chunk(project, "a.py", None))
    assert repo.get_chunk(project.id, "a.py").embedding is None


def test_upsert_dimension_mismatch_raises(repo, project):
    with pytest.raises(StoreError, match="dimensions"):
        repo.upsert_chunk(_chunk(project, "a.py", [0.1, 0.2]))
    assert repo.get_chunks(project.id) == []


def test_upsert_unknown_project_raises_store_error(repo):
    orphan = Chunk(project_id="missing", source_type="code", path="a.py", content="x")
    with pytest.raises(StoreError, match="upsert_chunk"):
        repo.upsert_chunk(orphan)


def test_get_chunks_filters_and_orders(repo, project):
    repo.upsert_chunk(_chunk(project, "b.py", SIM_100))
    repo.upsert_chunk(_chunk(project, "a.py", SIM_100))
    repo.upsert_chunk(_chunk(project, "notes.md", SIM_100, source_type="docs"))

    assert [c.path for c in repo.get_chunks(project.id, source_type="code")] == ["a.py", "b.py"]
    assert [c.path for c in repo.get_chunks(project.id, order="recent")] == [
        "notes.md", "a.py", "b.py",
    ]


def test_get_chunks_rejects_unknown_order(repo, project):
    with pytest.raises(ValueError, match="order"):
        repo.get_chunks(project.id, order="random")


def test_count_chunks_by_source_type(repo, project):
    for i in range(3):
        repo.upsert_chunk(_chunk(project, f"src/{i}.py", SIM_100))
    for i in range(2):
        repo.upsert_chunk(_chunk(project, f"docs/{i}.md", SIM_100, source_type="docs"))
    assert repo.count_chunks_by_source_type(project.id) == {"code": 3, "docs": 2}


# ------------------------------------------------------------------
# Similarity search
# ------------------------------------------------------------------


def test_threshold_keeps_only_close_match(repo, project):
    repo.upsert_chunk(_chunk(project, "close.py", SIM_095))
    repo.upsert_chunk(_chunk(project, "far.py", SIM_050))

    results = repo.similarity_search(QUERY, project_id=project.id, threshold=0.7, limit=10)

    assert [r.chunk.path for r in results] == ["close.py"]
    assert results[0].similarity == pytest.approx(0.95, abs=1e-4)


def test_results_ordered_best_first(repo, project):
    repo.upsert_chunk(_chunk(project, "c.py", SIM_050))
    repo.upsert_chunk(_chunk(project, "a.py", SIM_100))
    repo.upsert_chunk(_chunk(project, "b.py", SIM_095))

    results = repo.similarity_search(QUERY, threshold=0.1, limit=10)

    assert [r.chunk.path for r in results] == ["a.py", "b.py", "c.py"]
    scores = [r.similarity for r in results]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= s <= 1.0 + 1e-6 for s in scores)


def test_threshold_is_strict(repo, project):
    repo.upsert_chunk(_chunk(project, "orthogonal.py", SIM_000))
    assert repo.similarity_search(QUERY, threshold=0.0) == []
    assert len(repo.similarity_search(QUERY, threshold=-0.5)) == 1


def test_limit_caps_results(repo, project):
    for i in range(5):
        repo.upsert_chunk(_chunk(project, f"{i}.py", SIM_100))
    assert len(repo.similarity_search(QUERY, threshold=0.5, limit=3)) == 3
    assert repo.similarity_search(QUERY, threshold=0.5, limit=0) == []


def test_project_filter(repo, project):
    other = repo.create_project(name="other")
    repo.upsert_chunk(_chunk(project, "mine.py", SIM_100))
    repo.upsert_chunk(_chunk(other, "theirs.py", SIM_100))

    scoped = repo.similarity_search(QUERY, project_id=project.id, threshold=0.5)
    everything = repo.similarity_search(QUERY, threshold=0.5)

    assert [r.chunk.path for r in scoped] == ["mine.py"]
    assert {r.chunk.path for r in everything} == {"mine.py", "theirs.py"}


def test_chunks_without_embedding_are_not_searched(repo, project):
    repo.upsert_chunk(_chunk(project, "bare.py", None))
    assert repo.similarity_search(QUERY, threshold=-1.0) == []


def test_query_dimension_mismatch_raises(repo):
    with pytest.raises(StoreError):
        repo.similarity_search([1.0, 0.0], threshold=0.5)


# ------------------------------------------------------------------
# Knowledge contexts
# ------------------------------------------------------------------


def test_add_and_list_contexts(repo, project):
    ctx = KnowledgeContext(
        project_id=project.id,
        context_type="query",
        title="Context for: auth",
        content="# Context",
        file_path="/tmp/query-context-1.md",
        tags=["query", "generated"],
    )
    ctx_id = repo.add_context(ctx)
    listed = repo.list_contexts(project.id)
    assert ctx.id == ctx_id
    assert len(listed) == 1
    assert listed[0].title == "Context for: auth"
    assert listed[0].tags == ["query", "generated"]
