"""Tests for the Database connection layer."""

from __future__ import annotations

from pathlib import Path

import pytest

from contextor.db.connection import Database


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / ".contextor.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_connect_creates_parent_directories(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "kb.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_sqlite_vec_loads(tmp_path):
    conn = Database(tmp_path / ".contextor.db").connect()
    version = conn.execute("SELECT vec_version()").fetchone()[0]
    conn.close()
    assert version.startswith("v")


def test_vec_distance_cosine_available(tmp_path):
    conn = Database(tmp_path / ".contextor.db").connect()
    distance = conn.execute(
        "SELECT vec_distance_cosine('[1.0, 0.0]', '[1.0, 0.0]')"
    ).fetchone()[0]
    conn.close()
    assert distance == pytest.approx(0.0, abs=1e-6)


def test_foreign_keys_enabled(tmp_path):
    conn = Database(tmp_path / ".contextor.db").connect()
    result = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    conn.close()
    assert result == 1


def test_wal_journal_mode(tmp_path):
    conn = Database(tmp_path / ".contextor.db").connect()
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode == "wal"


def test_context_manager_closes_connection(tmp_path):
    db = Database(tmp_path / ".contextor.db")
    with db as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
    with pytest.raises(Exception):
        conn.execute("SELECT 1")


def test_accepts_path_str(tmp_path):
    db = Database(str(tmp_path / ".contextor.db"))
    assert isinstance(db.db_path, Path)
    with db as conn:
        assert conn.execute("SELECT 1").fetchone()[0] == 1
