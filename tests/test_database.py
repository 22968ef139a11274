"""
Tests for the SQLite Post Store

Tests connection management, query execution, and the post and user
operations of the embedded database backend.
"""

import pytest
import sqlite3
from unittest.mock import patch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.database import SQLitePostStore
from data.models import CreateUserData
from utils.exceptions import DatabaseConnectionError, QueryError

BANGKOK = (13.7563, 100.5018)


class TestConnectionManagement:
    """Tests for database connection management."""

    def test_connect_creates_schema(self, tmp_path):
        """
        Test that connect() opens the file and creates both tables.
        """
        store = SQLitePostStore(str(tmp_path / "data" / "yuni.db"))

        assert store.connect() is True
        tables = {row["name"] for row in store.execute_query("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"posts", "users"} <= tables
        store.close()

    def test_connect_failure_raises(self):
        """
        Test that a failing sqlite3.connect() becomes DatabaseConnectionError.
        """
        with patch("data.database.sqlite3.connect", side_effect=sqlite3.OperationalError("unable to open")):
            store = SQLitePostStore(":memory:")
            with pytest.raises(DatabaseConnectionError):
                store.connect()
            assert store.conn is None

    def test_close_when_not_connected(self):
        """
        Test that close() without a connection is a no-op.
        """
        store = SQLitePostStore(":memory:")
        store.close()

        assert store.conn is None

    def test_lazy_connect_on_query(self):
        """
        Test that the first query opens the connection.
        """
        store = SQLitePostStore(":memory:")

        assert store.execute_query("SELECT 1 AS one") == [{"one": 1}]
        assert store.conn is not None
        store.close()

    def test_defaults_to_settings_path(self, mock_settings):
        """
        Test that the database path comes from settings.
        """
        assert SQLitePostStore().db_path == mock_settings.SQLITE_DB_PATH


class TestQueryExecution:
    """Tests for execute_query()."""

    def test_bad_sql_raises_query_error(self, sqlite_store):
        """
        Test that SQL errors are raised as QueryError.
        """
        with pytest.raises(QueryError):
            sqlite_store.execute_query("SELECT * FROM nowhere")

    def test_write_returns_empty_list(self, sqlite_store):
        """
        Test that non-SELECT statements return an empty list.
        """
        result = sqlite_store.execute_query(
            "INSERT INTO users (username, device_id, created_at) VALUES (?, ?, ?)",
            ("alice", "d1", "2026-01-15T09:30:00.000+00:00"),
        )

        assert result == []

    def test_duplicate_id_raises_query_error(self, sqlite_store, post_factory):
        """
        Test that inserting the same post id twice fails cleanly.
        """
        sqlite_store.create_post(post_factory(post_id="dup"))

        with pytest.raises(QueryError):
            sqlite_store.create_post(post_factory(post_id="dup"))


class TestPostOperations:
    """Tests for post storage in SQLite."""

    def test_create_and_query(self, sqlite_store, post_factory, fake_clock):
        """
        Test that a stored post round-trips with its timestamps intact.
        """
        original = sqlite_store.create_post(post_factory(image_uri="https://x.io/a.jpg"))

        result = sqlite_store.get_posts_in_radius(*BANGKOK, 100, fake_clock())

        assert len(result) == 1
        stored = result[0].post
        assert stored.id == original.id
        assert stored.created_at == original.created_at
        assert stored.expires_at == original.expires_at
        assert stored.image_uri == "https://x.io/a.jpg"
        assert result[0].distance == 0

    def test_get_posts_newest_first(self, sqlite_store, post_factory, fake_clock):
        """
        Test that get_posts() orders by creation time descending.
        """
        sqlite_store.create_post(post_factory(post_id="first"))
        fake_clock.advance(minutes=1)
        sqlite_store.create_post(post_factory(post_id="second"))

        assert [p.id for p in sqlite_store.get_posts(fake_clock())] == ["second", "first"]

    def test_expired_excluded_at_expiry_instant(self, sqlite_store, post_factory, fake_clock):
        """
        Test that the SQL filter agrees with is_expired at the boundary.
        """
        post = sqlite_store.create_post(post_factory())

        assert sqlite_store.get_posts(post.expires_at) == []
        fake_clock.advance(hours=23, minutes=59, seconds=59, milliseconds=999)
        assert len(sqlite_store.get_posts(fake_clock())) == 1

    def test_delete_post(self, sqlite_store, post_factory, fake_clock):
        """
        Test that delete_post() removes the row.
        """
        post = sqlite_store.create_post(post_factory())

        sqlite_store.delete_post(post.id)

        assert sqlite_store.get_posts(fake_clock()) == []

    def test_delete_expired_posts(self, sqlite_store, post_factory, fake_clock):
        """
        Test that the sweep deletes exactly the expired rows and reports the count.
        """
        sqlite_store.create_post(post_factory(post_id="old"))
        fake_clock.advance(hours=1)
        sqlite_store.create_post(post_factory(post_id="new"))
        now = fake_clock.advance(hours=23)

        assert sqlite_store.delete_expired_posts(now) == 1
        rows = sqlite_store.execute_query("SELECT id FROM posts")
        assert [r["id"] for r in rows] == ["new"]


class TestUserOperations:
    """Tests for user storage in SQLite."""

    def test_add_and_get_user(self, sqlite_store):
        """
        Test storing a user and reading it back by device id.
        """
        sqlite_store.add_user(CreateUserData(username="alice", device_id="d1"))

        user = sqlite_store.get_user("d1")
        assert user.username == "alice"
        assert sqlite_store.get_user("d2") is None

    def test_add_user_replaces_by_device(self, sqlite_store):
        """
        Test that a second user for the same device replaces the first.
        """
        sqlite_store.add_user(CreateUserData(username="alice", device_id="d1"))
        sqlite_store.add_user(CreateUserData(username="bob", device_id="d1"))

        rows = sqlite_store.execute_query("SELECT * FROM users")
        assert len(rows) == 1
        assert rows[0]["username"] == "bob"
