"""
Database Module for Yuni

This module handles the embedded SQLite store: connection management, query
execution, and the post and user operations backed by the ``posts`` and
``users`` tables.
"""

import os
import sqlite3
from datetime import datetime
from typing import Optional, List, Dict, Any

from config import settings
from data.models import Post, PostWithDistance, User, CreateUserData
from services.post_lifecycle import is_live
from utils.exceptions import DatabaseConnectionError, QueryError
from utils.geo import filter_posts_in_radius
from utils.helpers import ensure_dir_exists, generate_push_id, to_iso, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS posts (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL,
        content TEXT NOT NULL,
        image_uri TEXT,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        timestamp INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        username TEXT NOT NULL,
        device_id TEXT UNIQUE NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_posts_location ON posts(latitude, longitude)",
    "CREATE INDEX IF NOT EXISTS idx_posts_expires ON posts(expires_at)",
    "CREATE INDEX IF NOT EXISTS idx_users_device ON users(device_id)",
]


class SQLitePostStore:
    """Database connection manager and post/user backend over SQLite."""

    name = "sqlite"

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the store. The connection is opened lazily.

        Args:
            db_path: SQLite file path, or ``:memory:``; defaults to settings.SQLITE_DB_PATH
        """
        self.db_path = db_path or settings.SQLITE_DB_PATH
        self.conn = None

    def connect(self) -> bool:
        """
        Open the database and make sure the schema exists.

        Returns:
            bool: True once connected.

        Raises:
            DatabaseConnectionError: If the file cannot be opened or initialized.
        """
        try:
            if self.db_path != ":memory:":
                ensure_dir_exists(os.path.dirname(os.path.abspath(self.db_path)))
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            for statement in SCHEMA:
                self.conn.execute(statement)
            self.conn.commit()
            logger.info(f"Connected to SQLite database at {self.db_path}")
            return True
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to connect to database: {e}")
            self.conn = None
            raise DatabaseConnectionError(f"Cannot open SQLite database {self.db_path}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        try:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.info("Database connection closed")
        except sqlite3.Error as e:
            logger.error(f"Error closing database connection: {e}")

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """
        Execute a SQL query and return the results.

        Args:
            query: The SQL query to execute.
            params: Query parameters (optional).

        Returns:
            List[Dict]: Rows of a SELECT as dictionaries; an empty list for writes.

        Raises:
            QueryError: If the statement fails (the transaction is rolled back).
        """
        if not self.conn:
            self.connect()

        try:
            cursor = self.conn.cursor()
            cursor.execute(query, params or ())

            # Check if this is a SELECT query with results
            if cursor.description:
                return [dict(row) for row in cursor.fetchall()]

            self.conn.commit()
            return []

        except sqlite3.Error as e:
            logger.error(f"Error executing query: {e}")
            try:
                self.conn.rollback()
            except sqlite3.Error:
                logger.warning("Rollback failed after query error")
            raise QueryError(str(e)) from e

    def _execute_write(self, query: str, params: tuple) -> int:
        """Run a write statement and return the affected row count."""
        if not self.conn:
            self.connect()

        try:
            cursor = self.conn.execute(query, params)
            self.conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"Error executing write: {e}")
            try:
                self.conn.rollback()
            except sqlite3.Error:
                logger.warning("Rollback failed after write error")
            raise QueryError(str(e)) from e

    # =========================================================================
    # Posts
    # =========================================================================

    def create_post(self, post: Post) -> Post:
        """
        Insert a post, assigning an id when it has none.

        Args:
            post: The post to store.

        Returns:
            Post: The stored post.
        """
        if not post.id:
            post.id = generate_push_id(post.timestamp or None)

        record = post.to_dict()
        self._execute_write(
            """
            INSERT INTO posts (id, username, content, image_uri, latitude, longitude,
                               created_at, expires_at, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (record["id"], record["username"], record["content"], record.get("image_uri"),
             record["latitude"], record["longitude"], record["created_at"],
             record["expires_at"], record["timestamp"]),
        )
        logger.info(f"Post {post.id} saved to SQLite")
        return post

    def get_posts(self, now: datetime) -> List[Post]:
        """Return every live post, newest first."""
        rows = self.execute_query(
            "SELECT * FROM posts WHERE expires_at > ? ORDER BY created_at DESC",
            (to_iso(now),),
        )
        # the text comparison and is_live must agree; keep the Python check as the authority
        return [post for post in (Post.from_dict(row) for row in rows) if is_live(post, now)]

    def get_posts_in_radius(
        self,
        latitude: float,
        longitude: float,
        radius_meters: float,
        now: datetime
    ) -> List[PostWithDistance]:
        """
        Get live posts within a radius, nearest first.

        Args:
            latitude: Observer latitude.
            longitude: Observer longitude.
            radius_meters: Inclusive radius in meters.
            now: Current time.

        Returns:
            List[PostWithDistance]: Matching posts.
        """
        posts = self.get_posts(now)
        nearby = filter_posts_in_radius(latitude, longitude, posts, radius_meters)
        logger.info(f"Found {len(nearby)} posts within {radius_meters}m radius in SQLite")
        return nearby

    def delete_post(self, post_id: str) -> None:
        self._execute_write("DELETE FROM posts WHERE id = ?", (post_id,))

    def delete_expired_posts(self, now: datetime) -> int:
        deleted = self._execute_write("DELETE FROM posts WHERE expires_at <= ?", (to_iso(now),))
        logger.info(f"Deleted {deleted} expired posts from SQLite")
        return deleted

    # =========================================================================
    # Users
    # =========================================================================

    def add_user(self, user_data: CreateUserData) -> User:
        """
        Store the user of a device, replacing any previous record for it.

        Args:
            user_data: Username and device id (validated by the caller).

        Returns:
            User: The stored record.
        """
        user = User(username=user_data.username, device_id=user_data.device_id, created_at=utc_now())
        self._execute_write(
            "INSERT OR REPLACE INTO users (username, device_id, created_at) VALUES (?, ?, ?)",
            (user.username, user.device_id, to_iso(user.created_at)),
        )
        return user

    def get_user(self, device_id: str) -> Optional[User]:
        rows = self.execute_query("SELECT * FROM users WHERE device_id = ?", (device_id,))
        if not rows:
            return None
        return User.from_dict(rows[0])
