"""
Chirper Database Schema
=======================

SQLite schema with foreign key constraints and indexes. Tables:

- users: accounts, email unique
- posts: one owning user each
- retweets: user/post join, at most one per pair
- likes: user/post join, at most one per pair

Deleting a user or a post cascades to the rows that reference it.
Timestamps are written by the repositories, never defaulted here.
"""

import sqlite3
import logging
from contextlib import closing
from pathlib import Path

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"users", "posts", "retweets", "likes"}


class DatabaseSchema:
    """Database schema manager for the Chirper SQLite database."""

    def __init__(self, db_path: str = "data/chirper.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables with proper schema."""
        with closing(self.get_connection()) as conn:
            # Dependency order
            self._create_users_table(conn)
            self._create_posts_table(conn)
            self._create_retweets_table(conn)
            self._create_likes_table(conn)

            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_users_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                password TEXT NOT NULL,
                image_name TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """
        )

    def _create_posts_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                content TEXT NOT NULL,
                user_id INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """
        )

    def _create_retweets_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS retweets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                post_id INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                FOREIGN KEY (post_id) REFERENCES posts(id) ON DELETE CASCADE,
                UNIQUE(user_id, post_id)
            )
        """
        )

    def _create_likes_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS likes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                post_id INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                FOREIGN KEY (post_id) REFERENCES posts(id) ON DELETE CASCADE,
                UNIQUE(user_id, post_id)
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create indexes backing the timeline and listing queries."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_users_created ON users(created_at)",
            "CREATE INDEX IF NOT EXISTS idx_posts_created ON posts(created_at)",
            "CREATE INDEX IF NOT EXISTS idx_posts_user_created ON posts(user_id, created_at)",
            "CREATE INDEX IF NOT EXISTS idx_retweets_created ON retweets(created_at)",
            "CREATE INDEX IF NOT EXISTS idx_retweets_post ON retweets(post_id)",
            "CREATE INDEX IF NOT EXISTS idx_likes_post ON likes(post_id)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with closing(self.get_connection()) as conn:
            # Reverse dependency order
            for table in ("likes", "retweets", "posts", "users"):
                conn.execute(f"DROP TABLE IF EXISTS {table}")

            conn.commit()
            logger.info("All database tables dropped")

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with foreign keys enabled."""
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row
        return conn

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with closing(self.get_connection()) as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                    ORDER BY name
                """
                )
                tables = {row[0] for row in cursor.fetchall()}

                if not EXPECTED_TABLES.issubset(tables):
                    logger.error(
                        f"Missing tables. Expected: {EXPECTED_TABLES}, Found: {tables}"
                    )
                    return False

                violations = conn.execute("PRAGMA foreign_key_check").fetchall()
                if violations:
                    logger.error(f"Foreign key violations found: {len(violations)}")
                    return False

                logger.info("Database schema verification passed")
                return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False


def create_tables(db_path: str = "data/chirper.db") -> None:
    """Convenience function to create database tables.

    Args:
        db_path: Path to SQLite database file
    """
    DatabaseSchema(db_path).create_tables()
