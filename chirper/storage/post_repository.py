"""
Post Repository
===============

Repository pattern implementation for Post CRUD operations and the global
timeline.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Post, PostWithUser, TimelineEntry, to_db_timestamp, utc_now
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import NotFoundError, translate_storage_error
from .selects import POST_WITH_AUTHOR_FROM, POST_WITH_AUTHOR_SELECT, post_with_user_from_row
from .timeline import fetch_timeline


class PostRepository:
    """Repository for Post CRUD operations with database abstraction."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize post repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("post_repository")

    async def create_post(
        self, content: str, user_id: int, created_at: Optional[datetime] = None
    ) -> Post:
        """Create a new post.

        Args:
            content: Post body, stored as given
            user_id: Owning user
            created_at: Creation time, defaults to now

        Returns:
            Created post

        Raises:
            ConstraintViolation: If user_id does not reference a user
            StorageUnavailable: If the database cannot be reached
        """
        timestamp = to_db_timestamp(created_at or utc_now())
        try:
            row = await self.db.write_returning(
                """
                INSERT INTO posts (content, user_id, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                RETURNING id, content, user_id, created_at, updated_at
                """,
                (content, user_id, timestamp, timestamp),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "create_post", {"user_id": user_id}
            ) from e

        post = Post(**row)
        self.logger.info(f"Created post {post.id} for user {user_id}")
        return post

    async def update_post(self, post_id: int, content: str) -> Post:
        """Replace a post's content.

        Raises:
            NotFoundError: If the post does not exist
        """
        try:
            row = await self.db.write_returning(
                """
                UPDATE posts SET content = ?, updated_at = ?
                WHERE id = ?
                RETURNING id, content, user_id, created_at, updated_at
                """,
                (content, to_db_timestamp(utc_now()), post_id),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "update_post", {"post_id": post_id}
            ) from e

        if row is None:
            self.logger.error(f"Cannot update post {post_id}: not found")
            raise NotFoundError(
                f"Post {post_id} does not exist", entity="post", entity_id=post_id
            )

        self.logger.info(f"Updated post {post_id}")
        return Post(**row)

    async def delete_post(self, post_id: int) -> Post:
        """Delete a post, its retweets and its likes.

        Returns:
            The deleted post

        Raises:
            NotFoundError: If the post does not exist
        """
        try:
            row = await self.db.write_returning(
                """
                DELETE FROM posts WHERE id = ?
                RETURNING id, content, user_id, created_at, updated_at
                """,
                (post_id,),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "delete_post", {"post_id": post_id}
            ) from e

        if row is None:
            self.logger.error(f"Cannot delete post {post_id}: not found")
            raise NotFoundError(
                f"Post {post_id} does not exist", entity="post", entity_id=post_id
            )

        self.logger.info(f"Deleted post {post_id}")
        return Post(**row)

    async def get_post(self, post_id: int) -> Optional[PostWithUser]:
        """Get a post with its author, or None if absent."""
        try:
            row = await self.db.fetch_one(
                f"SELECT {POST_WITH_AUTHOR_SELECT} {POST_WITH_AUTHOR_FROM} WHERE p.id = ?",
                (post_id,),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "get_post", {"post_id": post_id}
            ) from e

        return post_with_user_from_row(row) if row else None

    async def get_all_posts(self) -> List[TimelineEntry]:
        """Global timeline: every post plus every retweet, newest first."""
        try:
            with PerformanceLogger(self.logger, "global timeline merge"):
                timeline = await fetch_timeline(self.db)
        except sqlite3.Error as e:
            raise translate_storage_error(e, self.logger, "get_all_posts") from e

        self.logger.debug(f"Global timeline has {len(timeline)} entries")
        return timeline
