"""Engagement repository: retweets and likes."""

import sqlite3
from datetime import datetime
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.models import Like, Retweet, to_db_timestamp, utc_now
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import NotFoundError, translate_storage_error


class EngagementRepository:
    """Repository for Retweet and Like rows.

    A user can retweet and like a given post at most once; repeats and
    unknown user or post ids fail with ConstraintViolation.
    """

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize engagement repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("engagement_repository")

    async def retweet_post(
        self, user_id: int, post_id: int, created_at: Optional[datetime] = None
    ) -> Retweet:
        """Record that ``user_id`` retweeted ``post_id``."""
        row = await self._insert("retweets", user_id, post_id, created_at)
        self.logger.info(f"User {user_id} retweeted post {post_id}")
        return Retweet(**row)

    async def undo_retweet(self, user_id: int, post_id: int) -> Retweet:
        """Remove a retweet.

        Raises:
            NotFoundError: If the user has not retweeted the post
        """
        row = await self._delete("retweets", user_id, post_id)
        self.logger.info(f"User {user_id} undid retweet of post {post_id}")
        return Retweet(**row)

    async def like_post(
        self, user_id: int, post_id: int, created_at: Optional[datetime] = None
    ) -> Like:
        """Record that ``user_id`` liked ``post_id``."""
        row = await self._insert("likes", user_id, post_id, created_at)
        self.logger.info(f"User {user_id} liked post {post_id}")
        return Like(**row)

    async def unlike_post(self, user_id: int, post_id: int) -> Like:
        """Remove a like.

        Raises:
            NotFoundError: If the user has not liked the post
        """
        row = await self._delete("likes", user_id, post_id)
        self.logger.info(f"User {user_id} unliked post {post_id}")
        return Like(**row)

    async def _insert(
        self, table: str, user_id: int, post_id: int, created_at: Optional[datetime]
    ) -> dict:
        try:
            return await self.db.write_returning(
                f"""
                INSERT INTO {table} (user_id, post_id, created_at)
                VALUES (?, ?, ?)
                RETURNING id, user_id, post_id, created_at
                """,
                (user_id, post_id, to_db_timestamp(created_at or utc_now())),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, f"insert into {table}",
                {"user_id": user_id, "post_id": post_id},
            ) from e

    async def _delete(self, table: str, user_id: int, post_id: int) -> dict:
        try:
            row = await self.db.write_returning(
                f"""
                DELETE FROM {table} WHERE user_id = ? AND post_id = ?
                RETURNING id, user_id, post_id, created_at
                """,
                (user_id, post_id),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, f"delete from {table}",
                {"user_id": user_id, "post_id": post_id},
            ) from e

        if row is None:
            entity = table[:-1]
            self.logger.error(f"No {entity} by user {user_id} on post {post_id}")
            raise NotFoundError(
                f"User {user_id} has no {entity} on post {post_id}",
                entity=entity,
                entity_id=post_id,
            )
        return row
