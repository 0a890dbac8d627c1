"""
User Repository
===============

Repository pattern implementation for User CRUD operations, the per-user
timeline and the liked-posts listing.

Only ``get_user_by_email_with_password`` reads the password column. Every
other read selects the public columns by name.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import (
    LikedPost,
    PublicUser,
    User,
    UserProfileUpdate,
    UserWithLikes,
    UserWithPosts,
    to_db_timestamp,
    utc_now,
)
from ..config.settings import UserDefaults
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import NotFoundError, translate_storage_error
from .selects import (
    POST_WITH_AUTHOR_SELECT,
    PUBLIC_USER_SELECT,
    post_with_user_from_row,
    public_user_from_row,
)
from .timeline import fetch_timeline

_USER_COLUMNS = "id, name, email, password, image_name, created_at, updated_at"

# Whitelist of columns a profile update may touch
_PROFILE_COLUMNS = ("name", "email", "image_name")


class UserRepository:
    """Repository for User CRUD operations with database abstraction."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        default_image_name: Optional[str] = None,
    ):
        """Initialize user repository.

        Args:
            db_connection: Database connection manager
            default_image_name: Profile image given to new users; the
                application passes ``settings.users.default_image_name``
        """
        self.db = db_connection
        self.logger = get_logger_for_component("user_repository")
        self.default_image_name = (
            default_image_name or UserDefaults().default_image_name
        )

    # ── WRITE ─────────────────────────────────────────────

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        created_at: Optional[datetime] = None,
    ) -> User:
        """Create a new user with the default profile image.

        Args:
            name: Display name
            email: Login email, must be unique
            password: Password hash; hashing belongs to the auth layer
            created_at: Creation time, defaults to now

        Returns:
            Created user, including the password column

        Raises:
            ConstraintViolation: If the email is already registered
        """
        timestamp = to_db_timestamp(created_at or utc_now())
        try:
            row = await self.db.write_returning(
                f"""
                INSERT INTO users (name, email, password, image_name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING {_USER_COLUMNS}
                """,
                (name, email, password, self.default_image_name, timestamp, timestamp),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "create_user", {"email": email}
            ) from e

        user = User(**row)
        self.logger.info(f"Created user {user.id}")
        return user

    async def update_user_profile(self, user_id: int, update: UserProfileUpdate) -> User:
        """Apply a partial profile update.

        Fields missing from ``update`` keep their stored values; an empty
        update only refreshes ``updated_at``.

        Raises:
            NotFoundError: If the user does not exist
            ConstraintViolation: If the new email is already registered
        """
        changes = update.changes()
        set_clauses = [f"{column} = ?" for column in _PROFILE_COLUMNS if column in changes]
        values = [changes[column] for column in _PROFILE_COLUMNS if column in changes]

        set_clauses.append("updated_at = ?")
        values.append(to_db_timestamp(utc_now()))
        values.append(user_id)

        try:
            row = await self.db.write_returning(
                f"""
                UPDATE users SET {', '.join(set_clauses)}
                WHERE id = ?
                RETURNING {_USER_COLUMNS}
                """,
                values,
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "update_user_profile", {"user_id": user_id}
            ) from e

        if row is None:
            self.logger.error(f"Cannot update user {user_id}: not found")
            raise NotFoundError(
                f"User {user_id} does not exist", entity="user", entity_id=user_id
            )

        if update.is_empty():
            self.logger.debug(f"Touched user {user_id}: no profile fields given")
        else:
            self.logger.info(f"Updated profile of user {user_id}: {sorted(changes)}")
        return User(**row)

    async def delete_user(self, user_id: int) -> User:
        """Delete a user together with their posts, retweets and likes.

        Raises:
            NotFoundError: If the user does not exist
        """
        try:
            row = await self.db.write_returning(
                f"DELETE FROM users WHERE id = ? RETURNING {_USER_COLUMNS}",
                (user_id,),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "delete_user", {"user_id": user_id}
            ) from e

        if row is None:
            self.logger.error(f"Cannot delete user {user_id}: not found")
            raise NotFoundError(
                f"User {user_id} does not exist", entity="user", entity_id=user_id
            )

        self.logger.info(f"Deleted user {user_id}")
        return User(**row)

    # ── READ ──────────────────────────────────────────────

    async def get_user_with_posts(self, user_id: int) -> Optional[UserWithPosts]:
        """Get a user with their own posts and own retweets merged, newest first."""
        try:
            user = await self._fetch_public_user("u.id = ?", (user_id,))
            if user is None:
                return None

            with PerformanceLogger(self.logger, "user timeline merge", user_id=user_id):
                posts = await fetch_timeline(self.db, user_id=user_id)
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "get_user_with_posts", {"user_id": user_id}
            ) from e

        return UserWithPosts(**dict(user), posts=posts)

    async def get_user_liked_posts(self, user_id: int) -> Optional[UserWithLikes]:
        """Get a user with the posts they liked.

        Likes are ordered by the liked post's own ``created_at``, newest
        first. Retweets play no part here.
        """
        try:
            user = await self._fetch_public_user("u.id = ?", (user_id,))
            if user is None:
                return None

            rows = await self.db.fetch_all(
                f"""
                SELECT {POST_WITH_AUTHOR_SELECT}
                FROM likes l
                JOIN posts p ON p.id = l.post_id
                JOIN users a ON a.id = p.user_id
                WHERE l.user_id = ?
                ORDER BY p.created_at DESC, p.id DESC
                """,
                (user_id,),
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "get_user_liked_posts", {"user_id": user_id}
            ) from e

        likes = [LikedPost(post=post_with_user_from_row(row)) for row in rows]
        return UserWithLikes(**dict(user), likes=likes)

    async def get_all_users(self) -> List[PublicUser]:
        """Get every user, newest first."""
        try:
            rows = await self.db.fetch_all(
                f"SELECT {PUBLIC_USER_SELECT} FROM users u ORDER BY u.created_at DESC, u.id DESC"
            )
        except sqlite3.Error as e:
            raise translate_storage_error(e, self.logger, "get_all_users") from e

        return [public_user_from_row(row) for row in rows]

    async def get_user(self, user_id: int) -> Optional[PublicUser]:
        """Get a user by id, or None if absent."""
        try:
            return await self._fetch_public_user("u.id = ?", (user_id,))
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "get_user", {"user_id": user_id}
            ) from e

    async def get_user_by_email(self, email: str) -> Optional[PublicUser]:
        """Get a user by email, or None if absent."""
        try:
            return await self._fetch_public_user("u.email = ?", (email,))
        except sqlite3.Error as e:
            raise translate_storage_error(e, self.logger, "get_user_by_email") from e

    async def get_user_by_email_with_password(self, email: str) -> Optional[User]:
        """Get the full user record, password included, for authentication."""
        try:
            row = await self.db.fetch_one(
                f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?", (email,)
            )
        except sqlite3.Error as e:
            raise translate_storage_error(
                e, self.logger, "get_user_by_email_with_password"
            ) from e

        return User(**row) if row else None

    # ── HELPERS ───────────────────────────────────────────

    async def _fetch_public_user(self, where: str, params: tuple) -> Optional[PublicUser]:
        row = await self.db.fetch_one(
            f"SELECT {PUBLIC_USER_SELECT} FROM users u WHERE {where}", params
        )
        return public_user_from_row(row) if row else None
