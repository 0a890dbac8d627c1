"""
Column selections shared by the repositories.

Public reads name every column they need; none of them lists
``users.password``. The author of a post is selected with an ``author_``
prefix so that a post and its user fit in one flat row.
"""

from typing import Any, Dict, Mapping

from ..database.models import PublicUser, PostWithUser

PUBLIC_USER_COLUMNS = ("id", "name", "email", "image_name", "created_at", "updated_at")
POST_COLUMNS = ("id", "content", "user_id", "created_at", "updated_at")


def select_columns(alias: str, columns, prefix: str = "") -> str:
    """Render ``alias.col AS prefixcol`` for each column."""
    return ", ".join(f"{alias}.{column} AS {prefix}{column}" for column in columns)


PUBLIC_USER_SELECT = select_columns("u", PUBLIC_USER_COLUMNS)

POST_WITH_AUTHOR_SELECT = (
    select_columns("p", POST_COLUMNS)
    + ", "
    + select_columns("a", PUBLIC_USER_COLUMNS, prefix="author_")
)

# Posts joined with their author; callers append WHERE / ORDER BY.
POST_WITH_AUTHOR_FROM = "FROM posts p JOIN users a ON a.id = p.user_id"


def public_user_from_row(row: Mapping[str, Any], prefix: str = "") -> PublicUser:
    return PublicUser(**{column: row[f"{prefix}{column}"] for column in PUBLIC_USER_COLUMNS})


def post_with_user_from_row(row: Mapping[str, Any]) -> PostWithUser:
    data: Dict[str, Any] = {column: row[column] for column in POST_COLUMNS}
    data["user"] = public_user_from_row(row, prefix="author_")
    return PostWithUser(**data)
