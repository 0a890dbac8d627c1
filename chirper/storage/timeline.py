"""
Timeline Merge
==============

A timeline is a user's posts and retweets (or everybody's, for the global
timeline) in one reverse-chronological list.

Retweets are flattened into the shape of the post they point at: every
field of the post is copied, ``created_at`` is replaced with the time of
the retweet, and ``retweeted_at`` / ``retweeted_by`` record when and by
whom. A retweeted post therefore appears twice, once at its own time and
once at the retweet's time.

Ordering is a stable descending sort on ``created_at``. On equal
timestamps original posts come before retweets, and each group keeps the
order storage returned it in (``created_at DESC, id DESC``).

The posts query and the retweets query are separate reads and are not
atomic with respect to each other.
"""

from typing import Iterable, List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import PostWithUser, RetweetWithPost, TimelineEntry
from .selects import (
    POST_WITH_AUTHOR_FROM,
    POST_WITH_AUTHOR_SELECT,
    post_with_user_from_row,
)


def flatten_retweet(retweet: RetweetWithPost) -> TimelineEntry:
    """Turn a retweet into a timeline entry shaped like the retweeted post."""
    data = dict(retweet.post)
    data["created_at"] = retweet.created_at
    data["retweeted_at"] = retweet.created_at
    data["retweeted_by"] = retweet.retweeter_name
    return TimelineEntry(**data)


def merge_timeline(
    posts: Iterable[PostWithUser],
    retweets: Iterable[RetweetWithPost],
) -> List[TimelineEntry]:
    """Merge original posts and retweets into one timeline.

    Args:
        posts: Original posts in the timeline's scope
        retweets: Retweets in the timeline's scope

    Returns:
        ``len(posts) + len(retweets)`` entries, newest first
    """
    entries = [TimelineEntry(**dict(post)) for post in posts]
    entries.extend(flatten_retweet(retweet) for retweet in retweets)

    # list.sort is stable, including with reverse=True
    entries.sort(key=lambda entry: entry.created_at, reverse=True)
    return entries


async def fetch_posts(
    db: DatabaseConnection, user_id: Optional[int] = None
) -> List[PostWithUser]:
    """Posts with their authors, newest first; one user's only if given."""
    query = f"SELECT {POST_WITH_AUTHOR_SELECT} {POST_WITH_AUTHOR_FROM}"
    params: tuple = ()
    if user_id is not None:
        query += " WHERE p.user_id = ?"
        params = (user_id,)
    query += " ORDER BY p.created_at DESC, p.id DESC"

    rows = await db.fetch_all(query, params)
    return [post_with_user_from_row(row) for row in rows]


async def fetch_retweets(
    db: DatabaseConnection, user_id: Optional[int] = None
) -> List[RetweetWithPost]:
    """Retweets joined with post, author and retweeter, newest first.

    If ``user_id`` is given only that user's retweets are returned.
    """
    query = f"""
        SELECT r.created_at AS retweeted_at, rt.name AS retweeter_name,
               {POST_WITH_AUTHOR_SELECT}
        FROM retweets r
        JOIN posts p ON p.id = r.post_id
        JOIN users a ON a.id = p.user_id
        JOIN users rt ON rt.id = r.user_id
    """
    params: tuple = ()
    if user_id is not None:
        query += " WHERE r.user_id = ?"
        params = (user_id,)
    query += " ORDER BY r.created_at DESC, r.id DESC"

    rows = await db.fetch_all(query, params)
    return [
        RetweetWithPost(
            post=post_with_user_from_row(row),
            created_at=row["retweeted_at"],
            retweeter_name=row["retweeter_name"],
        )
        for row in rows
    ]


async def fetch_timeline(
    db: DatabaseConnection, user_id: Optional[int] = None
) -> List[TimelineEntry]:
    """Load and merge a timeline.

    Args:
        db: Database connection manager
        user_id: Restrict to this user's own posts and own retweets;
            None loads the global timeline

    Returns:
        Merged timeline, newest first
    """
    posts = await fetch_posts(db, user_id)
    retweets = await fetch_retweets(db, user_id)
    return merge_timeline(posts, retweets)
