"""
Chirper Data Models
===================

Pydantic data models for the records the repositories return. They mirror
the database schema, with two derived shapes on top:

- PublicUser is a User without the password column. Read paths select
  exactly these columns, the password never leaves the database for them.
- TimelineEntry is a post as shown in a timeline, either an original post
  or a retweet flattened into the retweeted post's shape.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator


# Fixed-width ISO-8601 so that SQL ORDER BY on the text column and Python
# comparisons on the parsed datetimes agree.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime) -> str:
    """Serialize a datetime for storage.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


class PublicUser(BaseModel):
    """User as visible to other users; never carries the password."""
    id: int = Field(..., description="Database primary key")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Unique login email")
    image_name: Optional[str] = Field(default=None, description="Profile image reference")
    created_at: datetime
    updated_at: datetime

    def __str__(self) -> str:
        return f"User({self.name}:{self.id})"


class User(PublicUser):
    """Full user record including the stored password hash."""
    password: str = Field(..., description="Password hash, written by the auth layer")


class Post(BaseModel):
    """Post row."""
    id: int = Field(..., description="Database primary key")
    content: str = Field(..., description="Post body")
    user_id: int = Field(..., description="Owning user")
    created_at: datetime
    updated_at: datetime

    def __str__(self) -> str:
        return f"Post({self.id}:{self.content[:30]})"


class PostWithUser(Post):
    """Post joined with its author's public profile."""
    user: PublicUser


class TimelineEntry(PostWithUser):
    """Post or retweet as it appears in a timeline.

    For a retweet, ``created_at`` is the time of the retweet, equal to
    ``retweeted_at``, and ``retweeted_by`` names the retweeting user.
    """
    retweeted_at: Optional[datetime] = None
    retweeted_by: Optional[str] = None

    @property
    def is_retweet(self) -> bool:
        return self.retweeted_at is not None


class Retweet(BaseModel):
    """Retweet join row."""
    id: int
    user_id: int = Field(..., description="Retweeting user")
    post_id: int = Field(..., description="Retweeted post")
    created_at: datetime


class Like(BaseModel):
    """Like join row."""
    id: int
    user_id: int = Field(..., description="Liking user")
    post_id: int = Field(..., description="Liked post")
    created_at: datetime


class RetweetWithPost(BaseModel):
    """Retweet joined with the retweeted post and the retweeter's name."""
    post: PostWithUser
    created_at: datetime
    retweeter_name: str


class LikedPost(BaseModel):
    """Envelope around a liked post."""
    post: PostWithUser


class UserWithPosts(PublicUser):
    """User with their merged timeline of posts and retweets."""
    posts: List[TimelineEntry] = Field(default_factory=list)


class UserWithLikes(PublicUser):
    """User with the posts they liked."""
    likes: List[LikedPost] = Field(default_factory=list)


class UserProfileUpdate(BaseModel):
    """Partial profile update.

    A field left out, or set to None, keeps its stored value.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    image_name: Optional[str] = Field(default=None, min_length=1)

    @field_validator('name', 'email')
    @classmethod
    def strip_whitespace(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("value cannot be blank")
        return v

    def changes(self) -> Dict[str, Any]:
        """Columns to write, in declaration order."""
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        return not self.changes()

