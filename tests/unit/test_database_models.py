"""
Database Models Test Suite
==========================

Tests for the Pydantic record models and timestamp serialization.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from chirper.database.models import (
    PostWithUser,
    PublicUser,
    TimelineEntry,
    User,
    UserProfileUpdate,
    to_db_timestamp,
)


def make_user_data(**overrides):
    data = {
        "id": 1,
        "name": "alice",
        "email": "alice@example.com",
        "image_name": "/image/users/default_user.jpg",
        "created_at": "2024-01-01T00:00:00.000000+00:00",
        "updated_at": "2024-01-01T00:00:00.000000+00:00",
    }
    data.update(overrides)
    return data


class TestTimestamps:

    def test_fixed_width_utc(self):
        value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert to_db_timestamp(value) == "2024-01-02T03:04:05.000000+00:00"

    def test_naive_taken_as_utc(self):
        assert to_db_timestamp(datetime(2024, 1, 2)) == "2024-01-02T00:00:00.000000+00:00"

    def test_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2024, 1, 2, 12, 0, tzinfo=plus_two)
        assert to_db_timestamp(value) == "2024-01-02T10:00:00.000000+00:00"

    def test_text_order_matches_time_order(self):
        earlier = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(microseconds=1)
        assert to_db_timestamp(earlier) < to_db_timestamp(later)

    def test_round_trip_through_model(self):
        value = datetime(2024, 1, 2, 3, 4, 5, 678, tzinfo=timezone.utc)
        user = PublicUser(**make_user_data(created_at=to_db_timestamp(value)))
        assert user.created_at == value


class TestUserModels:

    def test_public_user_has_no_password(self):
        user = PublicUser(**make_user_data())
        assert "password" not in user.model_dump()
        assert str(user) == "User(alice:1)"

    def test_user_requires_password(self):
        with pytest.raises(ValidationError):
            User(**make_user_data())

    def test_user_with_password(self):
        user = User(**make_user_data(password="hash"))
        assert user.password == "hash"


class TestTimelineEntry:

    def test_original_post(self):
        entry = TimelineEntry(
            id=1,
            content="hi",
            user_id=1,
            created_at="2024-01-01T00:00:00.000000+00:00",
            updated_at="2024-01-01T00:00:00.000000+00:00",
            user=PublicUser(**make_user_data()),
        )
        assert not entry.is_retweet
        assert isinstance(entry, PostWithUser)


class TestUserProfileUpdate:

    def test_empty(self):
        update = UserProfileUpdate()
        assert update.is_empty()
        assert update.changes() == {}

    def test_only_set_fields(self):
        update = UserProfileUpdate(name="Alice")
        assert update.changes() == {"name": "Alice"}

    def test_none_means_unchanged(self):
        update = UserProfileUpdate(name=None, email="a@example.com")
        assert update.changes() == {"email": "a@example.com"}

    def test_strips_whitespace(self):
        assert UserProfileUpdate(name="  Alice ").name == "Alice"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            UserProfileUpdate(name="   ")

    def test_empty_image_rejected(self):
        with pytest.raises(ValidationError):
            UserProfileUpdate(image_name="")
