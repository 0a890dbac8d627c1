"""
User Repository Test Suite
==========================

Account CRUD, password exclusion on read paths, the per-user timeline and
the liked-posts listing.
"""

import logging

import pytest

from chirper.database.connection import DatabaseConnection
from chirper.database.models import PublicUser, User, UserProfileUpdate
from chirper.storage.user_repository import UserRepository
from chirper.utils.exceptions import ConstraintViolation, NotFoundError
from conftest import at

DEFAULT_IMAGE = "/image/users/default_user.jpg"


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create_user(self, user_repo):
        user = await user_repo.create_user("carol", "carol@example.com", "hash", created_at=at(5))

        assert isinstance(user, User)
        assert user.id is not None
        assert user.name == "carol"
        assert user.email == "carol@example.com"
        assert user.password == "hash"
        assert user.created_at == at(5)
        assert user.updated_at == at(5)

    @pytest.mark.asyncio
    async def test_default_image_assigned(self, user_repo):
        user = await user_repo.create_user("carol", "carol@example.com", "hash")
        assert user.image_name == DEFAULT_IMAGE

    @pytest.mark.asyncio
    async def test_configurable_default_image(self, db_connection):
        repo = UserRepository(db_connection, default_image_name="/image/users/other.png")

        user = await repo.create_user("carol", "carol@example.com", "hash")

        assert user.image_name == "/image/users/other.png"

    def test_constructor_does_not_load_settings(self, test_db_path, monkeypatch):
        from chirper.config import settings as settings_module

        def fail_load():
            raise AssertionError("settings loaded while building a repository")

        monkeypatch.setattr(settings_module, "_settings", None)
        monkeypatch.setattr(settings_module, "load_settings", fail_load)

        repo = UserRepository(DatabaseConnection(test_db_path))

        assert repo.default_image_name == DEFAULT_IMAGE

    @pytest.mark.asyncio
    async def test_password_stored_as_given(self, user_repo):
        await user_repo.create_user("carol", "carol@example.com", "plain-or-hash")

        user = await user_repo.get_user_by_email_with_password("carol@example.com")

        assert user.password == "plain-or-hash"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_repo, alice):
        with pytest.raises(ConstraintViolation):
            await user_repo.create_user("alice2", alice.email, "hash")


class TestUpdateAndDeleteUser:

    @pytest.mark.asyncio
    async def test_partial_update_keeps_unset_fields(self, user_repo, alice):
        updated = await user_repo.update_user_profile(alice.id, UserProfileUpdate(name="Alice"))

        assert updated.name == "Alice"
        assert updated.email == alice.email
        assert updated.image_name == alice.image_name
        assert updated.updated_at > alice.updated_at

    @pytest.mark.asyncio
    async def test_update_all_fields(self, user_repo, alice):
        update = UserProfileUpdate(
            name="Alice", email="alice@new.example.com", image_name="/image/users/a.png"
        )

        updated = await user_repo.update_user_profile(alice.id, update)

        assert updated.name == "Alice"
        assert updated.email == "alice@new.example.com"
        assert updated.image_name == "/image/users/a.png"
        assert updated.password == alice.password

    @pytest.mark.asyncio
    async def test_empty_update_only_touches_timestamp(self, user_repo, alice):
        updated = await user_repo.update_user_profile(alice.id, UserProfileUpdate())

        assert updated.name == alice.name
        assert updated.email == alice.email
        assert updated.updated_at > alice.updated_at

    @pytest.mark.asyncio
    async def test_empty_update_logged_as_touch(self, user_repo, alice, caplog):
        with caplog.at_level(logging.DEBUG, logger="chirper.user_repository"):
            await user_repo.update_user_profile(alice.id, UserProfileUpdate())
            await user_repo.update_user_profile(alice.id, UserProfileUpdate(name="Alice"))

        assert f"Touched user {alice.id}" in caplog.text
        assert f"Updated profile of user {alice.id}: ['name']" in caplog.text

    @pytest.mark.asyncio
    async def test_update_missing_user(self, user_repo):
        with pytest.raises(NotFoundError) as exc_info:
            await user_repo.update_user_profile(404, UserProfileUpdate(name="ghost"))

        assert exc_info.value.context["entity"] == "user"

    @pytest.mark.asyncio
    async def test_empty_update_on_missing_user(self, user_repo):
        with pytest.raises(NotFoundError):
            await user_repo.update_user_profile(404, UserProfileUpdate())

    @pytest.mark.asyncio
    async def test_update_to_taken_email(self, user_repo, alice, bob):
        with pytest.raises(ConstraintViolation):
            await user_repo.update_user_profile(bob.id, UserProfileUpdate(email=alice.email))

    @pytest.mark.asyncio
    async def test_delete_user(self, user_repo, alice):
        deleted = await user_repo.delete_user(alice.id)

        assert deleted.id == alice.id
        assert await user_repo.get_user(alice.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_user(self, user_repo):
        with pytest.raises(NotFoundError):
            await user_repo.delete_user(404)

    @pytest.mark.asyncio
    async def test_delete_user_cascades_to_posts(self, user_repo, post_repo, alice):
        post = await post_repo.create_post("A", alice.id)

        await user_repo.delete_user(alice.id)

        assert await post_repo.get_post(post.id) is None


class TestLookups:
    """Read paths; only the explicit auth lookup returns the password."""

    @pytest.mark.asyncio
    async def test_get_user(self, user_repo, alice):
        user = await user_repo.get_user(alice.id)

        assert type(user) is PublicUser
        assert user.name == "alice"
        assert "password" not in user.model_dump()

    @pytest.mark.asyncio
    async def test_get_user_not_found(self, user_repo):
        assert await user_repo.get_user(404) is None

    @pytest.mark.asyncio
    async def test_get_user_by_email(self, user_repo, alice):
        user = await user_repo.get_user_by_email("alice@example.com")

        assert user.id == alice.id
        assert "password" not in user.model_dump()

    @pytest.mark.asyncio
    async def test_get_user_by_email_not_found(self, user_repo):
        assert await user_repo.get_user_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_get_user_by_email_with_password(self, user_repo, alice):
        user = await user_repo.get_user_by_email_with_password("alice@example.com")

        assert isinstance(user, User)
        assert user.password == "hashed-alice"

    @pytest.mark.asyncio
    async def test_get_user_by_email_with_password_not_found(self, user_repo):
        assert await user_repo.get_user_by_email_with_password("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_get_all_users_newest_first(self, user_repo, alice, bob):
        carol = await user_repo.create_user("carol", "carol@example.com", "h", created_at=at(2))

        users = await user_repo.get_all_users()

        assert [u.id for u in users] == [carol.id, bob.id, alice.id]
        for user in users:
            assert "password" not in user.model_dump()

    @pytest.mark.asyncio
    async def test_get_all_users_empty(self, user_repo):
        assert await user_repo.get_all_users() == []


class TestUserTimeline:
    """get_user_with_posts: own posts plus own retweets."""

    @pytest.mark.asyncio
    async def test_missing_user(self, user_repo):
        assert await user_repo.get_user_with_posts(404) is None

    @pytest.mark.asyncio
    async def test_user_without_posts(self, user_repo, alice):
        user = await user_repo.get_user_with_posts(alice.id)

        assert user.id == alice.id
        assert user.posts == []
        assert "password" not in user.model_dump()

    @pytest.mark.asyncio
    async def test_scoped_to_own_posts_and_own_retweets(
        self, user_repo, post_repo, engagement_repo, alice, bob
    ):
        a1 = await post_repo.create_post("a1", alice.id, created_at=at(10))
        b1 = await post_repo.create_post("b1", bob.id, created_at=at(20))
        a2 = await post_repo.create_post("a2", alice.id, created_at=at(30))
        # bob retweets alice; alice retweets bob
        await engagement_repo.retweet_post(bob.id, a1.id, created_at=at(40))
        await engagement_repo.retweet_post(alice.id, b1.id, created_at=at(50))

        user = await user_repo.get_user_with_posts(alice.id)

        assert [(p.id, p.created_at, p.retweeted_by) for p in user.posts] == [
            (b1.id, at(50), "alice"),
            (a2.id, at(30), None),
            (a1.id, at(10), None),
        ]
        # the retweeted post keeps its own author
        assert user.posts[0].user.id == bob.id

    @pytest.mark.asyncio
    async def test_retweet_of_own_post_appears_twice(
        self, user_repo, post_repo, engagement_repo, alice
    ):
        post = await post_repo.create_post("A", alice.id, created_at=at(10))
        await engagement_repo.retweet_post(alice.id, post.id, created_at=at(20))

        user = await user_repo.get_user_with_posts(alice.id)

        assert [(p.id, p.is_retweet) for p in user.posts] == [(post.id, True), (post.id, False)]

    @pytest.mark.asyncio
    async def test_posts_never_carry_password(
        self, user_repo, post_repo, engagement_repo, alice, bob
    ):
        b1 = await post_repo.create_post("b1", bob.id)
        await post_repo.create_post("a1", alice.id)
        await engagement_repo.retweet_post(alice.id, b1.id)

        user = await user_repo.get_user_with_posts(alice.id)

        for entry in user.model_dump()["posts"]:
            assert "password" not in entry["user"]


class TestLikedPosts:
    """get_user_liked_posts: likes wrapped in post envelopes."""

    @pytest.mark.asyncio
    async def test_missing_user(self, user_repo):
        assert await user_repo.get_user_liked_posts(404) is None

    @pytest.mark.asyncio
    async def test_no_likes(self, user_repo, alice):
        user = await user_repo.get_user_liked_posts(alice.id)

        assert user.id == alice.id
        assert user.likes == []

    @pytest.mark.asyncio
    async def test_scenario_ordered_by_post_creation(
        self, user_repo, post_repo, engagement_repo, alice, bob
    ):
        post_c = await post_repo.create_post("C", bob.id, created_at=at(10))
        post_d = await post_repo.create_post("D", bob.id, created_at=at(20))
        # liked in the opposite order of creation
        await engagement_repo.like_post(alice.id, post_d.id, created_at=at(30))
        await engagement_repo.like_post(alice.id, post_c.id, created_at=at(40))

        user = await user_repo.get_user_liked_posts(alice.id)

        assert [like.post.id for like in user.likes] == [post_d.id, post_c.id]
        assert [like.post.created_at for like in user.likes] == [at(20), at(10)]
        assert user.likes[0].post.user.name == "bob"

    @pytest.mark.asyncio
    async def test_only_own_likes(self, user_repo, post_repo, engagement_repo, alice, bob):
        post = await post_repo.create_post("C", alice.id)
        await engagement_repo.like_post(bob.id, post.id)

        user = await user_repo.get_user_liked_posts(alice.id)

        assert user.likes == []

    @pytest.mark.asyncio
    async def test_retweets_are_not_mixed_in(
        self, user_repo, post_repo, engagement_repo, alice, bob
    ):
        post = await post_repo.create_post("C", bob.id, created_at=at(10))
        await engagement_repo.like_post(alice.id, post.id)
        await engagement_repo.retweet_post(alice.id, post.id, created_at=at(50))

        user = await user_repo.get_user_liked_posts(alice.id)

        assert len(user.likes) == 1
        assert user.likes[0].post.created_at == at(10)
        assert "retweeted_by" not in user.likes[0].post.model_dump()

    @pytest.mark.asyncio
    async def test_no_password_anywhere(self, user_repo, post_repo, engagement_repo, alice, bob):
        post = await post_repo.create_post("C", bob.id)
        await engagement_repo.like_post(alice.id, post.id)

        dumped = (await user_repo.get_user_liked_posts(alice.id)).model_dump()

        assert "password" not in dumped
        assert "password" not in dumped["likes"][0]["post"]["user"]
