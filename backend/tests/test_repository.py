"""
Tests for LocalStorage and UserRepository.
"""

import asyncio
from datetime import timedelta

import pytest

from fitpath.core.exceptions import ConcurrentUpdateError, DuplicateEntryError, StorageError
from fitpath.models import User
from fitpath.models.base import utcnow


def make_user(email: str, **kwargs) -> User:
    return User(email=email, hashed_password="x", **kwargs)


class TestLocalStorage:

    @pytest.mark.asyncio
    async def test_save_load_delete(self, storage):
        await storage.save("docs/a.json", '{"a": 1}')
        assert await storage.exists("docs/a.json") is True
        assert await storage.load("docs/a.json") == b'{"a": 1}'
        assert await storage.list("docs", "*.json") == ["docs/a.json"]
        assert await storage.delete("docs/a.json") is True
        assert await storage.delete("docs/a.json") is False
        assert await storage.load("docs/a.json") is None

    @pytest.mark.asyncio
    async def test_list_missing_directory(self, storage):
        assert await storage.list("nowhere") == []

    @pytest.mark.asyncio
    async def test_path_traversal(self, storage):
        with pytest.raises(ValueError):
            await storage.load("../outside.json")


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, repository):
        user = await repository.create(make_user("Alex@Example.com"))
        assert (await repository.get_by_id(user.id)).email == "alex@example.com"
        assert (await repository.get_by_email("ALEX@example.com")).id == user.id
        assert await repository.get_by_email("nobody@example.com") is None
        assert await repository.get_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, repository):
        await repository.create(make_user("alex@example.com"))
        with pytest.raises(DuplicateEntryError):
            await repository.create(make_user("ALEX@example.com"))

    @pytest.mark.asyncio
    async def test_save_increments_version(self, repository):
        user = await repository.create(make_user("alex@example.com"))
        assert user.version == 0
        user = await repository.save(user)
        assert user.version == 1
        assert (await repository.get_by_id(user.id)).version == 1

    @pytest.mark.asyncio
    async def test_optimistic_check(self, repository):
        user = await repository.create(make_user("alex@example.com"))
        stale = user.model_copy(deep=True)
        await repository.save(user, expected_version=0)
        with pytest.raises(ConcurrentUpdateError):
            await repository.save(stale, expected_version=0)

    @pytest.mark.asyncio
    async def test_email_change_moves_index(self, repository):
        user = await repository.create(make_user("old@example.com"))
        await repository.create(make_user("taken@example.com"))

        user.email = "new@example.com"
        await repository.save(user)
        assert await repository.get_by_email("old@example.com") is None
        assert (await repository.get_by_email("new@example.com")).id == user.id

        user.email = "taken@example.com"
        with pytest.raises(DuplicateEntryError):
            await repository.save(user)

    @pytest.mark.asyncio
    async def test_delete(self, repository):
        user = await repository.create(make_user("alex@example.com"))
        assert await repository.delete(user.id) is True
        assert await repository.get_by_id(user.id) is None
        assert await repository.get_by_email("alex@example.com") is None
        assert await repository.delete(user.id) is False
        # Email is free again
        await repository.create(make_user("alex@example.com"))

    @pytest.mark.asyncio
    async def test_corrupted_document(self, repository, storage):
        await storage.save("users/broken.json", "{not json")
        with pytest.raises(StorageError):
            await repository.get_by_id("broken")

    @pytest.mark.asyncio
    async def test_purge_expired_refresh_tokens(self, repository):
        now = utcnow()
        user = make_user("alex@example.com")
        user.add_refresh_token("old", now - timedelta(days=8))
        user.add_refresh_token("fresh", now)
        await repository.create(user)

        assert await repository.purge_expired_refresh_tokens(now) == 1
        stored = await repository.get_by_id(user.id)
        assert [e.token for e in stored.refresh_tokens] == ["fresh"]

    @pytest.mark.asyncio
    async def test_find_users(self, repository):
        now = utcnow()
        for i in range(5):
            await repository.create(make_user(
                f"user{i}@example.com",
                created_at=now - timedelta(days=i),
                is_email_verified=i % 2 == 0,
            ))

        page, total = await repository.find_users(limit=2)
        assert total == 5
        assert [u.email for u in page] == ["user0@example.com", "user1@example.com"]

        page, total = await repository.find_users(sort_order="asc", page=2, limit=2)
        assert [u.email for u in page] == ["user2@example.com", "user1@example.com"]

        verified, total = await repository.find_users(verified=True, limit=10)
        assert total == 3
        assert all(u.is_email_verified for u in verified)

        found, total = await repository.find_users(search="USER3")
        assert total == 1 and found[0].email == "user3@example.com"

    @pytest.mark.asyncio
    async def test_stats(self, repository):
        await repository.create(make_user("a@example.com", is_email_verified=True))
        await repository.create(make_user("b@example.com", onboarding_step=3))
        stats = await repository.get_stats()
        assert stats["overall"]["totalUsers"] == 2
        assert stats["overall"]["verifiedUsers"] == 1
        assert stats["verification"] == {"verified": 1, "unverified": 1}
        assert stats["onboardingSteps"] == [{"step": 0, "count": 1}, {"step": 3, "count": 1}]
        assert stats["recentActivity"]["recentRegistrations"] == 2

    @pytest.mark.asyncio
    async def test_purge_uses_given_ttl(self, repository):
        now = utcnow()
        user = make_user("alex@example.com")
        user.add_refresh_token("two-days", now - timedelta(days=2))
        user.add_refresh_token("fresh", now)
        await repository.create(user)

        assert await repository.purge_expired_refresh_tokens(now, ttl=timedelta(days=1)) == 1
        stored = await repository.get_by_id(user.id)
        assert [e.token for e in stored.refresh_tokens] == ["fresh"]


class TestRepositoryConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_creates_keep_every_index_entry(self, repository):
        users = [make_user(f"user{i}@example.com") for i in range(8)]
        await asyncio.gather(*(repository.create(u) for u in users))

        for user in users:
            assert (await repository.get_by_email(user.email)).id == user.id
        assert len(await repository.list_users()) == 8

    @pytest.mark.asyncio
    async def test_concurrent_creates_with_same_email(self, repository):
        results = await asyncio.gather(
            repository.create(make_user("alex@example.com")),
            repository.create(make_user("ALEX@example.com")),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, DuplicateEntryError)]
        created = [r for r in results if isinstance(r, User)]
        assert len(errors) == 1 and len(created) == 1
        assert (await repository.get_by_email("alex@example.com")).id == created[0].id
        assert len(await repository.list_users()) == 1

    @pytest.mark.asyncio
    async def test_concurrent_versioned_saves(self, repository):
        user = await repository.create(make_user("alex@example.com"))
        first = user.model_copy(deep=True)
        first.basic_info.name = "First"
        second = user.model_copy(deep=True)
        second.basic_info.name = "Second"

        results = await asyncio.gather(
            repository.save(first, expected_version=0),
            repository.save(second, expected_version=0),
            return_exceptions=True,
        )
        assert sum(isinstance(r, ConcurrentUpdateError) for r in results) == 1
        winner = next(r for r in results if isinstance(r, User))

        stored = await repository.get_by_id(user.id)
        assert stored.version == 1
        assert stored.basic_info.name == winner.basic_info.name

    @pytest.mark.asyncio
    async def test_concurrent_email_changes_and_creates(self, repository):
        moving = [await repository.create(make_user(f"old{i}@example.com")) for i in range(4)]
        for i, user in enumerate(moving):
            user.email = f"new{i}@example.com"
        fresh = [make_user(f"fresh{i}@example.com") for i in range(4)]

        await asyncio.gather(
            *(repository.save(u) for u in moving),
            *(repository.create(u) for u in fresh),
        )

        for i, user in enumerate(moving):
            assert await repository.get_by_email(f"old{i}@example.com") is None
            assert (await repository.get_by_email(f"new{i}@example.com")).id == user.id
        for user in fresh:
            assert (await repository.get_by_email(user.email)).id == user.id
