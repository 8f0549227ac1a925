"""
Tests for saving projects and the saver index
"""
import asyncio

import pytest

from core.exceptions import MissingRequiredFieldException
from infrastructure.persistence.repositories import PROJECT_SAVERS, USERS

from conftest import make_identity, make_project


class TestSaveAndUnsave:

    @pytest.mark.asyncio
    async def test_save_creates_missing_user_document(self, wishlist_service, store):
        await wishlist_service.save_project("alice", "p1")

        assert (await store.get(USERS, "alice")).get("wishlist") == ["p1"]
        assert (await store.get(PROJECT_SAVERS, "p1")).get("userIds") == ["alice"]

    @pytest.mark.asyncio
    async def test_save_keeps_profile_fields(self, wishlist_service, profile_service, user_repo):
        await profile_service.ensure_profile(make_identity("alice"))
        await wishlist_service.save_project("alice", "p1")

        profile = await user_repo.get_by_id("alice")
        assert profile.name == "User alice"
        assert profile.wishlist == ["p1"]

    @pytest.mark.asyncio
    async def test_save_twice_is_one_membership(self, wishlist_service, user_repo):
        await wishlist_service.save_project("alice", "p1")
        await wishlist_service.save_project("alice", "p1")
        assert (await user_repo.get_by_id("alice")).wishlist == ["p1"]

    @pytest.mark.asyncio
    async def test_concurrent_saves_converge(self, wishlist_service, user_repo):
        await asyncio.gather(*(wishlist_service.save_project("alice", "p1") for _ in range(5)))
        assert (await user_repo.get_by_id("alice")).wishlist == ["p1"]
        assert await user_repo.get_saver_ids("p1") == ["alice"]

    @pytest.mark.asyncio
    async def test_unsave_updates_user_and_index(self, wishlist_service, user_repo):
        await wishlist_service.save_project("alice", "p1")
        await wishlist_service.save_project("bob", "p1")

        await wishlist_service.unsave_project("alice", "p1")

        assert (await user_repo.get_by_id("alice")).wishlist == []
        assert await user_repo.get_saver_ids("p1") == ["bob"]

    @pytest.mark.asyncio
    async def test_unsave_not_saved_is_noop(self, wishlist_service, user_repo):
        await wishlist_service.save_project("alice", "p2")
        await wishlist_service.unsave_project("alice", "p1")
        assert (await user_repo.get_by_id("alice")).wishlist == ["p2"]

    @pytest.mark.asyncio
    async def test_missing_ids_rejected(self, wishlist_service):
        with pytest.raises(MissingRequiredFieldException):
            await wishlist_service.save_project("", "p1")
        with pytest.raises(MissingRequiredFieldException):
            await wishlist_service.unsave_project("alice", "")


class TestToggle:

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_state(self, wishlist_service):
        assert await wishlist_service.toggle_save("alice", "p1") is True
        assert await wishlist_service.is_saved("alice", "p1") is True

        assert await wishlist_service.toggle_save("alice", "p1") is False
        assert await wishlist_service.is_saved("alice", "p1") is False

    @pytest.mark.asyncio
    async def test_known_state_skips_read(self, wishlist_service, store):
        await wishlist_service.save_project("alice", "p1")

        # Caller believes it is not saved, so toggling saves again
        assert await wishlist_service.toggle_save("alice", "p1", known_state=False) is True
        assert (await store.get(USERS, "alice")).get("wishlist") == ["p1"]

    @pytest.mark.asyncio
    async def test_is_saved_for_unknown_user(self, wishlist_service):
        assert await wishlist_service.is_saved("nobody", "p1") is False


class TestSavedProjects:

    @pytest.mark.asyncio
    async def test_resolves_in_wishlist_order_and_skips_deleted(self, wishlist_service, project_service, store):
        for project_id in ("p1", "p2", "p3"):
            await project_service.create_project(make_project(project_id))
        for project_id in ("p3", "p1", "p2"):
            await wishlist_service.save_project("alice", project_id)

        await store.delete("projects", "p1")

        saved = await wishlist_service.get_saved_projects("alice")
        assert [p.id for p in saved] == ["p3", "p2"]

    @pytest.mark.asyncio
    async def test_no_profile_means_empty(self, wishlist_service):
        assert await wishlist_service.get_saved_projects("nobody") == []

    @pytest.mark.asyncio
    async def test_requires_user(self, wishlist_service):
        with pytest.raises(MissingRequiredFieldException):
            await wishlist_service.get_saved_projects("")
