"""
Tests for the SQLAlchemy document store on SQLite (aiosqlite)
"""
import asyncio
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from application.repositories.document_store import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, WriteOp
from application.services.application_workflow import ApplicationWorkflow
from application.services.wishlist_service import WishlistService
from core.exceptions import DuplicateResourceException, ResourceNotFoundException, StoreUnavailableException
from infrastructure.persistence.document_store import SQLAlchemyDocumentStore
from infrastructure.persistence.repositories import (
    APPLICATIONS,
    DocumentApplicationRepository,
    DocumentProjectRepository,
    DocumentUserProfileRepository,
    mirror_collection,
)

from conftest import TickingClock, make_identity, make_project


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SQLAlchemyDocumentStore.from_url(
        f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
        clock=TickingClock(),
    )
    await store.initialize()
    yield store
    await store.close()


class TestSQLAlchemyDocumentStore:
    """Same contract as the in-memory store, persisted in a documents table"""

    @pytest.mark.asyncio
    async def test_create_get_and_duplicate(self, sql_store):
        await sql_store.create("projects", "p1", {"projectTitle": "A", "createdAt": SERVER_TIMESTAMP})

        snapshot = await sql_store.get("projects", "p1")
        assert snapshot.get("projectTitle") == "A"
        assert snapshot.get("createdAt").year == 2024

        with pytest.raises(DuplicateResourceException):
            await sql_store.create("projects", "p1", {})

    @pytest.mark.asyncio
    async def test_update_missing_fails(self, sql_store):
        with pytest.raises(ResourceNotFoundException):
            await sql_store.update("projects", "ghost", {"status": "closed"})

    @pytest.mark.asyncio
    async def test_query_by_string_and_int(self, sql_store):
        await sql_store.create("applications", "a1", {"projectId": "p1", "rank": 1})
        await sql_store.create("applications", "a2", {"projectId": "p1", "rank": 2})
        await sql_store.create("applications", "a3", {"projectId": "p2", "rank": 1})

        by_project = await sql_store.query("applications", {"projectId": "p1"})
        assert sorted(s.id for s in by_project) == ["a1", "a2"]

        both = await sql_store.query("applications", {"projectId": "p1", "rank": 1})
        assert [s.id for s in both] == ["a1"]

    @pytest.mark.asyncio
    async def test_array_transforms(self, sql_store):
        await sql_store.set("users", "u1", {"wishlist": ArrayUnion("p1", "p2")}, merge=True)
        await sql_store.set("users", "u1", {"wishlist": ArrayUnion("p1")}, merge=True)
        await sql_store.set("users", "u1", {"wishlist": ArrayRemove("p2")}, merge=True)
        assert (await sql_store.get("users", "u1")).get("wishlist") == ["p1"]

    @pytest.mark.asyncio
    async def test_failed_batch_rolls_back(self, sql_store):
        await sql_store.create("projects", "p1", {"a": 1})

        batch = sql_store.batch()
        batch.set("users", "u1", {"name": "x"})
        batch.update("projects", "missing", {"a": 2})
        with pytest.raises(ResourceNotFoundException):
            await batch.commit()

        assert await sql_store.get("users", "u1") is None

    @pytest.mark.asyncio
    async def test_delete_and_revision(self, sql_store):
        events = []
        sql_store.add_listener(events.append)

        await sql_store.create("projects", "p1", {})
        await sql_store.delete("projects", "p1")
        await sql_store.delete("projects", "p1")

        assert await sql_store.get("projects", "p1") is None
        assert sql_store.revision == 3
        assert [e.revision for e in events] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_project_repository_round_trip(self, sql_store):
        repo = DocumentProjectRepository(sql_store)
        await repo.create(make_project("p1", deadline="2030-06-01"))

        project = await repo.get_by_id("p1")
        assert project.title == "Realtime chess"
        assert project.roles[0].members_required == 2
        assert project.deadline == "2030-06-01"
        assert project.created_at is not None
        assert [p.id for p in await repo.list_by_creator("owner")] == ["p1"]


class TestSQLConcurrentWrites:
    """Races run against a real database file, one connection per writer"""

    @pytest.mark.asyncio
    async def test_concurrent_array_unions_keep_every_value(self, sql_store):
        await asyncio.gather(*(
            sql_store.set("users", "u1", {"wishlist": ArrayUnion(f"p{i}")}, merge=True) for i in range(10)
        ))

        wishlist = (await sql_store.get("users", "u1")).get("wishlist")
        assert sorted(wishlist) == sorted(f"p{i}" for i in range(10))

    @pytest.mark.asyncio
    async def test_concurrent_saves_update_wishlist_and_index(self, sql_store):
        user_repo = DocumentUserProfileRepository(sql_store)
        wishlist_service = WishlistService(sql_store, user_repo, DocumentProjectRepository(sql_store))

        await asyncio.gather(*(wishlist_service.save_project("u1", f"p{i}") for i in range(10)))
        await asyncio.gather(*(wishlist_service.save_project(f"u{i}", "shared") for i in range(2, 8)))

        assert sorted((await user_repo.get_by_id("u1")).wishlist) == sorted(f"p{i}" for i in range(10))
        assert sorted(await user_repo.get_saver_ids("shared")) == sorted(f"u{i}" for i in range(2, 8))
        for i in range(10):
            assert await user_repo.get_saver_ids(f"p{i}") == ["u1"]

    @pytest.mark.asyncio
    async def test_concurrent_saves_and_removals_converge(self, sql_store):
        user_repo = DocumentUserProfileRepository(sql_store)
        wishlist_service = WishlistService(sql_store, user_repo, DocumentProjectRepository(sql_store))
        for i in range(6):
            await wishlist_service.save_project("u1", f"p{i}")

        await asyncio.gather(
            *(wishlist_service.unsave_project("u1", f"p{i}") for i in range(3)),
            *(wishlist_service.save_project("u1", f"q{i}") for i in range(3)),
        )

        assert sorted((await user_repo.get_by_id("u1")).wishlist) == ["p3", "p4", "p5", "q0", "q1", "q2"]
        assert await user_repo.get_saver_ids("p0") == []

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_applies_create_one_root(self, sql_store):
        workflow = ApplicationWorkflow(sql_store, DocumentApplicationRepository(sql_store))

        results = await asyncio.gather(*(
            workflow.apply_for_project("p1", make_identity("alice")) for _ in range(5)
        ))

        assert len({r.application_id for r in results}) == 1
        assert sum(1 for r in results if not r.already_applied) == 1
        assert len(await sql_store.query(APPLICATIONS, {"projectId": "p1"})) == 1
        assert await sql_store.get(mirror_collection("alice"), results[0].application_id) is not None

    @pytest.mark.asyncio
    async def test_insert_conflict_is_retried(self, sql_store):
        commit_once = sql_store._commit_once
        attempts = []

        async def lose_first_insert(ops, now):
            attempts.append(now)
            if len(attempts) == 1:
                # Another writer inserts the same document first
                await commit_once([WriteOp("set", "users", "u1", {"wishlist": ["p1"]})], now)
                raise IntegrityError("INSERT INTO documents", {}, Exception("UNIQUE constraint failed"))
            return await commit_once(ops, now)

        with patch.object(sql_store, "_commit_once", side_effect=lose_first_insert):
            await sql_store.set("users", "u1", {"wishlist": ArrayUnion("p2")}, merge=True)

        assert len(attempts) == 2
        assert (await sql_store.get("users", "u1")).get("wishlist") == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_lost_create_race_is_duplicate(self, sql_store):
        commit_once = sql_store._commit_once

        async def lose_first_insert(ops, now):
            if await sql_store.get("projects", "p1") is None:
                await commit_once([WriteOp("create", "projects", "p1", {"projectTitle": "first"})], now)
                raise IntegrityError("INSERT INTO documents", {}, Exception("UNIQUE constraint failed"))
            return await commit_once(ops, now)

        with patch.object(sql_store, "_commit_once", side_effect=lose_first_insert):
            with pytest.raises(DuplicateResourceException):
                await sql_store.create("projects", "p1", {"projectTitle": "second"})

        assert (await sql_store.get("projects", "p1")).get("projectTitle") == "first"

    @pytest.mark.asyncio
    async def test_persistent_conflict_is_store_error(self, sql_store):
        conflict = IntegrityError("INSERT INTO documents", {}, Exception("UNIQUE constraint failed"))

        with patch.object(sql_store, "_commit_once", side_effect=conflict) as commit_once:
            with pytest.raises(StoreUnavailableException):
                await sql_store.set("users", "u1", {"name": "x"})

        assert commit_once.await_count == 3
        assert sql_store.revision == 0
