"""
Tests for the in-memory document store and shared write resolution
"""
import pytest

from application.repositories.document_store import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
)
from core.exceptions import DuplicateResourceException, ResourceNotFoundException
from infrastructure.persistence.document_store.base import decode_document, encode_document


class TestBasicOperations:
    """Single-document reads and writes"""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("projects", "nope") is None

    @pytest.mark.asyncio
    async def test_create_then_get(self, store):
        await store.create("projects", "p1", {"projectTitle": "A"})
        snapshot = await store.get("projects", "p1")
        assert snapshot.id == "p1"
        assert snapshot.get("projectTitle") == "A"
        assert snapshot.to_dict() == {"id": "p1", "projectTitle": "A"}

    @pytest.mark.asyncio
    async def test_create_existing_fails(self, store):
        await store.create("projects", "p1", {"a": 1})
        with pytest.raises(DuplicateResourceException):
            await store.create("projects", "p1", {"a": 2})
        assert (await store.get("projects", "p1")).get("a") == 1

    @pytest.mark.asyncio
    async def test_update_missing_fails(self, store):
        with pytest.raises(ResourceNotFoundException):
            await store.update("projects", "p1", {"a": 1})

    @pytest.mark.asyncio
    async def test_set_without_merge_replaces(self, store):
        await store.create("users", "u1", {"a": 1, "b": 2})
        await store.set("users", "u1", {"c": 3})
        assert (await store.get("users", "u1")).data == {"c": 3}

    @pytest.mark.asyncio
    async def test_set_with_merge_keeps_other_fields(self, store):
        await store.create("users", "u1", {"a": 1, "b": 2})
        await store.set("users", "u1", {"b": 5}, merge=True)
        assert (await store.get("users", "u1")).data == {"a": 1, "b": 5}

    @pytest.mark.asyncio
    async def test_delete_absent_is_noop(self, store):
        await store.delete("projects", "ghost")
        assert await store.get("projects", "ghost") is None

    @pytest.mark.asyncio
    async def test_reads_are_copies(self, store):
        await store.create("users", "u1", {"skills": ["go"]})
        snapshot = await store.get("users", "u1")
        snapshot.data["skills"].append("rust")
        assert (await store.get("users", "u1")).get("skills") == ["go"]

    def test_new_id_is_random_hex(self, store):
        first, second = store.new_id(), store.new_id()
        assert first != second
        assert len(first) == 32
        int(first, 16)


class TestQuery:
    """Equality filters"""

    @pytest.mark.asyncio
    async def test_filters_are_anded(self, store):
        await store.create("applications", "a1", {"projectId": "p1", "applicantId": "u1"})
        await store.create("applications", "a2", {"projectId": "p1", "applicantId": "u2"})
        await store.create("applications", "a3", {"projectId": "p2", "applicantId": "u1"})

        results = await store.query("applications", {"projectId": "p1", "applicantId": "u1"})
        assert [s.id for s in results] == ["a1"]

    @pytest.mark.asyncio
    async def test_no_filters_returns_collection(self, store):
        await store.create("projects", "p1", {})
        await store.create("projects", "p2", {})
        await store.create("users", "u1", {})
        assert sorted(s.id for s in await store.query("projects")) == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_missing_field_never_matches(self, store):
        await store.create("projects", "p1", {"status": None})
        await store.create("projects", "p2", {})
        results = await store.query("projects", {"status": None})
        assert [s.id for s in results] == ["p1"]

    @pytest.mark.asyncio
    async def test_sub_collections_are_separate(self, store):
        await store.create("users", "u1", {})
        await store.create("users/u1/applications", "a1", {"projectId": "p1"})
        assert [s.id for s in await store.query("users")] == ["u1"]
        assert [s.id for s in await store.query("users/u1/applications")] == ["a1"]


class TestTransforms:
    """Write-value transforms"""

    @pytest.mark.asyncio
    async def test_server_timestamp_uses_store_clock(self, store, clock):
        await store.create("projects", "p1", {"createdAt": SERVER_TIMESTAMP})
        assert (await store.get("projects", "p1")).get("createdAt") == clock.current

    @pytest.mark.asyncio
    async def test_array_union_skips_present_values(self, store):
        await store.create("users", "u1", {"wishlist": ["p1"]})
        await store.update("users", "u1", {"wishlist": ArrayUnion("p1", "p2")})
        assert (await store.get("users", "u1")).get("wishlist") == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_array_union_on_missing_field(self, store):
        await store.set("users", "u1", {"wishlist": ArrayUnion("p1")}, merge=True)
        assert (await store.get("users", "u1")).get("wishlist") == ["p1"]

    @pytest.mark.asyncio
    async def test_array_remove_removes_every_occurrence(self, store):
        await store.create("users", "u1", {"wishlist": ["p1", "p2", "p1"]})
        await store.update("users", "u1", {"wishlist": ArrayRemove("p1")})
        assert (await store.get("users", "u1")).get("wishlist") == ["p2"]

    @pytest.mark.asyncio
    async def test_delete_field(self, store):
        await store.create("projects", "p1", {"a": 1, "b": 2})
        await store.update("projects", "p1", {"b": DELETE_FIELD})
        assert (await store.get("projects", "p1")).data == {"a": 1}


class TestBatches:
    """All-or-nothing commits"""

    @pytest.mark.asyncio
    async def test_batch_applies_every_write(self, store):
        batch = store.batch()
        batch.create("projects", "p1", {"a": 1})
        batch.set("users", "u1", {"wishlist": ArrayUnion("p1")}, merge=True)
        await batch.commit()

        assert await store.get("projects", "p1") is not None
        assert (await store.get("users", "u1")).get("wishlist") == ["p1"]

    @pytest.mark.asyncio
    async def test_failed_batch_applies_nothing(self, store):
        await store.create("projects", "p1", {"a": 1})

        batch = store.batch()
        batch.set("users", "u1", {"name": "x"})
        batch.create("projects", "p1", {"a": 2})
        with pytest.raises(DuplicateResourceException):
            await batch.commit()

        assert await store.get("users", "u1") is None
        assert (await store.get("projects", "p1")).get("a") == 1

    @pytest.mark.asyncio
    async def test_empty_batch_commits_without_revision(self, store):
        await store.batch().commit()
        assert store.revision == 0

    @pytest.mark.asyncio
    async def test_batch_commits_once(self, store):
        batch = store.batch().set("users", "u1", {})
        await batch.commit()
        with pytest.raises(RuntimeError):
            await batch.commit()

    @pytest.mark.asyncio
    async def test_later_ops_see_earlier_ops(self, store):
        batch = store.batch()
        batch.create("projects", "p1", {"a": 1})
        batch.update("projects", "p1", {"b": 2})
        await batch.commit()
        assert (await store.get("projects", "p1")).data == {"a": 1, "b": 2}


class TestListeners:
    """Commit notifications"""

    @pytest.mark.asyncio
    async def test_listener_receives_keys_and_revision(self, store):
        events = []
        store.add_listener(events.append)

        batch = store.batch()
        batch.create("projects", "p1", {})
        batch.set("users", "u1", {})
        await batch.commit()
        await store.delete("projects", "p1")

        assert [e.revision for e in events] == [1, 2]
        assert events[0].keys == frozenset({("projects", "p1"), ("users", "u1")})
        assert events[0].collections == frozenset({"projects", "users"})

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_fail_commit(self, store):
        def broken(event):
            raise RuntimeError("boom")

        store.add_listener(broken)
        await store.create("projects", "p1", {})
        assert await store.get("projects", "p1") is not None

    @pytest.mark.asyncio
    async def test_removed_listener_is_not_called(self, store):
        events = []
        store.add_listener(events.append)
        store.remove_listener(events.append)
        await store.create("projects", "p1", {})
        assert events == []


class TestCodec:
    """Tagged JSON used by the SQL backend"""

    def test_datetimes_round_trip(self, clock):
        moment = clock()
        document = {"createdAt": moment, "nested": {"at": moment}, "list": [moment]}
        assert decode_document(encode_document(document)) == document

    def test_plain_values_untouched(self):
        document = {"a": 1, "b": [1, "x"], "c": {"d": None}}
        assert decode_document(encode_document(document)) == document
