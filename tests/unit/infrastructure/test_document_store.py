"""Tests for SQLiteDocumentStore against an in-memory database."""

import pytest
import pytest_asyncio

from doccrud.domain.entities import Field, NativeIndexArgs, Query, r
from doccrud.domain.exceptions import PersistenceError
from doccrud.infrastructure.persistence import deep_merge


def test_deep_merge_descends_into_mappings():
    base = {"a": 1, "address": {"city": "Paris", "zip": "75001"}}

    merged = deep_merge(base, {"address": {"city": "Lyon"}, "b": 2})

    assert merged == {"a": 1, "b": 2, "address": {"city": "Lyon", "zip": "75001"}}
    assert base["address"]["city"] == "Paris"


class TestSchema:
    @pytest.mark.asyncio
    async def test_create_and_list_collections(self, store) -> None:
        assert await store.list_collections() == []

        await store.create_collection("User")
        await store.create_collection("Post")

        assert await store.list_collections() == ["Post", "User"]

    @pytest.mark.asyncio
    async def test_create_existing_collection_fails(self, store) -> None:
        await store.create_collection("User")

        with pytest.raises(PersistenceError):
            await store.create_collection("User")

    @pytest.mark.asyncio
    async def test_create_and_list_indexes(self, store) -> None:
        await store.create_collection("User")

        await store.create_index("User", "city", NativeIndexArgs(expression=r.row("address")("city")))
        await store.create_index("User", "email", NativeIndexArgs(options={"unique": True}))

        assert await store.list_indexes("User") == ["city", "email"]

    @pytest.mark.asyncio
    async def test_unique_index_is_enforced(self, store) -> None:
        await store.create_collection("User")
        await store.create_index("User", "email", NativeIndexArgs(options={"unique": True}))
        await store.insert("User", {"email": "a@example.com"})

        with pytest.raises(PersistenceError):
            await store.insert("User", {"email": "a@example.com"})

    @pytest.mark.asyncio
    async def test_index_names_scoped_per_collection(self, store) -> None:
        await store.create_collection("User")
        await store.create_collection("Post")

        await store.create_index("User", "title", NativeIndexArgs())
        await store.create_index("Post", "title", NativeIndexArgs())

        assert await store.list_indexes("User") == ["title"]
        assert await store.list_indexes("Post") == ["title"]


class TestReadWrite:
    @pytest_asyncio.fixture
    async def users(self, store):
        await store.create_collection("User")
        return store

    @pytest.mark.asyncio
    async def test_insert_generates_keys_in_order(self, users) -> None:
        result = await users.insert("User", [{"v": 1}, {"v": 2, "id": "own"}, {"v": 3}])

        assert result.inserted == 3
        assert len(result.generated_keys) == 2

        first = await users.run(Query("User").get(result.generated_keys[0]))
        assert first["v"] == 1
        assert (await users.run(Query("User").get("own")))["v"] == 2

    @pytest.mark.asyncio
    async def test_run_keyed_missing_returns_none(self, users) -> None:
        assert await users.run(Query("User").get("nope")) is None

    @pytest.mark.asyncio
    async def test_run_filter_order_paginate_project(self, users) -> None:
        await users.insert("User", [{"v": v, "tag": "x" if v % 2 else "y"} for v in range(1, 7)])

        query = (
            Query("User")
            .filter({"tag": "x"})
            .order_by(r.desc("v"))
            .skip(1)
            .limit(1)
            .pluck("v")
        )

        assert await users.run(query) == [{"v": 3}]

    @pytest.mark.asyncio
    async def test_run_honors_step_order(self, users) -> None:
        await users.insert("User", [{"v": 1}, {"v": 2}, {"v": 3}])

        query = Query("User").order_by("v").limit(2).filter(lambda row: row("v") > 1)

        assert [doc["v"] for doc in await users.run(query)] == [2]

    @pytest.mark.asyncio
    async def test_nested_filter(self, users) -> None:
        await users.insert(
            "User",
            [{"address": {"city": "Paris"}}, {"address": {"city": "Lyon"}}],
        )

        result = await users.run(Query("User").filter({"address": {"city": "Lyon"}}))

        assert [doc["address"]["city"] for doc in result] == ["Lyon"]

    @pytest.mark.asyncio
    async def test_update_merges_and_reports_changes(self, users) -> None:
        await users.insert("User", {"id": "u1", "first_name": "Jane", "age": 30})

        result = await users.update(Query("User").get("u1"), {"age": 31})

        assert result.replaced == 1
        assert result.changes[0].old_val["age"] == 30
        assert result.changes[0].new_val == {"id": "u1", "first_name": "Jane", "age": 31}

    @pytest.mark.asyncio
    async def test_update_without_change(self, users) -> None:
        await users.insert("User", {"id": "u1", "age": 30})

        result = await users.update(Query("User").get("u1"), {"age": 30})

        assert result.unchanged == 1
        assert result.changes == []

    @pytest.mark.asyncio
    async def test_update_missing_key_is_skipped(self, users) -> None:
        result = await users.update(Query("User").get("ghost"), {"age": 30})

        assert result.skipped == 1
        assert result.changes == []

    @pytest.mark.asyncio
    async def test_delete_with_changes(self, users) -> None:
        await users.insert("User", [{"id": "a", "v": 1}, {"id": "b", "v": 2}])

        result = await users.delete(Query("User").filter(Field(("v",)) > 1), return_changes=True)

        assert result.deleted == 1
        assert result.changes[0].old_val == {"id": "b", "v": 2}
        assert await users.run(Query("User")) == [{"id": "a", "v": 1}]

    @pytest.mark.asyncio
    async def test_insert_non_mapping_rejected(self, users) -> None:
        with pytest.raises(PersistenceError):
            await users.insert("User", [{"v": 1}, "oops"])
