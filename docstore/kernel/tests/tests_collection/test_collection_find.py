"""
Docstore Collection -- Find Tests

find runs scan, filter, sort, skip, limit in that order and returns copies.
"""

import pytest

from docstore.kernel.collection import Collection
from docstore.kernel.errors import InvalidQueryError
from docstore.kernel.storage import MemoryStorage
from docstore.kernel.types import FindOptions


@pytest.fixture
async def people():
    coll = Collection("people", MemoryStorage())
    await coll.insert_many(
        [
            {"_id": "a", "name": "Alice", "age": 25, "city": "Lyon"},
            {"_id": "b", "name": "Bob", "age": 30, "city": "Paris"},
            {"_id": "c", "name": "Carol", "age": 35, "city": "Lyon"},
            {"_id": "d", "name": "Dave", "age": 28, "city": "Nice"},
        ]
    )
    return coll


@pytest.fixture
async def products():
    coll = Collection("products", MemoryStorage())
    for name, price in [("Laptop", 1200), ("Phone", 800), ("Headphones", 150), ("Keyboard", 300)]:
        await coll.insert({"name": name, "price": price})
    return coll


class TestFind:
    @pytest.mark.asyncio
    async def test_no_query_returns_everything(self, people):
        assert len(await people.find()) == 4
        assert len(await people.find({})) == 4

    @pytest.mark.asyncio
    async def test_filter(self, people):
        result = await people.find({"city": "Lyon"})
        assert [d["_id"] for d in result] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_price_scenario(self, products):
        result = await products.find({"price": {"$gt": 500}})
        assert sorted(d["price"] for d in result) == [800, 1200]

    @pytest.mark.asyncio
    async def test_sort_then_limit(self, people):
        result = await people.find(None, {"sort": {"age": -1}, "limit": 2})
        assert [d["age"] for d in result] == [35, 30]

    @pytest.mark.asyncio
    async def test_sort_then_skip_then_limit(self, people):
        result = await people.find({}, FindOptions(sort=[("age", 1)], skip=1, limit=2))
        assert [d["age"] for d in result] == [28, 30]

    @pytest.mark.asyncio
    async def test_filter_before_sort(self, people):
        result = await people.find({"city": "Lyon"}, {"sort": {"age": "desc"}})
        assert [d["name"] for d in result] == ["Carol", "Alice"]

    @pytest.mark.asyncio
    async def test_results_are_copies(self, people):
        result = await people.find({"_id": "a"})
        result[0]["name"] = "Changed"
        assert (await people.find_by_id("a"))["name"] == "Alice"

    @pytest.mark.asyncio
    async def test_bad_options(self, people):
        with pytest.raises(InvalidQueryError):
            await people.find({}, {"limit": -1})

    @pytest.mark.asyncio
    async def test_bad_query(self, people):
        with pytest.raises(InvalidQueryError):
            await people.find({"age": {"$near": 3}})

    @pytest.mark.asyncio
    async def test_unknown_collection_is_empty(self):
        coll = Collection("ghost", MemoryStorage())
        assert await coll.find() == []


class TestFindOne:
    @pytest.mark.asyncio
    async def test_first_match_in_store_order(self, people):
        doc = await people.find_one({"city": "Lyon"})
        assert doc["_id"] == "a"

    @pytest.mark.asyncio
    async def test_no_match(self, people):
        assert await people.find_one({"city": "Berlin"}) is None


class TestFindById:
    @pytest.mark.asyncio
    async def test_found(self, people):
        assert (await people.find_by_id("b"))["name"] == "Bob"

    @pytest.mark.asyncio
    async def test_not_found(self, people):
        assert await people.find_by_id("zzz") is None


class TestCountAndGetAll:
    @pytest.mark.asyncio
    async def test_count(self, people):
        assert await people.count() == 4
        assert await people.count({"age": {"$gte": 30}}) == 2

    @pytest.mark.asyncio
    async def test_get_all_store_order(self, people):
        assert [d["_id"] for d in await people.get_all()] == ["a", "b", "c", "d"]
