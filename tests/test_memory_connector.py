"""Tests for the in-memory connector."""

import pytest

from dbmigrator.connectors import MemoryConnector
from dbmigrator.exceptions import DatabaseConnectionError, DuplicateKeyError, WriteError
from dbmigrator.specs import SourceSpec, TargetSpec


@pytest.fixture
def people():
    return [
        {"_id": 1, "name": "Ada", "team": "red"},
        {"_id": 2, "name": "Grace", "team": "blue"},
        {"_id": 3, "name": "Linus", "team": "red"},
    ]


class TestMemoryConnector:
    """Test the memory connector against the connector contract."""

    @pytest.mark.asyncio
    async def test_connect(self):
        connector = MemoryConnector()
        assert not connector.connected

        await connector.connect({"database": "db_01"})

        assert connector.connected
        assert connector.database_name == "db_01"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("config", [{}, {"database": ""}, None, {"database": "x", "collections": "people"}])
    async def test_connect_invalid_config(self, config):
        with pytest.raises(DatabaseConnectionError):
            await MemoryConnector().connect(config)

    @pytest.mark.asyncio
    async def test_connect_twice(self):
        connector = MemoryConnector()
        await connector.connect({"database": "db"})
        with pytest.raises(DatabaseConnectionError):
            await connector.connect({"database": "other"})

    @pytest.mark.asyncio
    async def test_count_and_fetch(self, people):
        connector = MemoryConnector()
        await connector.connect({"database": "db", "collections": {"people": people}})
        source = SourceSpec({"collection": "people"})

        assert await connector.count(source) == 3
        assert await connector.fetch_batch(source, 0, 2) == people[:2]
        assert await connector.fetch_batch(source, 2, 2) == people[2:]
        assert await connector.fetch_batch(source, 4, 2) == []

    @pytest.mark.asyncio
    async def test_query_filter(self, people):
        connector = MemoryConnector()
        await connector.connect({"database": "db", "collections": {"people": people}})
        source = SourceSpec({"collection": "people", "query": {"team": "red"}})

        assert await connector.count(source) == 2
        records = await connector.fetch_batch(source, 0, 10)
        assert [r["name"] for r in records] == ["Ada", "Linus"]

    @pytest.mark.asyncio
    async def test_fetch_returns_copies(self, people):
        connector = MemoryConnector()
        await connector.connect({"database": "db", "collections": {"people": people}})
        source = SourceSpec({"collection": "people"})

        records = await connector.fetch_batch(source, 0, 1)
        records[0]["name"] = "changed"

        assert (await connector.fetch_batch(source, 0, 1))[0]["name"] == "Ada"
        assert people[0]["name"] == "Ada"

    @pytest.mark.asyncio
    async def test_store_and_duplicates(self):
        connector = MemoryConnector()
        await connector.connect({"database": "db"})
        target = TargetSpec({"collection": "copy"})

        await connector.store(target, {"_id": 1, "name": "Ada"})
        await connector.store(target, {"name": "no id"})
        with pytest.raises(DuplicateKeyError) as exc_info:
            await connector.store(target, {"_id": 1, "name": "Other"})

        assert isinstance(exc_info.value, WriteError)
        assert exc_info.value.collection == "copy"
        assert connector.collection("copy") == [{"_id": 1, "name": "Ada"}, {"name": "no id"}]

    @pytest.mark.asyncio
    async def test_custom_unique_key(self):
        connector = MemoryConnector()
        await connector.connect({"database": "db", "unique_key": "email"})
        target = TargetSpec({"collection": "users"})

        await connector.store(target, {"_id": 1, "email": "a@example.com"})
        await connector.store(target, {"_id": 1, "email": "b@example.com"})
        with pytest.raises(DuplicateKeyError):
            await connector.store(target, {"_id": 2, "email": "a@example.com"})

    def test_validate_specs(self):
        connector = MemoryConnector()

        assert connector.validate_source_spec(SourceSpec({"collection": "people"})) == []
        source_issues = connector.validate_source_spec(SourceSpec({"query": "name = 1"}))
        assert [i.code for i in source_issues] == ["INVALID_FROM_COLLECTION", "INVALID_FROM_QUERY"]

        aggregate_issues = connector.validate_source_spec(
            SourceSpec({"collection": "people", "aggregate": [{"$match": {"team": "red"}}]})
        )
        assert [i.code for i in aggregate_issues] == ["INVALID_FROM_AGGREGATE"]

        assert connector.validate_target_spec(TargetSpec({"collection": "copy"})) == []
        target_issues = connector.validate_target_spec(TargetSpec({"table": "copy"}))
        assert [i.code for i in target_issues] == ["INVALID_TO_COLLECTION"]

    @pytest.mark.asyncio
    async def test_close(self):
        connector = MemoryConnector()
        await connector.connect({"database": "db"})
        await connector.close()
        assert not connector.connected
