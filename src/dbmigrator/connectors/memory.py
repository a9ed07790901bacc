"""In-memory connector implementation."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, TYPE_CHECKING

from ..exceptions import DatabaseConnectionError, DuplicateKeyError, ValidationIssue
from .base import Connector

if TYPE_CHECKING:
    from ..specs import Record, SourceSpec, TargetSpec

logger = logging.getLogger(__name__)


class MemoryConnector(Connector):
    """In-memory store holding named collections of records.

    Configuration Options:
        database (str): Database name (required)
        collections (dict): Optional initial data, ``{name: [records]}``
        unique_key (str): Field that must be unique per collection (default: _id)

    Source specs take a ``collection`` and an optional ``query`` mapping of
    field -> value (records match when every field is equal). Aggregation
    pipelines (``aggregate``) are not supported and are reported as
    ``INVALID_FROM_AGGREGATE``. Target specs take a ``collection``.
    """

    name = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._database = ""
        self._unique_key = "_id"
        self._collections: OrderedDict[str, list[Record]] = OrderedDict()
        self._lock = asyncio.Lock()

    async def connect(self, config: dict[str, Any]) -> None:
        if self._connected:
            raise DatabaseConnectionError(self.name, "connector is already connected")
        if not isinstance(config, Mapping) or not config.get("database"):
            raise DatabaseConnectionError(self.name, "config requires a 'database' name")

        collections = config.get("collections") or {}
        if not isinstance(collections, Mapping):
            raise DatabaseConnectionError(self.name, "'collections' should be a mapping")

        self.config = dict(config)
        self._database = str(config["database"])
        self._unique_key = config.get("unique_key", "_id")
        for collection, records in collections.items():
            self._collections[collection] = [copy.deepcopy(dict(r)) for r in records]
        self._connected = True
        logger.info(f"Database :: connection successful :: {self._database}")

    @property
    def database_name(self) -> str:
        return self._database

    def validate_source_spec(self, source: SourceSpec) -> list[ValidationIssue]:
        issues = []
        if not source.get("collection"):
            issues.append(ValidationIssue(
                "INVALID_FROM_COLLECTION", "source.collection should be a valid collection name"
            ))
        if not isinstance(source.get("query", {}), Mapping):
            issues.append(ValidationIssue(
                "INVALID_FROM_QUERY", "source.query should be a valid mapping"
            ))
        if source.get("aggregate") is not None:
            issues.append(ValidationIssue(
                "INVALID_FROM_AGGREGATE", "source.aggregate is not supported by the memory connector"
            ))
        return issues

    def validate_target_spec(self, target: TargetSpec) -> list[ValidationIssue]:
        if not target.get("collection"):
            return [ValidationIssue(
                "INVALID_TO_COLLECTION", "target.collection should be a valid collection name"
            )]
        return []

    async def count(self, source: SourceSpec) -> int:
        async with self._lock:
            return len(self._matching(source))

    async def fetch_batch(self, source: SourceSpec, skip: int, limit: int) -> list[Record]:
        async with self._lock:
            matches = self._matching(source)
            return [copy.deepcopy(record) for record in matches[skip:skip + limit]]

    async def store(self, target: TargetSpec, record: Record) -> None:
        collection = target.get("collection")
        async with self._lock:
            records = self._collections.setdefault(collection, [])
            key = self._unique_key
            if key and key in record:
                if any(existing.get(key) == record[key] for existing in records):
                    raise DuplicateKeyError(key, record[key], collection)
            records.append(copy.deepcopy(record))

    def collection(self, name: str) -> list[Record]:
        """Get a copy of the records stored in a collection."""
        return [copy.deepcopy(record) for record in self._collections.get(name, [])]

    def _matching(self, source: SourceSpec) -> list[Record]:
        records = self._collections.get(source.get("collection"), [])
        query = source.get("query") or {}
        if not query:
            return list(records)
        return [
            record for record in records
            if all(field in record and record[field] == value for field, value in query.items())
        ]
