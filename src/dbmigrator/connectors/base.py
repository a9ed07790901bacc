"""Connector contract shared by source and target stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..exceptions import ValidationIssue
    from ..specs import Record, SourceSpec, TargetSpec


class Connector(ABC):
    """Abstract store adapter used by the migration engine.

    The engine only talks to stores through this interface. A connector
    instance is bound to a single connection for its whole lifetime;
    reconnecting requires a new instance.

    Implementations must translate store-native errors into the connector
    exceptions: ``DatabaseConnectionError`` from ``connect``, ``CountError``
    from ``count``, ``FetchError`` from ``fetch_batch``, and
    ``DuplicateKeyError`` or ``WriteError`` from ``store``.
    """

    name: str = "connector"

    def __init__(self) -> None:
        self._connected = False
        self.config: dict[str, Any] = {}

    @property
    def connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self, config: dict[str, Any]) -> None:
        """Open the connection described by config.

        Raises:
            DatabaseConnectionError: If config is malformed, the store cannot
                be reached, or this instance is already connected
        """

    @property
    @abstractmethod
    def database_name(self) -> str:
        """Name of the connected database."""

    @abstractmethod
    def validate_source_spec(self, source: SourceSpec) -> list[ValidationIssue]:
        """Check the store-specific parts of a source spec."""

    @abstractmethod
    def validate_target_spec(self, target: TargetSpec) -> list[ValidationIssue]:
        """Check the store-specific parts of a target spec."""

    @abstractmethod
    async def count(self, source: SourceSpec) -> int:
        """Count all records matching the source, ignoring pagination."""

    @abstractmethod
    async def fetch_batch(self, source: SourceSpec, skip: int, limit: int) -> list[Record]:
        """Fetch up to limit records after skipping skip records.

        An empty list signals the end of the matching records.
        """

    @abstractmethod
    async def store(self, target: TargetSpec, record: Record) -> None:
        """Insert one record into the target."""

    async def close(self) -> None:
        """Release the connection."""
        self._connected = False

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"{type(self).__name__}({state})"
