"""Exception hierarchy and validation issues for dbmigrator.

Runtime failures are raised as exceptions. Every exception carries an optional
context dictionary with structured information about the failure:

    ```python
    from dbmigrator.exceptions import MigratorError, WriteError

    try:
        await connector.store(target, record)
    except WriteError as e:
        logger.error(f"Error: {e}")
        if e.context:
            logger.error(f"Context: {e.context}")
    ```

Problems found while validating migration specs are never raised. They are
returned as ``ValidationIssue`` values so that a caller sees every problem in
one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


class MigratorError(Exception):
    """Base exception for all dbmigrator errors.

    Attributes:
        context: Dictionary containing contextual information about the error

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context
    """

    def __init__(self, message: str, context: Dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(MigratorError):
    """Raised when configuration is invalid or missing."""

    pass


class ResourceError(MigratorError):
    """Raised when a resource (connection, pool, ...) cannot be used."""

    pass


class NotFoundError(MigratorError):
    """Raised when a requested item is not registered or does not exist."""

    pass


class OperationError(MigratorError):
    """Raised when an operation fails."""

    pass


class RegistrationError(OperationError):
    """Raised when an item cannot be registered."""

    pass


class InvalidConnectorError(NotFoundError):
    """Raised when a connector name is not registered."""

    def __init__(self, connector: str, available: list | None = None):
        self.connector = connector
        self.available = available or []
        message = f"Invalid Connector - {connector}"
        if self.available:
            message += f". Available connectors: {', '.join(self.available)}"
        super().__init__(
            message, context={"connector": connector, "available": self.available}
        )


class ConnectorError(OperationError):
    """Base class for errors raised by a connector's I/O operations."""

    pass


class DatabaseConnectionError(ConnectorError, ResourceError):
    """Raised when a connector cannot connect to its store."""

    def __init__(self, connector: str, message: str):
        self.connector = connector
        super().__init__(
            f"Failed to connect with {connector} connector: {message}",
            context={"connector": connector},
        )


class CountError(ConnectorError):
    """Raised when counting the source records fails."""

    pass


class FetchError(ConnectorError):
    """Raised when fetching a batch of source records fails."""

    pass


class WriteError(ConnectorError):
    """Raised when storing a record in the target fails."""

    pass


class DuplicateKeyError(WriteError):
    """Raised when a stored record violates a uniqueness constraint."""

    def __init__(self, key: str, value: Any, collection: str | None = None):
        self.key = key
        self.value = value
        self.collection = collection
        super().__init__(
            f"Duplicate key {key}={value!r}"
            + (f" in collection '{collection}'" if collection else ""),
            context={"key": key, "value": value, "collection": collection},
        )


class TransformError(OperationError):
    """Raised when a record cannot be transformed."""

    def __init__(self, message: str, field_name: str | None = None):
        self.field_name = field_name
        if field_name:
            message = f"Field '{field_name}': {message}"
        super().__init__(message, context={"field_name": field_name} if field_name else None)


class MigrationError(OperationError):
    """Raised when a named migration fails."""

    def __init__(self, migration: str, message: str):
        self.migration = migration
        super().__init__(
            f"Migration '{migration}' failed: {message}",
            context={"migration": migration},
        )


class MigrationCancelledError(MigrationError):
    """Raised when a migration stops because cancellation was requested."""

    def __init__(self, migration: str):
        super().__init__(migration, "cancelled")


# Validation issue codes
INVALID_CONNECTOR = "INVALID_CONNECTOR"
EMPTY_MIGRATOR = "EMPTY_MIGRATOR"
INVALID_FROM = "INVALID_FROM"
INVALID_FROM_BATCH = "INVALID_FROM_BATCH"
INVALID_FROM_SKIP = "INVALID_FROM_SKIP"
INVALID_TO = "INVALID_TO"
INVALID_PROPERTIES = "INVALID_PROPERTIES"
INVALID_PROPERTY = "INVALID_PROPERTY"
INVALID_OPERATOR = "INVALID_OPERATOR"
INVALID_FUNCTION = "INVALID_FUNCTION"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found while validating a migration spec."""

    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def invalid_connector(cls, role: str) -> ValidationIssue:
        return cls(
            INVALID_CONNECTOR,
            f"No {role} connector is connected",
            {"role": role},
        )

    @classmethod
    def empty_migrator(cls) -> ValidationIssue:
        return cls(EMPTY_MIGRATOR, "Migrators should be a non empty sequence")

    @classmethod
    def invalid_from(cls, migration: str | None = None) -> ValidationIssue:
        return cls(INVALID_FROM, "source should be a non empty mapping", {"migration": migration})

    @classmethod
    def invalid_batch(cls, value: Any, migration: str | None = None) -> ValidationIssue:
        return cls(
            INVALID_FROM_BATCH,
            f"source.batch_size should be a positive integer, got {value!r}",
            {"migration": migration, "value": value},
        )

    @classmethod
    def invalid_skip(cls, value: Any, migration: str | None = None) -> ValidationIssue:
        return cls(
            INVALID_FROM_SKIP,
            f"source.skip should be a non-negative integer, got {value!r}",
            {"migration": migration, "value": value},
        )

    @classmethod
    def invalid_to(cls, migration: str | None = None) -> ValidationIssue:
        return cls(INVALID_TO, "target should be a non empty mapping", {"migration": migration})

    @classmethod
    def invalid_properties(cls, migration: str | None = None) -> ValidationIssue:
        return cls(
            INVALID_PROPERTIES,
            "transform should be a callable or a mapping of fields to operators",
            {"migration": migration},
        )

    @classmethod
    def invalid_property(cls, field_name: str, migration: str | None = None) -> ValidationIssue:
        return cls(
            INVALID_PROPERTY,
            f"Invalid property - {field_name}",
            {"migration": migration, "field": field_name},
        )

    @classmethod
    def invalid_operator(cls, operator: str, migration: str | None = None) -> ValidationIssue:
        return cls(
            INVALID_OPERATOR,
            f"Invalid operator - {operator}",
            {"migration": migration, "operator": operator},
        )

    @classmethod
    def invalid_function(cls, function: str, migration: str | None = None) -> ValidationIssue:
        return cls(
            INVALID_FUNCTION,
            f"Invalid function - {function}",
            {"migration": migration, "function": function},
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


__all__ = [
    "MigratorError",
    "ConfigurationError",
    "ResourceError",
    "NotFoundError",
    "OperationError",
    "RegistrationError",
    "InvalidConnectorError",
    "ConnectorError",
    "DatabaseConnectionError",
    "CountError",
    "FetchError",
    "WriteError",
    "DuplicateKeyError",
    "TransformError",
    "MigrationError",
    "MigrationCancelledError",
    "ValidationIssue",
    "INVALID_CONNECTOR",
    "EMPTY_MIGRATOR",
    "INVALID_FROM",
    "INVALID_FROM_BATCH",
    "INVALID_FROM_SKIP",
    "INVALID_TO",
    "INVALID_PROPERTIES",
    "INVALID_PROPERTY",
    "INVALID_OPERATOR",
    "INVALID_FUNCTION",
]
