"""Bulk record migration between data stores.

This package moves records from a source store to a target store through a
declarative per-field transform:

- **Connectors**: the abstract store contract and an in-memory reference store
- **Registry**: known connectors, field operators and named value functions
- **Validation**: accumulating checks of migration specs before any I/O
- **Transform**: applies operators (or an override function) to each record
- **Engine**: sequential migrations, batch paging and concurrent writes

Example:
    ```python
    from dbmigrator import MigrationEngine

    engine = MigrationEngine()
    await engine.connect_source("memory", {"database": "db_01", "collections": data})
    await engine.connect_target("memory", {"database": "db_02"})

    migrations = [{
        "name": "students",
        "source": {"collection": "students"},
        "target": {"collection": "students_copy"},
        "transform": {"_id": {"set": "fn.uuid.v4"}},
    }]
    issues = engine.validate(migrations)
    if not issues:
        result = await engine.run_all(migrations)
    ```
"""

from .config import EngineConfig, load_migrations
from .connectors import Connector, MemoryConnector
from .engine import MigrationEngine, MigrationResult, MigrationState, RunResult
from .exceptions import (
    ConfigurationError,
    ConnectorError,
    CountError,
    DatabaseConnectionError,
    DuplicateKeyError,
    FetchError,
    InvalidConnectorError,
    MigrationCancelledError,
    MigrationError,
    MigratorError,
    NotFoundError,
    OperationError,
    RegistrationError,
    TransformError,
    ValidationIssue,
    WriteError,
)
from .functions import FunctionKind
from .operators import OperatorKind
from .progress import MigrationStatistics
from .registry import ABSENT, MigratorRegistry, Registry
from .specs import DEFAULT_BATCH_SIZE, MigrationSpec, SourceSpec, TargetSpec, TransformSpec
from .transform import TransformPipeline
from .validation import ValidationService

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Engine
    "MigrationEngine",
    "MigrationResult",
    "MigrationState",
    "RunResult",
    "EngineConfig",
    "load_migrations",
    # Specs
    "MigrationSpec",
    "SourceSpec",
    "TargetSpec",
    "TransformSpec",
    "DEFAULT_BATCH_SIZE",
    # Components
    "Connector",
    "MemoryConnector",
    "Registry",
    "MigratorRegistry",
    "ABSENT",
    "OperatorKind",
    "FunctionKind",
    "TransformPipeline",
    "ValidationService",
    "MigrationStatistics",
    # Errors
    "MigratorError",
    "ConfigurationError",
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
]
