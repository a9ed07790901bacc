"""Migration engine: pagination, fan-out writes and run results.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TYPE_CHECKING

from .config import EngineConfig
from .exceptions import (
    ConnectorError,
    CountError,
    DuplicateKeyError,
    FetchError,
    InvalidConnectorError,
    MigrationCancelledError,
    MigrationError,
    OperationError,
    WriteError,
)
from .progress import MigrationStatistics
from .registry import MigratorRegistry
from .specs import MigrationSpec, coerce_spec
from .transform import TransformPipeline
from .validation import ValidationService

if TYPE_CHECKING:
    from .connectors.base import Connector
    from .exceptions import ValidationIssue
    from .specs import Record, TargetSpec

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[MigrationStatistics], None]


class MigrationState(str, Enum):
    """Lifecycle of one named migration."""

    IDLE = "idle"
    COUNTING = "counting"
    PAGING = "paging"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class MigrationResult:
    """Outcome of one named migration."""

    name: str
    state: MigrationState = MigrationState.IDLE
    statistics: MigrationStatistics = field(default_factory=MigrationStatistics)
    batches: int = 0
    error: MigrationError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == MigrationState.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "batches": self.batches,
            "statistics": self.statistics.to_dict(),
            "error": str(self.error) if self.error else None,
        }


@dataclass
class RunResult:
    """Outcome of a run over several migrations.

    Migrations completed before a failure keep their effect; migrations after
    the failed one are not attempted and have no result.
    """

    results: list[MigrationResult] = field(default_factory=list)
    failed_migration: str | None = None
    error: MigrationError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, MigrationCancelledError)

    def raise_for_status(self) -> None:
        """Raise the error that stopped the run, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed_migration": self.failed_migration,
            "error": str(self.error) if self.error else None,
            "results": [result.to_dict() for result in self.results],
        }


class MigrationEngine:
    """Runs named migrations from a source connector to a target connector.

    Migrations run one after another in input order. Within a migration the
    source is read page by page with ``(skip, batch_size)``; every record of a
    page is transformed and all writes of the page run concurrently. A page
    is finished only when each of its writes has resolved, and the next page
    is fetched after that. An empty page ends the migration.

    Skip-based paging reads whatever the source returns at each offset: if
    other writers insert or delete source records during a run, records can
    be missed or read twice.

    Args:
        registry: Connectors, operators and functions (defaults to the built-ins)
        config: Engine options
        on_progress: Called with a statistics snapshot after every update
        source_connector: Already connected source connector
        target_connector: Already connected target connector

    Example:
        ```python
        engine = MigrationEngine(config=EngineConfig(ignore_duplicates=True))
        await engine.connect_source("memory", {"database": "db_01", "collections": data})
        await engine.connect_target("memory", {"database": "db_02"})

        issues = engine.validate(specs)
        if not issues:
            result = await engine.run_all(specs)
        ```
    """

    def __init__(
        self,
        registry: MigratorRegistry | None = None,
        config: EngineConfig | None = None,
        on_progress: ProgressCallback | None = None,
        source_connector: Connector | None = None,
        target_connector: Connector | None = None,
    ):
        self.registry = registry or MigratorRegistry.with_defaults()
        self.config = config or EngineConfig()
        self.on_progress = on_progress
        self.pipeline = TransformPipeline(self.registry)
        self.source_connector = source_connector
        self.target_connector = target_connector
        self._statistics = MigrationStatistics()
        self._cancel_requested = False

    @property
    def source_database(self) -> str | None:
        return self.source_connector.database_name if self.source_connector else None

    @property
    def target_database(self) -> str | None:
        return self.target_connector.database_name if self.target_connector else None

    @property
    def statistics(self) -> MigrationStatistics:
        """Snapshot of the statistics of the current (or last) migration."""
        return self._statistics.snapshot()

    async def connect_source(self, connector: str, config: dict[str, Any]) -> Connector:
        """Create the named connector and connect it as the source."""
        self.source_connector = await self._connect(connector, config)
        return self.source_connector

    async def connect_target(self, connector: str, config: dict[str, Any]) -> Connector:
        """Create the named connector and connect it as the target."""
        self.target_connector = await self._connect(connector, config)
        return self.target_connector

    async def _connect(self, connector: str, config: dict[str, Any]) -> Connector:
        if not self.registry.has_connector(connector):
            raise InvalidConnectorError(connector, self.registry.connectors.list_keys())
        instance = self.registry.get_connector(connector)()
        await instance.connect(config)
        return instance

    async def close(self) -> None:
        """Close the source and target connectors."""
        for connector in (self.source_connector, self.target_connector):
            if connector is not None:
                await connector.close()

    def validate(self, specs: Sequence[MigrationSpec | Mapping[str, Any]]) -> list[ValidationIssue]:
        """Validate specs against the registry and the connected connectors."""
        service = ValidationService(self.registry, self.source_connector, self.target_connector)
        return service.validate(specs)

    def cancel(self) -> None:
        """Request the run to stop at the next batch boundary."""
        logger.info("Cancellation requested")
        self._cancel_requested = True

    def run(self, specs: Sequence[MigrationSpec | Mapping[str, Any]]) -> RunResult:
        """Synchronous wrapper around run_all."""
        return asyncio.run(self.run_all(specs))

    async def run_all(self, specs: Sequence[MigrationSpec | Mapping[str, Any]]) -> RunResult:
        """Run migrations sequentially, stopping at the first failure.

        Args:
            specs: Migration specs (or mappings) in execution order

        Returns:
            RunResult describing completed migrations and any failure
        """
        run = RunResult()
        count = len(specs)
        logger.info(
            f"Database :: {self.source_database} => {self.target_database} :: "
            f"Starting Migration ({count} migrations)"
        )

        try:
            for index, value in enumerate(specs, start=1):
                try:
                    spec = coerce_spec(value, index - 1)
                except TypeError as e:
                    result = self._failed_result(f"migration_{index}", e)
                else:
                    logger.info(
                        f"[ {index} / {count} ] :: {spec.name} :: {spec.describe()} :: Started"
                    )
                    result = await self._run(spec)
                run.results.append(result)

                if result.error is not None:
                    run.failed_migration = result.name
                    run.error = result.error
                    logger.error(f"[ {index} / {count} ] :: {result.name} :: {result.error}")
                    break
                logger.info(f"[ {index} / {count} ] :: {result.name} :: Completed")
        finally:
            self._cancel_requested = False

        if run.success:
            logger.info(
                f"Database :: {self.source_database} => {self.target_database} :: "
                "Migration Completed!"
            )
        return run

    async def run_one(self, spec: MigrationSpec | Mapping[str, Any]) -> MigrationResult:
        """Run a single migration.

        Raises:
            MigrationError: If the migration fails or is cancelled; the
                original error is chained as ``__cause__``
        """
        result = await self._run(coerce_spec(spec))
        if result.error is not None:
            raise result.error
        return result

    async def _run(self, spec: MigrationSpec) -> MigrationResult:
        result = MigrationResult(name=spec.name)
        self._statistics.reset(spec.name).start()
        try:
            await self._migrate(spec, result)
        except MigrationError as e:
            result.state = (
                MigrationState.CANCELLED
                if isinstance(e, MigrationCancelledError)
                else MigrationState.FAILED
            )
            result.error = e
        except Exception as e:
            result.state = MigrationState.FAILED
            result.error = _wrap_error(spec.name, e)
        finally:
            self._statistics.finish()
            result.statistics = self._statistics.snapshot()
        return result

    def _failed_result(self, name: str, error: Exception) -> MigrationResult:
        return MigrationResult(
            name=name,
            state=MigrationState.FAILED,
            statistics=MigrationStatistics(migration=name),
            error=_wrap_error(name, error),
        )

    async def _migrate(self, spec: MigrationSpec, result: MigrationResult) -> None:
        if self.source_connector is None or self.target_connector is None:
            raise OperationError("Source and target connectors must be connected before migrating")
        if spec.source is None or spec.target is None:
            raise OperationError("Migration needs both a source and a target")

        result.state = MigrationState.COUNTING
        self._notify()

        try:
            total = await self.source_connector.count(spec.source)
        except ConnectorError:
            raise
        except Exception as e:
            raise CountError(f"Failed to count {spec.source.describe()}: {e}") from e

        self._statistics.total = total
        self._notify()
        if total == 0:
            logger.info(f"{spec.name} :: no records to migrate")
            result.state = MigrationState.COMPLETED
            return

        skip = spec.source.skip or 0
        batch_size = spec.source.batch_size or self.config.default_batch_size
        result.state = MigrationState.PAGING

        while True:
            if self._cancel_requested:
                raise MigrationCancelledError(spec.name)

            try:
                records = await self.source_connector.fetch_batch(spec.source, skip, batch_size)
            except ConnectorError:
                raise
            except Exception as e:
                raise FetchError(f"Failed to fetch {spec.source.describe()} at skip={skip}: {e}") from e

            if not records:
                break

            await self._migrate_batch(spec, records)
            result.batches += 1
            skip += batch_size

        result.state = MigrationState.COMPLETED

    async def _migrate_batch(self, spec: MigrationSpec, records: list[Record]) -> None:
        stats = self._statistics
        stats.record_fetched(len(records))
        self._notify()

        documents = self.pipeline.transform_many(records, spec.transform)

        limit = self.config.max_concurrent_writes
        semaphore = asyncio.Semaphore(limit) if limit else None
        aborted = asyncio.Event()
        tasks = [
            asyncio.ensure_future(self._store(spec.target, document, semaphore, aborted))
            for document in documents
        ]
        try:
            _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        errors = [task.exception() for task in tasks if not task.cancelled()]
        for error in errors:
            if error is not None:
                raise error

        if not stats.is_batch_complete:
            raise MigrationError(
                spec.name,
                f"batch incomplete: fetched={stats.fetched}, "
                f"migrated={stats.migrated}, ignored={stats.ignored}",
            )
        logger.debug(
            f"{spec.name} :: Fetched {stats.fetched} and Migrated {stats.migrated} of {stats.total}"
        )

    async def _store(
        self,
        target: TargetSpec,
        document: Record,
        semaphore: asyncio.Semaphore | None,
        aborted: asyncio.Event,
    ) -> None:
        async with semaphore or contextlib.nullcontext():
            # No new writes once a write of this batch has failed
            if aborted.is_set():
                return
            try:
                await self.target_connector.store(target, document)
            except DuplicateKeyError as e:
                if not self.config.ignore_duplicates:
                    aborted.set()
                    raise
                logger.debug(f"Ignoring duplicate: {e}")
                self._statistics.record_ignored()
                self._notify()
                return
            except ConnectorError:
                aborted.set()
                raise
            except Exception as e:
                aborted.set()
                raise WriteError(f"Failed to store into {target.describe()}: {e}") from e

        self._statistics.record_migrated()
        self._notify()

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self._statistics.snapshot())


def _wrap_error(migration: str, error: Exception) -> MigrationError:
    wrapped = MigrationError(migration, str(error))
    wrapped.__cause__ = error
    return wrapped
