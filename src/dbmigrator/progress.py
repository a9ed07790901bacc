"""Migration statistics, separate from migration logic.
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass
from typing import Any


@dataclass
class MigrationStatistics:
    """Counters for one named migration.

    ``total`` is the advisory count reported by the source. ``fetched``
    counts records read from the source; each of them ends up either
    ``migrated`` (stored in the target) or ``ignored`` (rejected as a
    duplicate while duplicates are tolerated). Within a migration the
    counters never decrease and ``fetched >= migrated + ignored`` holds.
    """

    migration: str = ""
    total: int = 0
    fetched: int = 0
    migrated: int = 0
    ignored: int = 0
    start_time: float | None = None
    end_time: float | None = None

    def start(self) -> MigrationStatistics:
        """Mark migration as started.

        Returns:
            Self for chaining
        """
        self.start_time = time.time()
        return self

    def finish(self) -> MigrationStatistics:
        """Mark migration as finished.

        Returns:
            Self for chaining
        """
        self.end_time = time.time()
        return self

    def reset(self, migration: str | None = None) -> MigrationStatistics:
        """Zero every counter, optionally for a new migration name."""
        if migration is not None:
            self.migration = migration
        self.total = self.fetched = self.migrated = self.ignored = 0
        self.start_time = self.end_time = None
        return self

    def record_fetched(self, count: int) -> MigrationStatistics:
        self.fetched += count
        return self

    def record_migrated(self) -> MigrationStatistics:
        self.migrated += 1
        return self

    def record_ignored(self) -> MigrationStatistics:
        self.ignored += 1
        return self

    @property
    def accounted(self) -> int:
        """Records that reached a final state (migrated or ignored)."""
        return self.migrated + self.ignored

    @property
    def is_batch_complete(self) -> bool:
        """True when every fetched record has been migrated or ignored."""
        return self.fetched == self.accounted

    @property
    def duration(self) -> float:
        """Get migration duration in seconds.

        Returns:
            Duration in seconds, or 0 if not started
        """
        if self.start_time is None:
            return 0.0

        end = self.end_time if self.end_time else time.time()
        return end - self.start_time

    @property
    def percent(self) -> float:
        """Get completion percentage against the advisory total.

        Returns:
            Percentage complete (0-100)
        """
        if self.total == 0:
            return 0.0
        return min(self.accounted / self.total * 100, 100.0)

    def snapshot(self) -> MigrationStatistics:
        """Get an independent copy for observers."""
        return copy.copy(self)

    def get_summary(self) -> str:
        """Get a human-readable summary of the statistics.

        Returns:
            Summary string
        """
        lines = [
            f"Migration {self.migration}: {self.percent:.1f}% complete",
            f"Fetched {self.fetched} and Migrated {self.migrated} of {self.total}",
        ]
        if self.ignored:
            lines.append(f"Ignored duplicates: {self.ignored}")
        if self.duration > 0:
            rate = self.accounted / self.duration
            lines.append(f"Duration: {self.duration:.2f}s | Rate: {rate:.1f} records/s")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert statistics to dictionary for serialization.

        Returns:
            Dictionary representation
        """
        return {
            "migration": self.migration,
            "total": self.total,
            "fetched": self.fetched,
            "migrated": self.migrated,
            "ignored": self.ignored,
            "percent": self.percent,
            "duration": self.duration,
        }

    def __str__(self) -> str:
        return self.get_summary()
