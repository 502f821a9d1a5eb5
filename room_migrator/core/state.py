"""
Migration state container for the legacy room migration.

Mutable tracking state for a single run, separated from configuration so the
migrators only ever append counters while the coordinator owns the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from room_migrator.types import MigrationSummary


def _default_migration_summary() -> MigrationSummary:
    """Return a fresh MigrationSummary with zeroed counters."""
    return MigrationSummary(
        rooms_read=0,
        rooms_written=0,
        adjustments_read=0,
        adjustments_inserted=0,
        adjustments_skipped=0,
        events_read=0,
        events_inserted=0,
        events_dropped=0,
    )


@dataclass
class MigrationState:
    """Holds all mutable tracking state for a migration run."""

    summary: MigrationSummary = field(default_factory=_default_migration_summary)
    watermark: datetime | None = None
    dry_run: bool = False
    committed: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    def record(self, key: str, count: int) -> None:
        """Add ``count`` to a summary counter."""
        if key not in self.summary:
            raise KeyError(f"Unknown summary counter: {key}")
        if count < 0:
            raise ValueError(f"Counter increments must be non-negative, got {count}")
        self.summary[key] += count  # type: ignore[literal-required]

    def reset_for_run(self) -> None:
        """Reset per-run state at the start of a new migration run."""
        self.summary = _default_migration_summary()
        self.watermark = None
        self.committed = False
        self.started_at = None
        self.finished_at = None
        self.error = None

    @property
    def has_errors(self) -> bool:
        return self.error is not None

    @property
    def duration(self) -> float:
        """Run duration in seconds, 0.0 until the run has finished."""
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def total_written(self) -> int:
        s = self.summary
        return s["rooms_written"] + s["adjustments_inserted"] + s["events_inserted"]
