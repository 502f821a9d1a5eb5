"""
Main migrator for the legacy room migration tool.

``TransactionCoordinator`` runs the room, adjustment and event migrators in
that order inside a single target transaction: either every write of the run
commits or none does. The legacy link is opened before any write and closed
on every exit path.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

import psycopg
from psycopg.rows import dict_row

from room_migrator.core.adjustments import AdjustmentMigrator
from room_migrator.core.config import MigrationConfig
from room_migrator.core.event_sync import EventSyncEngine
from room_migrator.core.legacy_link import LegacyLinkManager
from room_migrator.core.migration_logging import (
    log_migration_failure,
    log_migration_success,
)
from room_migrator.core.rooms import RoomMigrator
from room_migrator.core.state import MigrationState
from room_migrator.exceptions import MigratorError, TargetConnectionError, WriteError
from room_migrator.utils.logging import log_with_context


class MigrationStep(Protocol):
    entity: str

    def run(self, target_cursor: Any) -> int: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TransactionCoordinator:
    """Runs one all-or-nothing migration from the legacy store to the target."""

    def __init__(
        self,
        config: MigrationConfig,
        dry_run: bool = False,
        connect: Callable[..., Any] = psycopg.connect,
    ) -> None:
        self.config = config
        self.dry_run = dry_run
        self._connect = connect
        self.state = MigrationState(dry_run=dry_run)

    def build_steps(self, legacy: LegacyLinkManager) -> list[MigrationStep]:
        return [
            RoomMigrator(legacy, self.config, self.state),
            AdjustmentMigrator(legacy, self.config, self.state),
            EventSyncEngine(legacy, self.config, self.state),
        ]

    def open_target(self) -> psycopg.Connection:
        try:
            return self._connect(
                self.config.target_dsn, autocommit=True, row_factory=dict_row
            )
        except psycopg.Error as e:
            raise TargetConnectionError(f"Cannot connect to target store: {e}") from e

    def migrate(self) -> MigrationState:
        """Run the full migration.

        Returns:
            The run state with counters, watermark and outcome.

        Raises:
            MigratorError: On any failure; nothing from the run is committed.
        """
        self.config.require_legacy()
        self.config.require_target()

        self.state.reset_for_run()
        self.state.started_at = _now()
        prefix = "[DRY RUN] " if self.dry_run else ""
        log_with_context(logging.INFO, f"{prefix}Starting legacy room migration")

        try:
            with LegacyLinkManager(self.config.legacy, connect=self._connect) as legacy:
                self._run_in_transaction(legacy)
        except (MigratorError, KeyboardInterrupt) as e:
            self._fail(e)
            raise
        except psycopg.Error as e:
            error = WriteError(f"Target transaction failed: {e}")
            self._fail(error)
            raise error from e

        self.state.finished_at = _now()
        log_migration_success(self.state)
        return self.state

    def _run_in_transaction(self, legacy: LegacyLinkManager) -> None:
        target = self.open_target()
        try:
            with target.transaction():
                with target.cursor() as cursor:
                    for step in self.build_steps(legacy):
                        log_with_context(
                            logging.DEBUG, f"Running {step.entity} step", entity=step.entity
                        )
                        step.run(cursor)
                if self.dry_run:
                    raise psycopg.Rollback()
            self.state.committed = not self.dry_run
        finally:
            target.close()

    def _fail(self, error: BaseException) -> None:
        self.state.finished_at = _now()
        self.state.error = str(error)
        self.state.committed = False
        log_migration_failure(self.state, error)
