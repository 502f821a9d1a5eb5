"""Scoped read link to the legacy store."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

import psycopg
from psycopg.rows import dict_row

from room_migrator.constants import LEGACY_EVENTS_INDEX_NAME
from room_migrator.core.config import LegacyDatabaseConfig
from room_migrator.exceptions import LegacyConnectionError, LegacyReadError
from room_migrator.utils.logging import log_with_context


class LegacyLinkManager:
    """Owns the single read-only session to the legacy store for one job.

    The session runs inside one REPEATABLE READ, read-only transaction so
    every migrator sees the same snapshot. Use as a context manager: the
    connection is closed on every exit path, including when the target
    transaction is rolled back.
    """

    def __init__(
        self,
        settings: LegacyDatabaseConfig,
        connect: Callable[..., Any] = psycopg.connect,
    ) -> None:
        self.settings = settings
        self._connect = connect
        self._conn: psycopg.Connection | None = None

    @property
    def connection(self) -> psycopg.Connection:
        if self._conn is None:
            raise RuntimeError("Legacy link is not open; call acquire() first")
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def acquire(self) -> psycopg.Connection:
        """Open the legacy session. Calling it twice returns the same session."""
        if self._conn is not None:
            return self._conn

        log_with_context(
            logging.INFO,
            f"Opening legacy link to {self.settings.describe()}",
            entity="legacy_link",
        )
        try:
            conn = self._connect(
                **self.settings.connection_kwargs(), row_factory=dict_row
            )
        except psycopg.Error as e:
            raise LegacyConnectionError(
                f"Cannot connect to legacy store {self.settings.describe()}: {e}"
            ) from e

        # Must be set before the first statement opens the transaction
        conn.isolation_level = psycopg.IsolationLevel.REPEATABLE_READ
        conn.read_only = True
        self._conn = conn
        return conn

    def release(self) -> None:
        """Close the legacy session. Safe to call when nothing is open."""
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.close()
        except psycopg.Error as e:
            log_with_context(
                logging.WARNING,
                f"Error while closing legacy link: {e}",
                entity="legacy_link",
            )
        else:
            log_with_context(logging.INFO, "Legacy link closed", entity="legacy_link")

    def cursor(self, name: str | None = None) -> Any:
        """Cursor on the legacy session; a named cursor streams server-side."""
        if name:
            return self.connection.cursor(name=name)
        return self.connection.cursor()

    def fetch_batches(
        self,
        query: str,
        params: dict[str, Any] | None = None,
        batch_size: int = 1000,
        name: str | None = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """Run ``query`` on the legacy session and yield rows in batches."""
        try:
            with self.cursor(name) as cur:
                cur.execute(query, params)
                while True:
                    rows = cur.fetchmany(batch_size)
                    if not rows:
                        break
                    yield rows
        except psycopg.Error as e:
            raise LegacyReadError(f"Legacy query failed: {e}") from e

    def __enter__(self) -> LegacyLinkManager:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


LEGACY_EVENTS_INDEX_SQL = (
    f"create index if not exists {LEGACY_EVENTS_INDEX_NAME} "
    "on events (created_at) where deleted_at is null"
)


def ensure_created_at_index(
    settings: LegacyDatabaseConfig, connect: Callable[..., Any] = psycopg.connect
) -> None:
    """Create the partial ``events.created_at`` index that the watermark query uses.

    This is the only write this tool ever makes to the legacy store, and it
    runs on its own connection outside any migration.
    """
    try:
        with connect(**settings.connection_kwargs(), autocommit=True) as conn:
            conn.execute(LEGACY_EVENTS_INDEX_SQL)
    except psycopg.Error as e:
        raise LegacyConnectionError(
            f"Failed to create {LEGACY_EVENTS_INDEX_NAME} on {settings.describe()}: {e}"
        ) from e
    log_with_context(
        logging.INFO,
        f"Index {LEGACY_EVENTS_INDEX_NAME} is present on legacy events",
        entity="legacy_link",
    )
