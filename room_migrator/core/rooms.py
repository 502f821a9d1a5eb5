"""Room migration: legacy ``rooms`` → target ``room``."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from psycopg.types.range import TimestamptzRange
from tqdm import tqdm

from room_migrator.constants import OPEN_ROOM_YEARS
from room_migrator.core.config import MigrationConfig
from room_migrator.core.legacy_link import LegacyLinkManager
from room_migrator.core.state import MigrationState
from room_migrator.exceptions import TransformError
from room_migrator.services.writer import EntityWriter
from room_migrator.types import ConflictPolicy, Interval, LegacyRoom, Room
from room_migrator.utils.logging import log_with_context

LEGACY_ROOMS_QUERY = """
    select id, created_at, opened_at, closed_at, audience, parent_id
    from rooms
    where deleted_at is null
"""

# Re-runs only refresh the interval; audience and lineage stay as first written
ROOM_WRITER = EntityWriter(
    table="room",
    columns=("id", "audience", "source_room_id", "time", "created_at"),
    policy=ConflictPolicy.UPDATE,
    conflict_target=("id",),
    update_columns=("time",),
)


def add_years(moment: datetime, years: int) -> datetime:
    """Shift ``moment`` by calendar years; Feb 29 lands on Feb 28."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def room_from_legacy(row: LegacyRoom, open_room_years: int = OPEN_ROOM_YEARS) -> Room:
    """Build a target ``Room`` from a legacy row.

    A room that was never closed gets a bounded interval of
    ``open_room_years`` starting at its open time.

    Raises:
        TransformError: If the open time is missing or the room closes
            before it opens.
    """
    opened_at = row.get("opened_at")
    if opened_at is None:
        raise TransformError("room", row.get("id"), "missing opened_at")

    closed_at = row.get("closed_at")
    end = closed_at if closed_at is not None else add_years(opened_at, open_room_years)
    if end < opened_at:
        raise TransformError(
            "room", row.get("id"), f"closed_at {end} is before opened_at {opened_at}"
        )

    return Room(
        id=row["id"],
        audience=row["audience"],
        source_room_id=row.get("parent_id"),
        time=Interval(opened_at, end),
        created_at=row["created_at"],
    )


def room_params(room: Room) -> dict[str, Any]:
    return {
        "id": room.id,
        "audience": room.audience,
        "source_room_id": room.source_room_id,
        "time": TimestamptzRange(room.time.lower, room.time.upper, "[)"),
        "created_at": room.created_at,
    }


class RoomMigrator:
    """Upserts every live legacy room into the target ``room`` table."""

    entity = "room"

    def __init__(
        self,
        legacy: LegacyLinkManager,
        config: MigrationConfig,
        state: MigrationState,
        writer: EntityWriter = ROOM_WRITER,
    ) -> None:
        self.legacy = legacy
        self.config = config
        self.state = state
        self.writer = writer

    def run(self, target_cursor: Any) -> int:
        """Migrate all rooms through ``target_cursor``; returns rows written."""
        written = 0
        pbar = tqdm(
            desc="Migrating rooms", unit="room", disable=not self.config.show_progress
        )
        try:
            for batch in self.legacy.fetch_batches(
                LEGACY_ROOMS_QUERY,
                batch_size=self.config.batch_size,
                name="legacy_rooms",
            ):
                rooms = [
                    room_from_legacy(row, self.config.open_room_years) for row in batch
                ]
                count = self.writer.write(target_cursor, map(room_params, rooms))
                self.state.record("rooms_read", len(batch))
                self.state.record("rooms_written", count)
                written += count
                pbar.update(len(batch))
        finally:
            pbar.close()

        log_with_context(
            logging.INFO,
            f"Rooms upserted: {written} (read {self.state.summary['rooms_read']})",
            entity=self.entity,
            count=written,
        )
        return written
