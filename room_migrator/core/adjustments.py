"""Adjustment migration: legacy ``rooms.stream`` → target ``adjustment``."""

from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from psycopg.types.range import Int8Range
from tqdm import tqdm

from room_migrator.core.config import MigrationConfig
from room_migrator.core.legacy_link import LegacyLinkManager
from room_migrator.core.state import MigrationState
from room_migrator.exceptions import TransformError
from room_migrator.services.writer import EntityWriter
from room_migrator.types import Adjustment, ConflictPolicy, Interval, LegacyRoom
from room_migrator.utils.logging import log_with_context

LEGACY_STREAMS_QUERY = """
    select id, opened_at, closed_at, stream
    from rooms
    where deleted_at is null
    and stream != '{}'::jsonb
"""

# Adjustments are immutable once migrated
ADJUSTMENT_WRITER = EntityWriter(
    table="adjustment",
    columns=("room_id", "started_at", "segments", "offset", "created_at"),
    policy=ConflictPolicy.SKIP,
    conflict_target=("room_id",),
)


def _to_bigint(value: Any) -> int | None:
    """Round a JSON number the way a Postgres bigint cast does (half away from zero).

    Returns None for anything that is not a finite number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, int):
        return value
    if not math.isfinite(value):
        return None
    return int(Decimal(str(value)).to_integral_value(rounding=ROUND_HALF_UP))


def segments_from_fragments(room_id: Any, fragments: Any) -> list[Interval[int]]:
    """Turn ``[[a, b], ...]`` into half-open ranges ``[a, b)``, keeping order."""
    if fragments is None:
        return []
    if not isinstance(fragments, list):
        raise TransformError("adjustment", room_id, "stream.fragments is not an array")

    segments = []
    for fragment in fragments:
        bounds = (
            [_to_bigint(v) for v in fragment]
            if isinstance(fragment, list) and len(fragment) == 2
            else [None]
        )
        if None in bounds:
            raise TransformError(
                "adjustment", room_id, f"fragment {fragment!r} is not a numeric pair"
            )
        lower, upper = bounds
        if lower > upper:
            raise TransformError(
                "adjustment", room_id, f"fragment {fragment!r} ends before it starts"
            )
        segments.append(Interval(lower, upper))
    return segments


def adjustment_from_legacy(row: LegacyRoom) -> Adjustment:
    """Build an ``Adjustment`` from a legacy room with a stream descriptor.

    The legacy store does not record when playback started, so the room's
    open time stands in for it.
    """
    room_id = row.get("id")
    stream = row.get("stream")
    if not isinstance(stream, dict):
        raise TransformError("adjustment", room_id, "stream is not a JSON object")

    preroll = stream.get("preroll")
    offset = _to_bigint(preroll)
    if preroll is not None and offset is None:
        raise TransformError("adjustment", room_id, f"preroll {preroll!r} is not a number")

    return Adjustment(
        room_id=row["id"],
        started_at=row["opened_at"],
        segments=segments_from_fragments(room_id, stream.get("fragments")),
        offset=offset,
        created_at=row.get("closed_at"),
    )


def adjustment_params(adjustment: Adjustment) -> dict[str, Any]:
    return {
        "room_id": adjustment.room_id,
        "started_at": adjustment.started_at,
        "segments": [Int8Range(s.lower, s.upper, "[)") for s in adjustment.segments],
        "offset": adjustment.offset,
        "created_at": adjustment.created_at,
    }


class AdjustmentMigrator:
    """Inserts one adjustment per legacy room that has a stream descriptor."""

    entity = "adjustment"

    def __init__(
        self,
        legacy: LegacyLinkManager,
        config: MigrationConfig,
        state: MigrationState,
        writer: EntityWriter = ADJUSTMENT_WRITER,
    ) -> None:
        self.legacy = legacy
        self.config = config
        self.state = state
        self.writer = writer

    def run(self, target_cursor: Any) -> int:
        """Migrate adjustments through ``target_cursor``; returns rows inserted."""
        inserted = 0
        pbar = tqdm(
            desc="Migrating adjustments",
            unit="room",
            disable=not self.config.show_progress,
        )
        try:
            for batch in self.legacy.fetch_batches(
                LEGACY_STREAMS_QUERY,
                batch_size=self.config.batch_size,
                name="legacy_streams",
            ):
                adjustments = [adjustment_from_legacy(row) for row in batch]
                count = self.writer.write(
                    target_cursor, map(adjustment_params, adjustments)
                )
                self.state.record("adjustments_read", len(batch))
                self.state.record("adjustments_inserted", count)
                self.state.record("adjustments_skipped", len(batch) - count)
                inserted += count
                pbar.update(len(batch))
        finally:
            pbar.close()

        log_with_context(
            logging.INFO,
            f"Adjustments inserted: {inserted} "
            f"(skipped {self.state.summary['adjustments_skipped']} already migrated)",
            entity=self.entity,
            count=inserted,
        )
        return inserted
