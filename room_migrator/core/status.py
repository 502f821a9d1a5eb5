"""Read-only snapshot of what has been migrated into the target store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

import psycopg
from psycopg.rows import dict_row

from room_migrator.core.config import MigrationConfig
from room_migrator.exceptions import TargetConnectionError

STATUS_QUERY = """
    select
        (select count(*) from room) as rooms,
        (select count(*) from adjustment) as adjustments,
        (select count(*) from event) as events,
        (select count(*) from event where original_occurred_at = %(pending)s)
            as pending_events,
        (select max(created_at) from event) as watermark
"""


@dataclass(frozen=True)
class TargetStatus:
    rooms: int
    adjustments: int
    events: int
    # Events whose original_occurred_at still awaits the backfill job
    pending_events: int
    watermark: datetime | None


def collect_status(
    config: MigrationConfig, connect: Callable[..., Any] = psycopg.connect
) -> TargetStatus:
    config.require_target()
    try:
        with connect(config.target_dsn, row_factory=dict_row) as conn:
            row = conn.execute(
                STATUS_QUERY, {"pending": config.pending_original_occurred_at}
            ).fetchone()
    except psycopg.Error as e:
        raise TargetConnectionError(f"Cannot read target store status: {e}") from e

    return TargetStatus(
        rooms=row["rooms"],
        adjustments=row["adjustments"],
        events=row["events"],
        pending_events=row["pending_events"],
        watermark=row["watermark"],
    )
