"""
Migration success/failure logging for the legacy room migration tool.

Kept apart from ``migrator.py`` so the coordinator stays focused on control
flow. Both functions read only the run state.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from room_migrator.core.state import MigrationState
from room_migrator.utils.logging import log_with_context


def _collect_statistics(state: MigrationState) -> dict[str, Any]:
    """Flatten the run counters into a dict for summary and structured logs."""
    summary = state.summary
    return {
        "rooms_read": summary["rooms_read"],
        "rooms_written": summary["rooms_written"],
        "adjustments_read": summary["adjustments_read"],
        "adjustments_inserted": summary["adjustments_inserted"],
        "adjustments_skipped": summary["adjustments_skipped"],
        "events_read": summary["events_read"],
        "events_inserted": summary["events_inserted"],
        "events_dropped": summary["events_dropped"],
    }


def log_migration_success(state: MigrationState) -> None:
    """Log the final status and counters of a completed run.

    Each statistic is passed as structured context (``stat``/``count``) so it
    shows up as a field in JSON logs.
    """
    stats = _collect_statistics(state)
    duration = state.duration

    if state.dry_run:
        log_with_context(
            logging.INFO,
            "DRY RUN COMPLETED - ALL CHANGES ROLLED BACK",
            outcome="dry_run_complete",
        )
    elif stats["rooms_read"] == 0 and stats["events_read"] == 0:
        log_with_context(
            logging.WARNING,
            "MIGRATION COMPLETED BUT THE LEGACY STORE RETURNED NO ROWS",
            outcome="no_work",
        )
    else:
        log_with_context(
            logging.INFO,
            "LEGACY ROOM MIGRATION COMMITTED SUCCESSFULLY",
            outcome="success",
        )

    log_with_context(
        logging.INFO,
        f"Duration: {duration / 60:.1f} minutes ({duration:.1f} seconds)",
        duration_seconds=duration,
    )
    if state.watermark is not None:
        log_with_context(
            logging.INFO,
            f"Event watermark used: {state.watermark.isoformat()}",
            stat="watermark",
        )

    verb = "would be" if state.dry_run else "were"
    for key, label in (
        ("rooms_written", "Rooms upserted"),
        ("adjustments_inserted", "Adjustments inserted"),
        ("adjustments_skipped", "Adjustments already present"),
        ("events_inserted", "Events inserted"),
    ):
        log_with_context(
            logging.INFO,
            f"{label}: {stats[key]}" + (f" ({verb} written)" if state.dry_run else ""),
            stat=key,
            count=stats[key],
        )
    log_with_context(
        logging.INFO,
        f"Total rows written: {state.total_written}",
        stat="total_written",
        count=state.total_written,
    )

    if stats["events_dropped"]:
        log_with_context(
            logging.WARNING,
            f"Events dropped (ineligible type): {stats['events_dropped']}",
            stat="events_dropped",
            count=stats["events_dropped"],
        )

    if state.dry_run:
        log_with_context(
            logging.INFO, "Run again without --dry_run to commit the migration."
        )


def log_migration_failure(state: MigrationState, exception: BaseException) -> None:
    """Log the failure of a run and the progress that was rolled back."""
    duration = state.duration
    is_interrupt = isinstance(exception, KeyboardInterrupt)
    prefix = "DRY RUN" if state.dry_run else "LEGACY ROOM MIGRATION"

    if is_interrupt:
        log_with_context(
            logging.WARNING,
            f"{prefix} INTERRUPTED BY USER",
            outcome="interrupted",
            exception_type="KeyboardInterrupt",
        )
    else:
        log_with_context(
            logging.ERROR,
            f"{prefix} FAILED",
            outcome="failed",
            exception_type=type(exception).__name__,
            exception_message=str(exception),
        )
        log_with_context(
            logging.ERROR,
            f"Exception: {type(exception).__name__}: {exception!s}",
            duration_seconds=duration,
        )

    stats = _collect_statistics(state)
    level = logging.WARNING if is_interrupt else logging.ERROR
    log_with_context(
        level,
        "ROLLED BACK: "
        f"{stats['rooms_written']} room(s), "
        f"{stats['adjustments_inserted']} adjustment(s), "
        f"{stats['events_inserted']} event(s)",
        outcome="rolled_back",
    )

    if not is_interrupt:
        tb = traceback.format_exc()
        if tb and tb.strip() != "NoneType: None":
            log_with_context(logging.DEBUG, f"Traceback:\n{tb}")

    log_with_context(
        level,
        "Nothing from this run was committed. Fix the data or configuration and "
        "run the migration again.",
    )
