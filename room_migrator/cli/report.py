"""
Report generation for legacy room migration runs
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import Any

import click
import yaml

from room_migrator.core.state import MigrationState
from room_migrator.core.status import TargetStatus
from room_migrator.utils.logging import log_with_context


def _isoformat(value: datetime.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def build_report(state: MigrationState) -> dict[str, Any]:
    """Plain-data view of a run, suitable for YAML."""
    return {
        "migration_summary": {
            "dry_run": state.dry_run,
            "committed": state.committed,
            "started_at": _isoformat(state.started_at),
            "finished_at": _isoformat(state.finished_at),
            "duration_seconds": round(state.duration, 3),
            "event_watermark": _isoformat(state.watermark),
            "failed": state.has_errors,
            "error": state.error,
        },
        "rooms": {
            "read": state.summary["rooms_read"],
            "written": state.summary["rooms_written"],
        },
        "adjustments": {
            "read": state.summary["adjustments_read"],
            "inserted": state.summary["adjustments_inserted"],
            "skipped": state.summary["adjustments_skipped"],
        },
        "events": {
            "read": state.summary["events_read"],
            "inserted": state.summary["events_inserted"],
            "dropped": state.summary["events_dropped"],
        },
    }


def generate_report(
    state: MigrationState, output_dir: str, output_file: str = "migration_report.yaml"
) -> str:
    """Write the run report into ``output_dir`` and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    report_path = os.path.join(output_dir, output_file)
    with open(report_path, "w") as f:
        yaml.safe_dump(build_report(state), f, default_flow_style=False, sort_keys=False)

    log_with_context(logging.INFO, f"Migration report written to {report_path}")
    return report_path


def print_status(status: TargetStatus) -> None:
    """Print a target store status summary to the console."""
    click.echo("=" * 60)
    click.echo("TARGET STORE STATUS")
    click.echo("=" * 60)
    click.echo(f"Rooms:        {status.rooms}")
    click.echo(f"Adjustments:  {status.adjustments}")
    click.echo(f"Events:       {status.events}")
    watermark = _isoformat(status.watermark) or "none (event table is empty)"
    click.echo(f"Watermark:    {watermark}")
    click.echo(f"Events awaiting original_occurred_at backfill: {status.pending_events}")
    click.echo("=" * 60)


def create_output_directory(base_dir: str = "migration_logs") -> str:
    """Create a timestamped output directory for a run and return its path."""
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = os.path.join(base_dir, f"run_{timestamp}")
    os.makedirs(output_dir, exist_ok=True)
    return output_dir
