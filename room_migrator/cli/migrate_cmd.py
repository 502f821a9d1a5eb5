"""CLI command handler for the migrate workflow."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from room_migrator.cli.common import cli, common_options, handle_exception
from room_migrator.cli.report import create_output_directory, generate_report
from room_migrator.core.config import MigrationConfig, load_config
from room_migrator.core.migrator import TransactionCoordinator
from room_migrator.utils.logging import log_with_context, setup_logger

# ---------------------------------------------------------------------------
# migrate subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.option(
    "--dry_run",
    is_flag=True,
    default=False,
    help="Run every step, then roll the target transaction back",
)
@click.option(
    "--json_logs",
    is_flag=True,
    default=False,
    help="Emit console logs as one JSON object per line",
)
def migrate(config: str, verbose: bool, dry_run: bool, json_logs: bool) -> None:
    """Copy legacy rooms, adjustments and new events into the target store.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        dry_run: Roll back instead of committing.
        json_logs: Emit JSON lines on the console.
    """
    # Create output directory early so all operations are logged to file
    output_dir = create_output_directory()
    setup_logger(verbose, output_dir, json_logs=json_logs)
    log_with_context(logging.INFO, f"Output directory: {output_dir}")

    coordinator: TransactionCoordinator | None = None
    try:
        migration_config = load_config(Path(config))
        log_startup_info(migration_config, dry_run)
        coordinator = TransactionCoordinator(migration_config, dry_run=dry_run)
        coordinator.migrate()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        _write_report(coordinator, output_dir)
        sys.exit(1)

    _write_report(coordinator, output_dir)


def log_startup_info(config: MigrationConfig, dry_run: bool) -> None:
    """Log the effective settings of this run, without credentials."""
    log_with_context(logging.INFO, "Starting legacy room migration")
    log_with_context(logging.INFO, f"Legacy store: {config.legacy.describe()}")
    log_with_context(logging.INFO, f"Batch size: {config.batch_size}")
    log_with_context(
        logging.INFO, f"Event watermark mode: {config.watermark_mode.value}"
    )
    log_with_context(logging.INFO, f"Dry run: {dry_run}")


def _write_report(
    coordinator: TransactionCoordinator | None, output_dir: str
) -> None:
    if coordinator is None:
        return
    try:
        generate_report(coordinator.state, output_dir)
    except OSError as e:
        log_with_context(
            logging.WARNING, f"Failed to write migration report: {e}"
        )
