"""CLI command handler for creating the legacy events index."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from room_migrator.cli.common import cli, common_options, handle_exception
from room_migrator.constants import LEGACY_EVENTS_INDEX_NAME
from room_migrator.core.config import load_config
from room_migrator.core.legacy_link import ensure_created_at_index
from room_migrator.utils.logging import log_with_context, setup_logger


@cli.command("ensure-index")
@common_options
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    default=False,
    help="Skip the confirmation prompt",
)
def ensure_index(config: str, verbose: bool, yes: bool) -> None:
    """Create the created_at index on the legacy events table.

    This is the only command that writes to the legacy store.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        yes: Do not ask for confirmation.
    """
    setup_logger(verbose)
    try:
        migration_config = load_config(Path(config))
        migration_config.require_legacy()
        if not yes and not click.confirm(
            f"Create index {LEGACY_EVENTS_INDEX_NAME} on "
            f"{migration_config.legacy.describe()}?",
            default=False,
        ):
            log_with_context(logging.INFO, "Index creation cancelled.")
            return
        ensure_created_at_index(migration_config.legacy)
        log_with_context(
            logging.INFO, f"Index {LEGACY_EVENTS_INDEX_NAME} is in place."
        )
    except Exception as e:
        handle_exception(e)
        sys.exit(1)
