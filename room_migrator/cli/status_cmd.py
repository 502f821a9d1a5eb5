"""CLI command handler for the status subcommand."""

from __future__ import annotations

import sys
from pathlib import Path

from room_migrator.cli.common import cli, common_options, handle_exception
from room_migrator.cli.report import print_status
from room_migrator.core.config import load_config
from room_migrator.core.status import collect_status
from room_migrator.utils.logging import setup_logger


@cli.command()
@common_options
def status(config: str, verbose: bool) -> None:
    """Show what the target store holds and how many events await backfill.

    Args:
        config: Path to config YAML.
        verbose: Enable verbose console logging.
    """
    setup_logger(verbose)
    try:
        migration_config = load_config(Path(config))
        print_status(collect_status(migration_config))
    except Exception as e:
        handle_exception(e)
        sys.exit(1)
