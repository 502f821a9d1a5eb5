"""CLI command handler for writing a starter config file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from room_migrator.cli.common import cli
from room_migrator.core.config import create_default_config
from room_migrator.utils.logging import setup_logger


@cli.command("init-config")
@click.option(
    "--output",
    default="config.yaml",
    show_default=True,
    help="Where to write the config file",
)
def init_config(output: str) -> None:
    """Write a config.yaml with the default tuning options."""
    setup_logger()
    if not create_default_config(Path(output)):
        sys.exit(1)
