#!/usr/bin/env python3
"""
Command-line entry point for the legacy room migration tool.

Importing the subcommand modules registers them on the ``cli`` group.
"""

from room_migrator.cli import (  # noqa: F401
    config_cmd,
    index_cmd,
    migrate_cmd,
    status_cmd,
)
from room_migrator.cli.common import cli, handle_exception

__all__ = ["cli", "handle_exception", "main"]


def main() -> None:
    """Main entry point for the room-migrator command."""
    cli()


if __name__ == "__main__":
    main()
