"""Click group, shared options and the error handler used by every subcommand."""

from __future__ import annotations

import logging
from typing import Callable

import click
import psycopg

import room_migrator
from room_migrator.exceptions import MigratorError
from room_migrator.utils.logging import log_with_context

# Arguments handled by the group itself; anything else starting with a dash
# belongs to the default subcommand.
_OWN_FLAGS = frozenset(("-h", "--help", "--version"))


class DefaultGroup(click.Group):
    """Group that falls through to ``migrate``.

    ``room-migrator`` and ``room-migrator --dry_run`` both run a migration;
    an explicit subcommand name still selects that subcommand.
    """

    default_command = "migrate"

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if not args or (args[0].startswith("-") and args[0] not in _OWN_FLAGS):
            args = [self.default_command, *args]
        return super().parse_args(ctx, args)


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Attach ``--config`` and ``--verbose`` to a subcommand."""
    f = click.option(
        "--config",
        default="config.yaml",
        show_default=True,
        help="Tuning options YAML; store credentials always come from the environment",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Show DEBUG messages on the console",
    )(f)
    return f


@click.group(
    cls=DefaultGroup,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=room_migrator.__version__, prog_name="room-migrator")
def cli() -> None:
    """Migrate legacy rooms, adjustments and events into the events service."""


def handle_exception(e: BaseException) -> None:
    """Log the exception that ended a command.

    Known migration errors are logged as a single line; anything unexpected
    gets its traceback.
    """
    if isinstance(e, MigratorError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, psycopg.Error):
        log_with_context(logging.ERROR, f"Database error: {e}")
        log_with_context(
            logging.INFO,
            "Check that both stores are reachable and the target schema is up to date.",
        )
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Migration interrupted by user.")
        log_with_context(
            logging.INFO,
            "The transaction was rolled back; run the migration again when ready.",
        )
    else:
        log_with_context(logging.ERROR, f"Migration failed: {e}", exc_info=True)
