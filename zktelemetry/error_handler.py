"""Turn exceptions raised by CLI commands into short messages and exit codes.

Telemetry errors know their own next step (``TelemetryError.help_text``);
this module only decides how much to show. With ``ZKTELEMETRY_DEBUG`` set,
the error context and traceback are printed as well.
"""

from __future__ import annotations

import functools
import logging
import os
import traceback

import typer

from zktelemetry.errors import TelemetryError
from zktelemetry.ui import console

logger = logging.getLogger("zktelemetry.error_handler")

INTERRUPTED_EXIT_CODE = 130


def _debug_mode() -> bool:
    """True when ZKTELEMETRY_DEBUG is 1, true or yes."""
    return os.environ.get("ZKTELEMETRY_DEBUG", "").lower() in ("1", "true", "yes")


def _report(error: BaseException) -> int:
    """Print ``error`` for the user and return the exit code to use."""
    debug = _debug_mode()

    if isinstance(error, KeyboardInterrupt):
        console.print("\n[dim]Interrupted.[/dim]")
        return INTERRUPTED_EXIT_CODE

    if isinstance(error, TelemetryError):
        console.print(f"\n[bold red]Error:[/bold red] {error}")
        details = {key: value for key, value in error.context.items() if value}
        if debug and details:
            console.print("[dim]Context:[/dim]")
            for key, value in details.items():
                console.print(f"  [dim]{key}:[/dim] {value}")
        hint = error.help_text()
        if hint:
            console.print(f"[dim]{hint}[/dim]")
        exit_code = error.exit_code
    else:
        logger.debug("Unhandled %s in command", type(error).__name__)
        console.print(f"\n[bold red]Unexpected error:[/bold red] {error}")
        if not debug:
            console.print("[dim]Set ZKTELEMETRY_DEBUG=1 for full traceback.[/dim]")
        exit_code = 1

    if debug:
        console.print(f"\n[dim]{traceback.format_exc()}[/dim]")
    return exit_code


def handle_errors(func):
    """Decorate a Typer command so failures end in a rendered message and an exit code.

    ``typer.Exit``, ``typer.Abort`` and ``SystemExit`` pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort, SystemExit):
            raise
        except (KeyboardInterrupt, Exception) as e:
            raise typer.Exit(_report(e)) from e

    return wrapper
