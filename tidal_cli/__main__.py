"""
Console entry point for tidal-cli.

Runs the Typer app and turns application errors into a Rich panel with
suggestions. Errors that need the operator to log in again exit with a
distinct status so wrapper scripts can tell them apart.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from tidal_cli.cli.app import app
from tidal_cli.cli.formatters import format_error_with_suggestions
from tidal_cli.exceptions import AuthError, ConfigurationError, TidalCliError

log = logging.getLogger("tidal_cli")

EXIT_FAILURE = 1
EXIT_REAUTHENTICATE = 2
EXIT_CONFIGURATION = 3
EXIT_INTERRUPTED = 130


def exit_code_for(error: TidalCliError) -> int:
    """Maps an application error to the process exit status."""
    if isinstance(error, AuthError):
        return EXIT_REAUTHENTICATE
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIGURATION
    return EXIT_FAILURE


def _use_utf8_on_windows() -> None:
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def main() -> None:
    _use_utf8_on_windows()
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Interrupted, the cache is left as it was.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except TidalCliError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(exit_code_for(e))
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
