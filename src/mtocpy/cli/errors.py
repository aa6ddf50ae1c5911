"""
Unified CLI Error Handling
==========================

Provides consistent error reporting, exit codes and logging setup for
the mtocpy command-line tools.
"""

import logging
import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from mtocpy.classdef.errors import ClassdefError, Diagnostic, Severity
from mtocpy.errors import MtocError


class ExitCode(IntEnum):
    """Standard exit codes for CLI tools."""
    SUCCESS = 0
    TRANSLATION_ERROR = 1  # Scan, parse or resolution error, or a failed batch file
    INVALID_ARGS = 2       # Invalid arguments or unreadable files
    INTERNAL_ERROR = 3     # Unexpected internal error


def configure_logging(verbose: bool) -> None:
    """Send library log records to stderr; DEBUG with -v, warnings otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def echo_diagnostics(diagnostics: list[Diagnostic], verbose: bool = False) -> None:
    """Print warnings to stderr; informational findings only in verbose mode."""
    for diagnostic in diagnostics:
        if diagnostic.severity == Severity.WARNING or verbose:
            click.echo(str(diagnostic), err=True)


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: str | None = None
) -> NoReturn:
    """
    Unified exception handler for the CLI tools.

    Formats the error message, optionally prints a traceback in verbose
    mode, and exits with the matching exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors
        error_type: Optional prefix for the error message (e.g., "Macro table")

    Raises:
        SystemExit: Always exits with an appropriate exit code
    """
    if isinstance(error, ClassdefError):
        # Already formatted as 'path:line:column: error: message'
        click.echo(str(error), err=True)
        sys.exit(ExitCode.TRANSLATION_ERROR)

    elif isinstance(error, MtocError):
        prefix = f"{error_type} error: " if error_type else "Error: "
        click.echo(f"{prefix}{error}", err=True)
        sys.exit(ExitCode.TRANSLATION_ERROR)

    elif isinstance(error, (FileNotFoundError, PermissionError, click.BadParameter)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
