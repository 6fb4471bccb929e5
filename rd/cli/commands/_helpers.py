"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from rd.output.console import ConsoleProtocol, Style
from rd.services.release.errors import ReleaseError, release_error_code


def exit_on_release_error(error: ReleaseError, console: ConsoleProtocol) -> NoReturn:
    """Report ``error`` and exit with the code mapped from its kind."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    raise typer.Exit(code=int(release_error_code(error.kind)))
