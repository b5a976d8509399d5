"""Shared helpers for CLI commands."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

import typer

from promote.core.result import Err, Result
from promote.output.errors import print_promote_error, promote_error_exit_code
from promote.services.errors import PromoteError

if TYPE_CHECKING:
    from promote.output.console import ConsoleProtocol


DATE_FORMAT = "%Y-%m-%d"


def release_date(value: str | None) -> str:
    """Archive date for this run: `value` if given (YYYY-MM-DD), else today (UTC)."""
    if value is None:
        return dt.datetime.now(dt.UTC).strftime(DATE_FORMAT)
    try:
        return dt.datetime.strptime(value, DATE_FORMAT).strftime(DATE_FORMAT)
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}", param_hint="--date")


def exit_on_error[T](result: Result[T, PromoteError], console: ConsoleProtocol) -> T:
    """Return the value of `result`, or print the error and exit with its code.

    Replaces the common pattern:
        if isinstance(result, Err):
            print_promote_error(result.error, console)
            raise typer.Exit(code=promote_error_exit_code(result.error))
    """
    if isinstance(result, Err):
        print_promote_error(result.error, console)
        raise typer.Exit(code=promote_error_exit_code(result.error))
    return result.value
