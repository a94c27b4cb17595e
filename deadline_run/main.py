"""
main.py

establishes the cli: deadline-run TIMEOUT_MS COMMAND [ARGS...]
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console

from . import settings
from .errors import EXIT_CANCELED, UsageError
from .supervisor import ProcessSupervisor, run_with_deadline

USAGE = "usage: deadline-run TIMEOUT_MS COMMAND [ARGUMENTS...]"

app = typer.Typer(add_completion=False, help="Run a command, killing it when TIMEOUT_MS milliseconds elapse.")
err_console = Console(stderr=True, soft_wrap=True, highlight=False)


def diagnose(message: str) -> None:
    err_console.print(f"deadline-run: {message}", markup=False)


@app.command(
    context_settings={
        # everything after TIMEOUT_MS belongs to the child, options included
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    },
)
def run(
    ctx: typer.Context,
    timeout_ms: Optional[str] = typer.Argument(None, metavar="TIMEOUT_MS", help="Deadline in milliseconds, 0..4294967295"),
) -> None:
    """
    Run COMMAND with ARGUMENTS. Exits with the command's own status, 124 when
    the deadline elapsed and the command was killed, 125 on usage or internal
    errors, 126 when the command cannot be invoked and 127 when it is not found.
    """
    try:
        level = settings.log_level()
        kill_exit_code = settings.kill_exit_code()
    except UsageError as e:
        diagnose(e.detail)
        raise typer.Exit(e.exit_code)
    logging.basicConfig(level=level, format="%(name)s: %(levelname)s: %(message)s")

    command = list(ctx.args)
    if timeout_ms is None or not command:
        diagnose(USAGE)
        raise typer.Exit(EXIT_CANCELED)

    supervisor = ProcessSupervisor(kill_exit_code=kill_exit_code)
    outcome = run_with_deadline(timeout_ms, command, supervisor=supervisor)
    if outcome.kind == "error":
        diagnose(outcome.detail or outcome.error or "error")
    raise typer.Exit(outcome.exit_code)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
