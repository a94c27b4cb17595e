"""
errors.py

error taxonomy for a deadline run. each error knows the exit code it maps to,
so the cli only has to print the detail and exit.
"""

from __future__ import annotations

from typing import Literal

EXIT_TIMEDOUT = 124       # job timed out
EXIT_CANCELED = 125       # usage or internal error
EXIT_CANNOT_INVOKE = 126  # error executing job
EXIT_ENOENT = 127         # couldn't find job to exec

ErrorKind = Literal["usage", "not_found", "cannot_invoke", "supervisor"]


class RunError(Exception):
    kind: ErrorKind = "supervisor"
    exit_code: int = EXIT_CANCELED

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class UsageError(RunError):
    """bad argument count or an unparseable timeout."""

    kind = "usage"
    exit_code = EXIT_CANCELED


class CommandNotFound(RunError):
    kind = "not_found"
    exit_code = EXIT_ENOENT


class CannotInvoke(RunError):
    kind = "cannot_invoke"
    exit_code = EXIT_CANNOT_INVOKE


class SupervisorError(RunError):
    """wait, terminate, exit-status query or handle release failed after spawn."""

    kind = "supervisor"
    exit_code = EXIT_CANCELED


def os_error_detail(primitive: str, exc: OSError) -> str:
    code = getattr(exc, "winerror", None) or exc.errno
    if code is None:
        return f"{primitive} failed: {exc}"
    return f"{primitive} failed (error {code}): {exc.strerror or exc}"
