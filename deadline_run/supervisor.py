"""
supervisor.py

drives one child process through spawn -> bounded wait -> (exit | kill) and
resolves the exit outcome.

both sub-handles of a spawned child are released exactly once on every path out
of the lifecycle, including error paths. every os failure is terminal for the
run; nothing is retried.
"""

from __future__ import annotations

import enum
import logging
import os
from contextlib import ExitStack

from pydantic import ValidationError

from .errors import (
    CannotInvoke, CommandNotFound, RunError, SupervisorError, UsageError,
    os_error_detail,
)
from .models import MAX_TIMEOUT_MS, ChildProcessHandle, ExitOutcome, RunRequest, WaitResult
from .quoting import build_command_line, split_command_line
from .settings import DEFAULT_KILL_EXIT_CODE

logger = logging.getLogger(__name__)


class State(enum.Enum):
    CREATED = "created"
    SPAWNED = "spawned"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


def default_backend():
    if os.name == "nt":
        from .backend_win32 import Win32Backend
        return Win32Backend()
    from .backend_posix import PosixBackend
    return PosixBackend()


class ProcessSupervisor:
    def __init__(self, backend=None, kill_exit_code: int = DEFAULT_KILL_EXIT_CODE):
        self.backend = backend if backend is not None else default_backend()
        self.kill_exit_code = kill_exit_code
        self.state = State.CREATED

    def spawn(self, command_line: str) -> ChildProcessHandle:
        try:
            handle = self.backend.spawn(command_line)
        except FileNotFoundError:
            program = (split_command_line(command_line) or [command_line])[0]
            raise CommandNotFound(f"command {program!r} not found") from None
        except OSError as e:
            raise CannotInvoke(os_error_detail("CreateProcess", e)) from e
        logger.debug("spawned pid %d: %s", handle.pid, command_line)
        return handle

    def await_with_deadline(self, handle: ChildProcessHandle, deadline_ms: int) -> WaitResult:
        try:
            result = self.backend.wait(handle, deadline_ms)
        except OSError as e:
            raise SupervisorError(os_error_detail("WaitForSingleObject", e)) from e
        logger.debug("pid %d wait(%d ms): %s", handle.pid, deadline_ms, result.value)
        return result

    def terminate(self, handle: ChildProcessHandle) -> None:
        if self.kill_exit_code != DEFAULT_KILL_EXIT_CODE:
            logger.debug("pid %d: kill requested with exit code %d", handle.pid, self.kill_exit_code)
        try:
            self.backend.terminate(handle, self.kill_exit_code)
        except OSError as e:
            raise SupervisorError(os_error_detail("TerminateProcess", e)) from e
        try:
            self.backend.confirm_terminated(handle)
        except OSError as e:
            raise SupervisorError(os_error_detail("WaitForSingleObject", e)) from e
        logger.debug("pid %d terminated", handle.pid)

    def resolve_exit_code(self, handle: ChildProcessHandle) -> int:
        try:
            return self.backend.exit_code(handle)
        except OSError as e:
            raise SupervisorError(os_error_detail("GetExitCodeProcess", e)) from e

    def _release(self, handle: ChildProcessHandle, which: str) -> None:
        sub_handle = getattr(handle, which)
        try:
            self.backend.close(sub_handle)
        except OSError as e:
            raise SupervisorError(os_error_detail("CloseHandle", e)) from e
        logger.debug("pid %d %s handle released", handle.pid, which)

    def _drive(self, command_line: str, deadline_ms: int) -> ExitOutcome:
        # spawn failed -> no handles exist, nothing to release
        handle = self.spawn(command_line)
        self.state = State.SPAWNED

        with ExitStack() as release:
            release.callback(self._release, handle, "process")
            if handle.thread is not None:
                release.callback(self._release, handle, "thread")

            if self.await_with_deadline(handle, deadline_ms) is WaitResult.ELAPSED:
                self.terminate(handle)
                outcome = ExitOutcome.timed_out()
                next_state = State.TIMED_OUT
            else:
                outcome = ExitOutcome.normal_exit(self.resolve_exit_code(handle))
                next_state = State.COMPLETED

        self.state = next_state
        return outcome

    def run(self, command_line: str, deadline_ms: int) -> ExitOutcome:
        if self.state is not State.CREATED:
            raise RuntimeError(f"supervisor already used (state: {self.state.value})")
        try:
            return self._drive(command_line, deadline_ms)
        except RunError as e:
            self.state = State.FAILED
            logger.debug("run failed: %s", e.detail)
            return ExitOutcome.from_error(e)


def run_with_deadline(timeout_ms, command: list[str], supervisor: ProcessSupervisor | None = None) -> ExitOutcome:
    """
    validate the inputs, build the command line and supervise one child.

    timeout_ms may be the raw string from the command line; a bad value is a
    usage error reported before anything is spawned.
    """
    try:
        req = RunRequest(timeout_ms=timeout_ms, command=command)
    except ValidationError as e:
        first = e.errors()[0]
        return ExitOutcome.from_error(UsageError(_validation_detail(first)))

    command_line = build_command_line(req.command)
    supervisor = supervisor if supervisor is not None else ProcessSupervisor()
    return supervisor.run(command_line, req.timeout_ms)


def _validation_detail(err: dict) -> str:
    field = err["loc"][0] if err.get("loc") else None
    if field == "timeout_ms":
        return f"The TIMEOUT must be a number in 0..{MAX_TIMEOUT_MS}."
    if field == "command" and err.get("type") == "too_short":
        return "missing COMMAND"
    return str(err.get("msg", "invalid arguments"))
