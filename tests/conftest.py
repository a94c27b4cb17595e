from __future__ import annotations

import sys
from collections import Counter

import pytest

from deadline_run.models import ChildProcessHandle, WaitResult
from deadline_run.quoting import build_command_line


class FakeBackend:
    """
    records every primitive call. failures are injected by naming the
    primitive in `fail`; `wait_result` decides what the bounded wait reports.
    """

    def __init__(self, wait_result: WaitResult = WaitResult.EXITED, exit_code: int = 0,
                 fail: set[str] | None = None, spawn_error: OSError | None = None,
                 thread: bool = True):
        self.wait_result = wait_result
        self.code = exit_code
        self.fail = fail or set()
        self.spawn_error = spawn_error
        self.thread = thread
        self.calls: list[str] = []
        self.closed: Counter[str] = Counter()

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise OSError(5, f"{name} refused")

    def spawn(self, command_line: str) -> ChildProcessHandle:
        self.calls.append("spawn")
        self.command_line = command_line
        if self.spawn_error is not None:
            raise self.spawn_error
        return ChildProcessHandle(pid=4242, process="process", thread="thread" if self.thread else None)

    def wait(self, handle: ChildProcessHandle, timeout_ms: int) -> WaitResult:
        self._call("wait")
        self.timeout_ms = timeout_ms
        return self.wait_result

    def terminate(self, handle: ChildProcessHandle, exit_code: int) -> None:
        self._call("terminate")
        self.kill_exit_code = exit_code

    def confirm_terminated(self, handle: ChildProcessHandle) -> None:
        self._call("confirm_terminated")

    def exit_code(self, handle: ChildProcessHandle) -> int:
        self._call("exit_code")
        return self.code

    def close(self, sub_handle: str) -> None:
        self.closed[sub_handle] += 1
        self._call(f"close_{sub_handle}")


@pytest.fixture()
def fake_backend() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture()
def py_cmd():
    """
    returns a builder for a command running `code` in a fresh python
    interpreter, as an argv list.
    """
    def build(code: str) -> list[str]:
        return [sys.executable, "-c", code]

    return build


@pytest.fixture()
def py_command_line(py_cmd):
    def build(code: str) -> str:
        return build_command_line(py_cmd(code))

    return build
