"""
backend_posix.py

process primitives on posix, on top of subprocess.Popen.

posix has no "create process from a command line string" call, so the command
line is split back into an argv with the windows rule it was built with. the
child inherits our environment, working directory and stdio.
"""

from __future__ import annotations

import logging
import signal
import subprocess

from .models import ChildProcessHandle, WaitResult
from .quoting import split_command_line

logger = logging.getLogger(__name__)

# how long release waits for a killed child to be reaped
REAP_TIMEOUT_S = 1.0


class PosixBackend:
    def __init__(self):
        self._killed: set[int] = set()

    def spawn(self, command_line: str) -> ChildProcessHandle:
        argv = split_command_line(command_line)
        if not argv:
            raise FileNotFoundError(2, "empty command line")
        proc = subprocess.Popen(argv)
        return ChildProcessHandle(pid=proc.pid, process=proc)

    def wait(self, handle: ChildProcessHandle, timeout_ms: int) -> WaitResult:
        try:
            handle.process.wait(timeout=timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            return WaitResult.ELAPSED
        return WaitResult.EXITED

    def terminate(self, handle: ChildProcessHandle, exit_code: int) -> None:
        # SIGKILL cannot carry an exit code; exit_code only matters on windows
        handle.process.send_signal(signal.SIGKILL)
        self._killed.add(handle.pid)

    def confirm_terminated(self, handle: ChildProcessHandle) -> None:
        if handle.process.poll() is None:
            logger.debug("pid %d not reaped yet after kill request", handle.pid)

    def exit_code(self, handle: ChildProcessHandle) -> int:
        rc = handle.process.returncode
        if rc is None:
            raise OSError(f"pid {handle.pid} has no exit status yet")
        if rc < 0:
            return 128 - rc
        return rc

    def close(self, sub_handle: subprocess.Popen) -> None:
        if sub_handle.returncode is not None:
            return
        if sub_handle.pid not in self._killed:
            # never killed: reap only if it already exited
            sub_handle.poll()
            return
        try:
            sub_handle.wait(timeout=REAP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            raise OSError(f"pid {sub_handle.pid} still running {REAP_TIMEOUT_S}s after SIGKILL") from None
