"""
backend_win32.py

process primitives on windows, straight from kernel32 via ctypes.

CreateProcessW gets the command line string as-is (no module name), so the
first token is resolved by the normal windows executable search. the child
inherits our environment, working directory and std handles.
"""

from __future__ import annotations

import ctypes
import logging
from ctypes import wintypes

from .models import ChildProcessHandle, WaitResult

logger = logging.getLogger(__name__)

WAIT_OBJECT_0 = 0x00000000
WAIT_TIMEOUT = 0x00000102
WAIT_FAILED = 0xFFFFFFFF


class STARTUPINFOW(ctypes.Structure):
    _fields_ = [
        ("cb", wintypes.DWORD),
        ("lpReserved", wintypes.LPWSTR),
        ("lpDesktop", wintypes.LPWSTR),
        ("lpTitle", wintypes.LPWSTR),
        ("dwX", wintypes.DWORD),
        ("dwY", wintypes.DWORD),
        ("dwXSize", wintypes.DWORD),
        ("dwYSize", wintypes.DWORD),
        ("dwXCountChars", wintypes.DWORD),
        ("dwYCountChars", wintypes.DWORD),
        ("dwFillAttribute", wintypes.DWORD),
        ("dwFlags", wintypes.DWORD),
        ("wShowWindow", wintypes.WORD),
        ("cbReserved2", wintypes.WORD),
        ("lpReserved2", ctypes.POINTER(wintypes.BYTE)),
        ("hStdInput", wintypes.HANDLE),
        ("hStdOutput", wintypes.HANDLE),
        ("hStdError", wintypes.HANDLE),
    ]


class PROCESS_INFORMATION(ctypes.Structure):
    _fields_ = [
        ("hProcess", wintypes.HANDLE),
        ("hThread", wintypes.HANDLE),
        ("dwProcessId", wintypes.DWORD),
        ("dwThreadId", wintypes.DWORD),
    ]


def _load_kernel32():
    k32 = ctypes.WinDLL("kernel32", use_last_error=True)

    k32.CreateProcessW.argtypes = [
        wintypes.LPCWSTR, wintypes.LPWSTR,
        wintypes.LPVOID, wintypes.LPVOID,
        wintypes.BOOL, wintypes.DWORD,
        wintypes.LPVOID, wintypes.LPCWSTR,
        ctypes.POINTER(STARTUPINFOW), ctypes.POINTER(PROCESS_INFORMATION),
    ]
    k32.CreateProcessW.restype = wintypes.BOOL
    k32.WaitForSingleObject.argtypes = [wintypes.HANDLE, wintypes.DWORD]
    k32.WaitForSingleObject.restype = wintypes.DWORD
    k32.TerminateProcess.argtypes = [wintypes.HANDLE, wintypes.UINT]
    k32.TerminateProcess.restype = wintypes.BOOL
    k32.GetExitCodeProcess.argtypes = [wintypes.HANDLE, ctypes.POINTER(wintypes.DWORD)]
    k32.GetExitCodeProcess.restype = wintypes.BOOL
    k32.CloseHandle.argtypes = [wintypes.HANDLE]
    k32.CloseHandle.restype = wintypes.BOOL
    return k32


def _last_error() -> OSError:
    return ctypes.WinError(ctypes.get_last_error())


class Win32Backend:
    def __init__(self):
        self.k32 = _load_kernel32()

    def spawn(self, command_line: str) -> ChildProcessHandle:
        si = STARTUPINFOW()
        si.cb = ctypes.sizeof(si)
        pi = PROCESS_INFORMATION()
        # CreateProcessW may write into the command line buffer
        buf = ctypes.create_unicode_buffer(command_line)

        ok = self.k32.CreateProcessW(
            None,   # no module name, use the command line
            buf,
            None,   # process handle not inheritable
            None,   # thread handle not inheritable
            False,  # no handle inheritance
            0,      # no creation flags
            None,   # parent's environment block
            None,   # parent's starting directory
            ctypes.byref(si),
            ctypes.byref(pi),
        )
        if not ok:
            raise _last_error()
        return ChildProcessHandle(pid=pi.dwProcessId, process=pi.hProcess, thread=pi.hThread)

    def _wait_object(self, h, timeout_ms: int) -> WaitResult:
        rc = self.k32.WaitForSingleObject(h, timeout_ms)
        if rc == WAIT_OBJECT_0:
            return WaitResult.EXITED
        if rc == WAIT_TIMEOUT:
            return WaitResult.ELAPSED
        if rc == WAIT_FAILED:
            raise _last_error()
        raise OSError(f"WaitForSingleObject returned an unexpected value ({rc:#x})")

    def wait(self, handle: ChildProcessHandle, timeout_ms: int) -> WaitResult:
        return self._wait_object(handle.process, timeout_ms)

    def terminate(self, handle: ChildProcessHandle, exit_code: int) -> None:
        if not self.k32.TerminateProcess(handle.process, exit_code):
            raise _last_error()

    def confirm_terminated(self, handle: ChildProcessHandle) -> None:
        if self._wait_object(handle.thread, 0) is WaitResult.ELAPSED:
            logger.debug("pid %d termination accepted, thread not signaled yet", handle.pid)

    def exit_code(self, handle: ChildProcessHandle) -> int:
        code = wintypes.DWORD()
        if not self.k32.GetExitCodeProcess(handle.process, ctypes.byref(code)):
            raise _last_error()
        return code.value

    def close(self, sub_handle) -> None:
        if not self.k32.CloseHandle(sub_handle):
            raise _last_error()
