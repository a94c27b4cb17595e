"""
models.py

pydantic models for a run request and its outcome, plus the small types the
supervisor and the process backends pass between each other.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import EXIT_TIMEDOUT, ErrorKind, RunError

MAX_TIMEOUT_MS = 2**32 - 1


class RunRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    timeout_ms: int = Field(..., ge=0, le=MAX_TIMEOUT_MS, description="deadline in milliseconds")
    command: list[str] = Field(..., min_length=1, description="program followed by its arguments")

    @field_validator("timeout_ms", mode="before")
    @classmethod
    def _parse_timeout(cls, v: Any) -> Any:
        # base-10 digits only: no sign, no whitespace, no underscores
        if isinstance(v, str):
            if not v.isascii() or not v.isdigit():
                raise ValueError(f"The TIMEOUT must be a number in 0..{MAX_TIMEOUT_MS}.")
            return int(v)
        return v

    @field_validator("command")
    @classmethod
    def _no_nul(cls, v: list[str]) -> list[str]:
        for token in v:
            if "\0" in token:
                raise ValueError("arguments must not contain NUL characters")
        return v


class ExitOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["normal_exit", "timed_out", "error"]
    exit_code: int
    error: ErrorKind | None = None
    detail: str | None = None

    @classmethod
    def normal_exit(cls, code: int) -> "ExitOutcome":
        return cls(kind="normal_exit", exit_code=code)

    @classmethod
    def timed_out(cls) -> "ExitOutcome":
        return cls(kind="timed_out", exit_code=EXIT_TIMEDOUT)

    @classmethod
    def from_error(cls, exc: RunError) -> "ExitOutcome":
        return cls(kind="error", exit_code=exc.exit_code, error=exc.kind, detail=exc.detail)


class WaitResult(enum.Enum):
    EXITED = "exited"
    ELAPSED = "elapsed"


@dataclass
class ChildProcessHandle:
    """
    process plus primary-thread reference for one spawned child.

    `thread` is None where the platform has no separate thread handle (posix).
    only the supervisor that spawned the child holds one of these.
    """

    pid: int
    process: Any
    thread: Any = None
