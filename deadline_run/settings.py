from __future__ import annotations

import logging
import os

from .errors import UsageError


LOG_LEVEL_VAR = "DEADLINE_RUN_LOG_LEVEL"
# exit code requested from TerminateProcess; posix kills carry no code
KILL_EXIT_CODE_VAR = "DEADLINE_RUN_KILL_EXIT_CODE"

DEFAULT_KILL_EXIT_CODE = 0


def log_level() -> int:
    name = os.environ.get(LOG_LEVEL_VAR, "WARNING").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise UsageError(f"{LOG_LEVEL_VAR} must be a logging level name, got {name!r}")
    return level


def kill_exit_code() -> int:
    raw = os.environ.get(KILL_EXIT_CODE_VAR, str(DEFAULT_KILL_EXIT_CODE)).strip()
    if not raw.isascii() or not raw.isdigit() or int(raw) > 2**32 - 1:
        raise UsageError(f"{KILL_EXIT_CODE_VAR} must be a number in 0..{2**32 - 1}, got {raw!r}")
    return int(raw)
