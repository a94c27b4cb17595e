from __future__ import annotations

import pytest
from pydantic import ValidationError

from deadline_run.errors import CannotInvoke, CommandNotFound, SupervisorError, UsageError
from deadline_run.models import MAX_TIMEOUT_MS, ExitOutcome, RunRequest


@pytest.mark.parametrize("raw,expected", [("0", 0), ("1500", 1500), ("007", 7), ("4294967295", MAX_TIMEOUT_MS)])
def test_run_request_parses_timeout(raw: str, expected: int):
    req = RunRequest(timeout_ms=raw, command=["x"])
    assert req.timeout_ms == expected


@pytest.mark.parametrize("raw", ["4294967296", "99999999999", "-1", "+5", " 5", "5 ", "1_000", "1.5", "", "abc", "12abc", "１２"])
def test_run_request_rejects_bad_timeout(raw: str):
    with pytest.raises(ValidationError):
        RunRequest(timeout_ms=raw, command=["x"])


def test_run_request_needs_a_command():
    with pytest.raises(ValidationError):
        RunRequest(timeout_ms="10", command=[])


def test_run_request_rejects_nul_in_tokens():
    with pytest.raises(ValidationError):
        RunRequest(timeout_ms="10", command=["echo", "a\0b"])


def test_outcome_exit_codes():
    assert ExitOutcome.normal_exit(42).exit_code == 42
    assert ExitOutcome.timed_out().exit_code == 124
    assert ExitOutcome.from_error(UsageError("bad")).exit_code == 125
    assert ExitOutcome.from_error(SupervisorError("wait")).exit_code == 125
    assert ExitOutcome.from_error(CannotInvoke("nope")).exit_code == 126
    assert ExitOutcome.from_error(CommandNotFound("gone")).exit_code == 127


def test_outcome_from_error_keeps_kind_and_detail():
    outcome = ExitOutcome.from_error(CommandNotFound("command 'x' not found"))
    assert outcome.kind == "error"
    assert outcome.error == "not_found"
    assert outcome.detail == "command 'x' not found"
