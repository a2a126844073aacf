"""Job lifecycle state machine.

Canonical lifecycle:
queued -> running -> succeeded | failed

Notes:
- A JobStatus is immutable; every transition returns a new snapshot so readers
  on other threads always see a consistent status.
- A job may fail before it starts running (e.g. the worker pool rejected it).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from errors import JobStateError


_TERMINAL_STATES = {"succeeded", "failed"}

# Allowed transitions excluding no-op transitions.
_ALLOWED: dict[str, set[str]] = {
    "queued": {"running", "failed"},
    "running": {"succeeded", "failed"},
    "succeeded": set(),
    "failed": set(),
}


@dataclass(frozen=True)
class JobStatus:
    state: str
    queued_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    failure: str | None = None


@dataclass(frozen=True)
class TransitionRequest:
    new_state: str
    now: datetime
    failure: str | None = None


def is_terminal(state: str) -> bool:
    return state in _TERMINAL_STATES


def initial_status(now: datetime) -> JobStatus:
    return JobStatus(state="queued", queued_at=now)


def apply_transition(status: JobStatus, req: TransitionRequest) -> JobStatus:
    """Return a new JobStatus reflecting the requested transition."""
    current_state = status.state
    new_state = req.new_state

    if new_state == current_state:
        return status

    if is_terminal(current_state):
        raise JobStateError(f"Job is terminal; cannot transition from {current_state} to {new_state}")

    allowed = _ALLOWED.get(current_state)
    if allowed is None or new_state not in allowed:
        raise JobStateError(f"Invalid job state transition: {current_state} -> {new_state}")

    if new_state == "running":
        return replace(status, state=new_state, started_at=req.now)

    if new_state == "failed":
        if not req.failure:
            raise JobStateError("failure is required for failed jobs", code="MISSING_FAILURE")
        return replace(status, state=new_state, finished_at=req.now, failure=req.failure)

    return replace(status, state=new_state, finished_at=req.now)
