from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from executor.identity import DomainManager
from executor.jobs import JobManager

REPO_ROOT = Path(__file__).resolve().parents[1]
SCHEMAS_DIR = REPO_ROOT / "schemas"


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class RecordingTask:
    """Work object that counts runs and can block or fail on demand."""

    def __init__(self, gate: threading.Event | None = None, error: Exception | None = None):
        self.gate = gate
        self.error = error
        self.runs = 0
        self.started = threading.Event()
        self.users: list = []

    def execute(self) -> None:
        from executor.identity import current_user

        self.runs += 1
        self.users.append(current_user())
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.error is not None:
            raise self.error


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def job_manager():
    jm = JobManager(max_workers=4)
    yield jm
    jm.shutdown(wait=False)


@pytest.fixture
def domains() -> DomainManager:
    return DomainManager(["scheduler", "default"], "default")
