"""Scheduled agents.

An Agent binds a work object and method to an interval. The scheduler asks each
agent `is_due` on every pass and calls `execute()` when it is.

Two execution models:
- Agent: starts the job and blocks until it finishes.
- AsyncAgent: starts the job and returns; while that job is in flight the agent
  is never due, so a slow job is not started again on every pass.

`last_run` only moves forward. The async completion callback (worker thread)
and `execute()` (pass thread) both write it; the later timestamp wins.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Callable

from errors import AgentDefinitionError
from executor.identity import ContextUser, DomainManager
from executor.jobs import Job, JobManager, JobOptions
from utils import to_utc, utcnow

JOB_CATEGORY = "schedule"
SITE_NAME = "scheduler"


class Agent:
    def __init__(
        self,
        name: str,
        obj: Any,
        method: str,
        interval: timedelta,
        last_run: datetime,
        *,
        job_manager: JobManager,
        domains: DomainManager,
        context_domain: str = SITE_NAME,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not isinstance(name, str) or not name:
            raise AgentDefinitionError("Agent name must be a non-empty string")
        if obj is None:
            raise AgentDefinitionError(f"Agent {name}: work object is required")
        if not isinstance(method, str) or not method:
            raise AgentDefinitionError(f"Agent {name}: method must be a non-empty string")

        self.name = name
        self.interval = interval
        self._job_object = obj
        self._job_method = method
        self._job_manager = job_manager
        self._domains = domains
        self._context_domain = context_domain
        self._clock = clock
        self._last_run = to_utc(last_run)
        self._last_run_lock = threading.Lock()

    @property
    def last_run(self) -> datetime:
        return self._last_run

    @property
    def is_due(self) -> bool:
        return self._clock() - self._last_run > self.interval

    @property
    def is_async(self) -> bool:
        return False

    def execute(self) -> None:
        try:
            options = self.create_job_options()
            job = self.create_job(options)
            self.start_job(job)
            job.wait()
        finally:
            self._touch(self._clock())

    def create_job_options(self) -> JobOptions:
        return JobOptions(
            name=self.name,
            category=JOB_CATEGORY,
            site_name=SITE_NAME,
            obj=self._job_object,
            method=self._job_method,
            context_user=self.get_context_user(),
        )

    def create_job(self, options: JobOptions) -> Job:
        return Job(options)

    def start_job(self, job: Job) -> None:
        self._job_manager.start(job)

    def get_context_user(self) -> ContextUser:
        return self._domains.resolve_context_user(self._context_domain)

    def _touch(self, when: datetime) -> None:
        when = to_utc(when)
        with self._last_run_lock:
            if when > self._last_run:
                self._last_run = when

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, interval={self.interval})"


class AsyncAgent(Agent):
    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._agent_job: Job | None = None

    @property
    def in_flight(self) -> Job | None:
        return self._agent_job

    @property
    def is_async(self) -> bool:
        return True

    @property
    def is_due(self) -> bool:
        job = self._agent_job
        if job is not None:
            if not job.is_done:
                return False
            self._agent_job = None
        return super().is_due

    def execute(self) -> None:
        try:
            options = self.create_job_options()
            job = self.create_job(options)
            job.add_finished_callback(lambda _job: self._touch(self._clock()))
            self.start_job(job)
            self._agent_job = job
        finally:
            self._touch(self._clock())
