"""Job execution substrate.

A Job wraps one invocation of `obj.method()` and exposes:
- a non-blocking `is_done` check
- a blocking `wait()`
- finished callbacks, invoked once on the worker thread after the work ends

The JobManager runs jobs on a bounded worker pool. Failures inside the work are
caught, logged and recorded on the job status; they never propagate to the
caller that started the job.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable

from errors import JobStateError
from executor.identity import ContextUser, user_switcher
from executor.state_machine import JobStatus, TransitionRequest, apply_transition, initial_status, is_terminal
from utils import utcnow

logger = logging.getLogger(__name__)

FinishedCallback = Callable[["Job"], None]


@dataclass(frozen=True)
class JobOptions:
    name: str
    category: str
    site_name: str
    obj: Any
    method: str
    context_user: ContextUser | None = None
    params: tuple[Any, ...] = field(default_factory=tuple)


class Job:
    def __init__(self, options: JobOptions):
        self.options = options
        self._status = initial_status(utcnow())
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._callbacks: list[FinishedCallback] = []

    @property
    def name(self) -> str:
        return self.options.name

    @property
    def status(self) -> JobStatus:
        return self._status

    @property
    def is_done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def add_finished_callback(self, callback: FinishedCallback) -> None:
        """Register a callback; runs immediately if the job already finished."""
        with self._lock:
            if not is_terminal(self._status.state):
                self._callbacks.append(callback)
                return
        self._notify(callback)

    def run(self) -> None:
        """Execute the work on the current thread. Called by the JobManager."""
        self._transition("running")
        try:
            target = getattr(self.options.obj, self.options.method)
            with user_switcher(self.options.context_user):
                target(*self.options.params)
        except Exception as e:
            logger.exception("job_failed", extra={"event": "job_failed", "job": self.name})
            self._finish("failed", failure=f"{type(e).__name__}: {e}")
        except BaseException as e:
            # SystemExit/KeyboardInterrupt: still release waiters, then let it propagate.
            logger.error("job_aborted", extra={"event": "job_aborted", "job": self.name})
            self._finish("failed", failure=f"{type(e).__name__}: {e}")
            raise
        else:
            self._finish("succeeded")

    def fail(self, failure: str) -> None:
        self._finish("failed", failure=failure)

    def _transition(self, new_state: str, failure: str | None = None) -> None:
        with self._lock:
            self._status = apply_transition(self._status, TransitionRequest(new_state=new_state, now=utcnow(), failure=failure))

    def _finish(self, new_state: str, failure: str | None = None) -> None:
        with self._lock:
            if is_terminal(self._status.state):
                raise JobStateError(f"Job {self.name} already finished ({self._status.state})")
            self._status = apply_transition(self._status, TransitionRequest(new_state=new_state, now=utcnow(), failure=failure))
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        try:
            for cb in callbacks:
                self._notify(cb)
        finally:
            # Waiters resume only after every finished callback has run.
            self._done.set()

    def _notify(self, callback: FinishedCallback) -> None:
        try:
            callback(self)
        except Exception:
            logger.exception("job_callback_failed", extra={"event": "job_callback_failed", "job": self.name})


class JobManager:
    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="job-worker")
        self._lock = threading.Lock()
        self._active: list[Job] = []

    def start(self, job: Job) -> None:
        with self._lock:
            self._active.append(job)
        job.add_finished_callback(self._forget)
        try:
            self._executor.submit(job.run)
        except RuntimeError as e:
            # Executor already shut down.
            job.fail(f"RuntimeError: {e}")
            raise
        logger.debug("job_started", extra={"event": "job_started", "job": job.name})

    def active_jobs(self) -> list[Job]:
        with self._lock:
            return list(self._active)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _forget(self, job: Job) -> None:
        with self._lock:
            if job in self._active:
                self._active.remove(job)
