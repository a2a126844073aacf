"""Polling scheduler.

The scheduler owns:
- the agent registry, built lazily on first use and never rebuilt
- `process()`, one pass over all agents; passes never overlap
- a background thread that calls `process()` every `interval`

A zero interval disables the background thread. `process()` stays callable, so
the host can still trigger passes on demand.

No timeout is enforced on agent execution: a synchronous agent that hangs
blocks every later pass.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable

from config.settings import RuntimeConfig, load_agent_definitions
from executor.identity import DomainManager
from executor.jobs import JobManager
from registry.loader import create_object
from registry.registry import AgentRegistry, DefinitionSource, ObjectFactory, read_agents
from registry.schema_validator import SchemaValidator
from scheduler.agents import Agent
from utils import Once, utcnow

logger = logging.getLogger(__name__)


def _never() -> bool:
    return False


class Scheduler:
    def __init__(
        self,
        *,
        interval: timedelta,
        definitions: DefinitionSource,
        job_manager: JobManager,
        domains: DomainManager,
        context_domain: str = "scheduler",
        schema_validator: SchemaValidator | None = None,
        object_factory: ObjectFactory = create_object,
        clock: Callable[[], datetime] = utcnow,
        shutdown_requested: Callable[[], bool] = _never,
    ):
        self.interval = interval
        self.start_time = clock()
        self._clock = clock
        self._shutdown_requested = shutdown_requested
        self._registry: Once[AgentRegistry] = Once(
            lambda: read_agents(
                definitions,
                start_time=self.start_time,
                job_manager=job_manager,
                domains=domains,
                context_domain=context_domain,
                schema_validator=schema_validator,
                object_factory=object_factory,
                clock=clock,
            )
        )
        self._process_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._initialized = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def enabled(self) -> bool:
        return self.interval.total_seconds() > 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def agents(self) -> tuple[Agent, ...]:
        return self._registry.get().agents

    def initialize(self) -> None:
        """Start the polling loop once. Later calls are no-ops."""
        with self._init_lock:
            if self._initialized:
                return
            self._initialized = True

            logger.info("scheduler_initializing", extra={"event": "scheduler_initializing"})
            if not self.enabled:
                logger.info("scheduler_disabled", extra={"event": "scheduler_disabled", "interval": str(self.interval)})
                return

            logger.info("scheduler_interval", extra={"event": "scheduler_interval", "interval": str(self.interval)})
            self._thread = threading.Thread(target=self._work_loop, name="scheduler", daemon=True)
            self._thread.start()
            logger.info("scheduler_thread_started", extra={"event": "scheduler_thread_started"})

    def process(self) -> None:
        """Run one pass: execute every agent that is due, in registry order."""
        with self._process_lock:
            for agent in self.agents:
                try:
                    if agent.is_due:
                        agent.execute()
                except Exception:
                    logger.exception("agent_failed", extra={"event": "agent_failed", "agent": agent.name})

    def stop(self, timeout: float | None = None) -> None:
        """Stop the polling loop. Does not interrupt a pass in progress."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("scheduler_stopped", extra={"event": "scheduler_stopped"})

    def _work_loop(self) -> None:
        seconds = self.interval.total_seconds()
        while not self._stop.wait(seconds):
            if self._shutdown_requested():
                continue
            try:
                self.process()
            except Exception:
                # Never let a failed pass end the loop.
                logger.exception("scheduler_loop_error", extra={"event": "scheduler_loop_error"})


def build_scheduler(
    config: RuntimeConfig,
    *,
    job_manager: JobManager,
    shutdown_requested: Callable[[], bool] = _never,
) -> Scheduler:
    """Wire a Scheduler from runtime configuration."""
    scheduling = config.scheduling
    domains = DomainManager(config.security.domains, config.security.default_domain)
    schema_validator = SchemaValidator.load_from_dir(config.registry.schemas_dir)
    return Scheduler(
        interval=scheduling.frequency,
        definitions=lambda: load_agent_definitions(scheduling.agents_path),
        job_manager=job_manager,
        domains=domains,
        context_domain=scheduling.context_domain,
        schema_validator=schema_validator,
        shutdown_requested=shutdown_requested,
    )
