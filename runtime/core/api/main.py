"""FastAPI host for the scheduler runtime.

Startup loads configuration, applies logging config and initializes the
scheduler; shutdown stops the polling loop and the job worker pool.
"""

from __future__ import annotations

import logging
import logging.config
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from config.settings import RuntimeConfig, default_config_paths, load_runtime_config
from errors import ConfigurationError, SchedulerRuntimeError
from executor.jobs import JobManager
from scheduler.runner import Scheduler, build_scheduler
from utils import format_rfc3339

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppComponents:
    config: RuntimeConfig
    scheduler: Scheduler
    job_manager: JobManager
    shutting_down: threading.Event


def _load_logging_config(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid logging config YAML root object: {path}")
    return raw


def _apply_logging_config(logging_config_path: Path) -> None:
    cfg = _load_logging_config(logging_config_path)
    logging.config.dictConfig(cfg)


def _env_path(name: str) -> Path | None:
    v = os.environ.get(name)
    if not v:
        return None
    return Path(v)


def _error_payload(err: Exception) -> dict[str, Any]:
    if isinstance(err, ConfigurationError):
        return {"error": "CONFIGURATION_ERROR", "message": str(err), "details": err.details}
    if isinstance(err, SchedulerRuntimeError):
        return {"error": "RUNTIME_ERROR", "message": str(err)}
    return {"error": "INTERNAL", "message": str(err)}


def _build_components() -> AppComponents:
    default_runtime, default_logging = default_config_paths()
    runtime_cfg_path = _env_path("SCHEDULER_RUNTIME_CONFIG") or default_runtime
    logging_cfg_path = _env_path("SCHEDULER_LOGGING_CONFIG") or default_logging

    runtime = load_runtime_config(runtime_cfg_path)
    if logging_cfg_path.exists():
        _apply_logging_config(logging_cfg_path)

    shutting_down = threading.Event()
    job_manager = JobManager(max_workers=runtime.scheduling.max_workers)
    scheduler = build_scheduler(runtime, job_manager=job_manager, shutdown_requested=shutting_down.is_set)

    return AppComponents(config=runtime, scheduler=scheduler, job_manager=job_manager, shutting_down=shutting_down)


app = FastAPI(title="Agent Scheduler Runtime", version="0.1.0")


@app.on_event("startup")
def _startup() -> None:
    # Fail closed at startup if config or schemas cannot be loaded.
    comps = _build_components()
    app.state.components = comps
    comps.scheduler.initialize()
    logger.info("runtime_started", extra={"event": "runtime_started"})


@app.on_event("shutdown")
def _shutdown() -> None:
    comps: AppComponents | None = getattr(app.state, "components", None)
    if comps is None:
        return
    comps.shutting_down.set()
    comps.scheduler.stop(timeout=5.0)
    comps.job_manager.shutdown(wait=False)
    logger.info("runtime_stopped", extra={"event": "runtime_stopped"})


@app.exception_handler(ConfigurationError)
def _configuration_handler(_req, exc: ConfigurationError):
    return JSONResponse(status_code=500, content=_error_payload(exc))


@app.exception_handler(Exception)
def _unhandled_handler(_req, exc: Exception):
    logger.exception("unhandled_error", extra={"event": "unhandled_error"})
    return JSONResponse(status_code=500, content=_error_payload(exc))


def _components() -> AppComponents:
    return app.state.components


@app.get("/health")
def health() -> dict[str, Any]:
    """Health check. Returns 200 once the scheduler is built."""
    sched = _components().scheduler
    return {"status": "ok", "scheduler_enabled": sched.enabled, "loop_running": sched.running}


@app.get("/scheduler")
def scheduler_status() -> dict[str, Any]:
    comps = _components()
    sched = comps.scheduler
    agents = []
    for agent in sched.agents:
        in_flight = getattr(agent, "in_flight", None)
        agents.append(
            {
                "name": agent.name,
                "mode": "async" if agent.is_async else "sync",
                "interval_seconds": agent.interval.total_seconds(),
                "last_run": format_rfc3339(agent.last_run),
                "running": in_flight is not None and not in_flight.is_done,
            }
        )
    return {
        "enabled": sched.enabled,
        "interval_seconds": sched.interval.total_seconds(),
        "start_time": format_rfc3339(sched.start_time),
        "active_jobs": [job.name for job in comps.job_manager.active_jobs()],
        "agents": agents,
    }


@app.post("/scheduler/process")
def process_now() -> dict[str, Any]:
    """Run one pass synchronously. Blocks while another pass is in progress."""
    sched = _components().scheduler
    sched.process()
    return {"status": "processed", "agents": len(sched.agents)}
