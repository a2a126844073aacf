#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def main() -> int:
    repo = _repo_root()
    sys.path.insert(0, str(repo / "runtime" / "core"))

    from config.settings import load_runtime_config
    from executor.jobs import JobManager
    from scheduler.runner import build_scheduler

    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else repo / "runtime" / "core" / "config" / "runtime.yaml"
    config = load_runtime_config(config_path)

    job_manager = JobManager(max_workers=1)
    try:
        scheduler = build_scheduler(config, job_manager=job_manager)
        agents = scheduler.agents
    finally:
        job_manager.shutdown(wait=False)

    print(f"frequency={config.scheduling.frequency} enabled={config.scheduling.enabled}")
    print(f"agents_path={config.scheduling.agents_path}")
    for agent in agents:
        mode = "async" if agent.is_async else "sync"
        print(f"agent name={agent.name} mode={mode} interval={agent.interval}")

    if not agents:
        print("registry_empty=true")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
