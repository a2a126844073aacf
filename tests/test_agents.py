from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from conftest import RecordingTask
from errors import AgentDefinitionError
from scheduler.agents import Agent, AsyncAgent


def _agent(cls, task, *, clock, job_manager, domains, interval=1.0, **kwargs):
    return cls(
        "test-agent",
        task,
        "execute",
        timedelta(seconds=interval),
        clock(),
        job_manager=job_manager,
        domains=domains,
        clock=clock,
        **kwargs,
    )


def test_agent_is_due_only_after_interval_strictly_elapsed(clock, job_manager, domains):
    agent = _agent(Agent, RecordingTask(), clock=clock, job_manager=job_manager, domains=domains)

    assert agent.is_due is False
    clock.advance(1.0)
    assert agent.is_due is False  # exactly equal is not due
    clock.advance(0.001)
    assert agent.is_due is True


def test_sync_execute_blocks_until_work_completes_and_updates_last_run(clock, job_manager, domains):
    task = RecordingTask()
    agent = _agent(Agent, task, clock=clock, job_manager=job_manager, domains=domains)
    now = clock.advance(5)

    agent.execute()

    assert task.runs == 1
    assert agent.last_run == now
    assert agent.is_due is False


def test_sync_execute_runs_as_scheduler_domain_anonymous_user(clock, job_manager, domains):
    task = RecordingTask()
    agent = _agent(Agent, task, clock=clock, job_manager=job_manager, domains=domains)

    agent.execute()

    assert task.users[0].name == "scheduler\\Anonymous"
    assert task.users[0].domain == "scheduler"


def test_unknown_context_domain_falls_back_to_default(clock, job_manager, domains):
    task = RecordingTask()
    agent = _agent(Agent, task, clock=clock, job_manager=job_manager, domains=domains, context_domain="missing")

    agent.execute()

    assert task.users[0].domain == "default"


def test_work_failure_is_contained_and_last_run_still_advances(clock, job_manager, domains):
    task = RecordingTask(error=ValueError("boom"))
    agent = _agent(Agent, task, clock=clock, job_manager=job_manager, domains=domains)
    now = clock.advance(3)

    agent.execute()

    assert task.runs == 1
    assert agent.last_run == now


def test_sync_execute_returns_when_work_exits_the_interpreter(clock, job_manager, domains):
    task = RecordingTask(error=SystemExit(3))
    agent = _agent(Agent, task, clock=clock, job_manager=job_manager, domains=domains)
    now = clock.advance(3)
    caller = threading.Thread(target=agent.execute)

    caller.start()
    caller.join(2.0)

    assert not caller.is_alive()
    assert agent.last_run == now


def test_start_failure_propagates_and_last_run_still_advances(clock, job_manager, domains):
    agent = _agent(Agent, RecordingTask(), clock=clock, job_manager=job_manager, domains=domains)
    job_manager.shutdown(wait=True)
    now = clock.advance(2)

    with pytest.raises(RuntimeError):
        agent.execute()

    assert agent.last_run == now


def test_last_run_never_moves_backwards(clock, job_manager, domains):
    gate = threading.Event()
    agent = _agent(AsyncAgent, RecordingTask(gate=gate), clock=clock, job_manager=job_manager, domains=domains)
    kicked_off = clock.advance(10)
    agent.execute()
    job = agent.in_flight

    # completion stamped with an earlier clock reading than the kickoff
    clock.now = kicked_off - timedelta(seconds=5)
    gate.set()
    assert job.wait(2.0)

    assert agent.last_run == kicked_off


@pytest.mark.parametrize(
    "name,obj,method",
    [
        ("", object(), "execute"),
        ("a", None, "execute"),
        ("a", object(), ""),
    ],
)
def test_agent_constructor_rejects_invalid_arguments(name, obj, method, clock, job_manager, domains):
    with pytest.raises(AgentDefinitionError):
        Agent(name, obj, method, timedelta(seconds=1), clock(), job_manager=job_manager, domains=domains, clock=clock)


def test_async_execute_returns_before_work_finishes(clock, job_manager, domains):
    gate = threading.Event()
    task = RecordingTask(gate=gate)
    agent = _agent(AsyncAgent, task, clock=clock, job_manager=job_manager, domains=domains)
    now = clock.advance(2)

    agent.execute()

    assert task.started.wait(2.0)
    assert agent.in_flight is not None
    assert agent.in_flight.is_done is False
    assert agent.last_run == now
    gate.set()
    assert agent.in_flight.wait(2.0)


def test_async_agent_with_job_in_flight_is_never_due(clock, job_manager, domains):
    gate = threading.Event()
    task = RecordingTask(gate=gate)
    agent = _agent(AsyncAgent, task, clock=clock, job_manager=job_manager, domains=domains)

    agent.execute()
    clock.advance(100)

    assert agent.is_due is False
    assert agent.in_flight is not None
    gate.set()
    agent.in_flight.wait(2.0)


def test_async_completion_refreshes_last_run_and_clears_handle(clock, job_manager, domains):
    gate = threading.Event()
    task = RecordingTask(gate=gate)
    agent = _agent(AsyncAgent, task, clock=clock, job_manager=job_manager, domains=domains)

    agent.execute()
    job = agent.in_flight
    finished_at = clock.advance(1.5)
    gate.set()
    assert job.wait(2.0)

    assert agent.last_run == finished_at
    clock.advance(0.6)
    assert agent.is_due is False
    assert agent.in_flight is None
    clock.advance(0.5)
    assert agent.is_due is True


def test_async_failed_job_releases_agent(clock, job_manager, domains):
    task = RecordingTask(error=RuntimeError("nope"))
    agent = _agent(AsyncAgent, task, clock=clock, job_manager=job_manager, domains=domains)

    agent.execute()
    job = agent.in_flight
    assert job.wait(2.0)
    assert job.status.state == "failed"

    clock.advance(1.5)
    assert agent.is_due is True
    assert agent.in_flight is None
