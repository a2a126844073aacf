"""Agent registry built from configuration.

The registry is the ordered, read-only set of agents a scheduler evaluates on
every pass. It is built once per scheduler and never rebuilt.

Degradation rules:
- A definition that fails validation or construction is logged and skipped.
- A definition with a missing or non-positive interval is inactive and skipped.
- If the definitions cannot be read at all, the registry is empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator

from executor.identity import DomainManager
from executor.jobs import JobManager
from registry.loader import create_object, type_full_name
from registry.schema_validator import SchemaValidator
from scheduler.agents import Agent, AsyncAgent
from utils import first_non_empty, parse_bool, parse_timespan, utcnow

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "execute"

DefinitionSource = Callable[[], list[Any]]
ObjectFactory = Callable[[str, "dict[str, Any] | None"], Any]


@dataclass(frozen=True)
class AgentRegistry:
    agents: tuple[Agent, ...] = ()

    def __iter__(self) -> Iterator[Agent]:
        return iter(self.agents)

    def __len__(self) -> int:
        return len(self.agents)

    def names(self) -> list[str]:
        return [a.name for a in self.agents]


def _build_agent(
    definition: Any,
    *,
    start_time: datetime,
    job_manager: JobManager,
    domains: DomainManager,
    context_domain: str,
    schema_validator: SchemaValidator | None,
    object_factory: ObjectFactory,
    clock: Callable[[], datetime],
) -> Agent | None:
    if schema_validator is not None:
        schema_validator.validate("AgentDefinition", definition)

    obj = object_factory(str(definition["type"]), definition.get("params"))
    method = first_non_empty(definition.get("method"), DEFAULT_METHOD)
    interval = parse_timespan(definition.get("interval"), timedelta(0))
    name = first_non_empty(definition.get("name"), type_full_name(obj))
    is_async = parse_bool(definition.get("async"), False)

    if interval.total_seconds() <= 0:
        logger.info("agent_inactive", extra={"event": "agent_inactive", "agent": name})
        return None

    logger.info(
        "agent_added",
        extra={"event": "agent_added", "agent": name, "interval": str(interval)},
    )
    agent_cls = AsyncAgent if is_async else Agent
    return agent_cls(
        name,
        obj,
        method,
        interval,
        start_time,
        job_manager=job_manager,
        domains=domains,
        context_domain=context_domain,
        clock=clock,
    )


def read_agents(
    definitions: DefinitionSource,
    *,
    start_time: datetime,
    job_manager: JobManager,
    domains: DomainManager,
    context_domain: str = "scheduler",
    schema_validator: SchemaValidator | None = None,
    object_factory: ObjectFactory = create_object,
    clock: Callable[[], datetime] = utcnow,
) -> AgentRegistry:
    logger.info("agents_loading", extra={"event": "agents_loading"})
    try:
        raw_definitions = definitions()
    except Exception:
        logger.exception("agents_read_failed", extra={"event": "agents_read_failed"})
        return AgentRegistry()

    agents: list[Agent] = []
    for definition in raw_definitions:
        try:
            if not isinstance(definition, dict):
                raise TypeError(f"agent definition must be a mapping, got {type(definition).__name__}")
            agent = _build_agent(
                definition,
                start_time=start_time,
                job_manager=job_manager,
                domains=domains,
                context_domain=context_domain,
                schema_validator=schema_validator,
                object_factory=object_factory,
                clock=clock,
            )
        except Exception:
            logger.exception(
                "agent_definition_failed",
                extra={"event": "agent_definition_failed", "definition": repr(definition)},
            )
            continue
        if agent is not None:
            agents.append(agent)

    logger.info("agents_loaded", extra={"event": "agents_loaded", "count": len(agents)})
    return AgentRegistry(agents=tuple(agents))
