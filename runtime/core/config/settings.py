"""Configuration loader for the core runtime.

Rules:
- Fail closed when the runtime config file is missing or invalid.
- All relative paths in runtime.yaml are resolved relative to runtime.yaml's directory.
- Time spans use `[d.]hh:mm:ss` (or plain seconds); unparseable values fall back to defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from errors import ConfigurationError
from utils import parse_timespan

DEFAULT_FREQUENCY = timedelta(minutes=1)


@dataclass(frozen=True)
class ServiceConfig:
    host: str
    port: int


@dataclass(frozen=True)
class RegistryConfig:
    schemas_dir: Path


@dataclass(frozen=True)
class SchedulingConfig:
    frequency: timedelta
    agents_path: Path
    context_domain: str
    max_workers: int

    @property
    def enabled(self) -> bool:
        return self.frequency.total_seconds() > 0


@dataclass(frozen=True)
class SecurityConfig:
    domains: tuple[str, ...]
    default_domain: str


@dataclass(frozen=True)
class RuntimeConfig:
    service: ServiceConfig
    registry: RegistryConfig
    scheduling: SchedulingConfig
    security: SecurityConfig
    config_dir: Path


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Missing required config file: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML: {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid YAML root object in config file: {path}")
    return data


def _resolve_path(base_dir: Path, raw: str) -> Path:
    p = Path(raw)
    if p.is_absolute():
        return p
    return (base_dir / p).resolve()


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    v = raw.get(name) or {}
    if not isinstance(v, dict):
        raise ConfigurationError(f"Invalid config section '{name}' (expected mapping)")
    return v


def load_runtime_config(runtime_config_path: Path) -> RuntimeConfig:
    cfg_dir = runtime_config_path.parent.resolve()
    raw = _load_yaml(runtime_config_path)

    service_raw = _section(raw, "service")
    registry_raw = _section(raw, "registry")
    scheduling_raw = _section(raw, "scheduling")
    security_raw = _section(raw, "security")

    service = ServiceConfig(
        host=str(service_raw.get("host", "0.0.0.0")),
        port=int(service_raw.get("port", 8080)),
    )

    registry = RegistryConfig(
        schemas_dir=_resolve_path(cfg_dir, str(registry_raw.get("schemas_dir", "../../../schemas"))),
    )

    scheduling = SchedulingConfig(
        frequency=parse_timespan(scheduling_raw.get("frequency"), DEFAULT_FREQUENCY),
        agents_path=_resolve_path(cfg_dir, str(scheduling_raw.get("agents_path", "agents.yaml"))),
        context_domain=str(scheduling_raw.get("context_domain", "scheduler")),
        max_workers=max(1, int(scheduling_raw.get("max_workers", 4))),
    )

    domains = security_raw.get("domains", ["scheduler", "default"])
    if not isinstance(domains, list):
        raise ConfigurationError("Invalid security.domains (expected list)")
    security = SecurityConfig(
        domains=tuple(str(d) for d in domains),
        default_domain=str(security_raw.get("default_domain", "default")),
    )

    return RuntimeConfig(service=service, registry=registry, scheduling=scheduling, security=security, config_dir=cfg_dir)


def load_agent_definitions(agents_path: Path) -> list[dict[str, Any]]:
    """Read the ordered list of agent definitions.

    Raises ConfigurationError when the file is missing or malformed; individual
    entries are not validated here.
    """
    raw = _load_yaml(agents_path)
    agents = raw.get("agents")
    if agents is None:
        return []
    if not isinstance(agents, list):
        raise ConfigurationError(f"Invalid 'agents' in {agents_path} (expected list)")
    return agents


def default_config_paths() -> tuple[Path, Path]:
    # Default to paths relative to the runtime working directory (runtime/core).
    runtime_path = Path.cwd() / "config" / "runtime.yaml"
    logging_path = Path.cwd() / "config" / "logging.yaml"
    return runtime_path, logging_path
