"""Work object loader (agent definition -> instance).

Agent definitions name their work class by import path. Accepted forms:
- `package.module:ClassName` (preferred, unambiguous)
- `package.module.ClassName`

The class is constructed with the definition's `params` mapping as keyword
arguments. Only classes are accepted; the scheduler invokes a method on the
resulting instance.
"""

from __future__ import annotations

import importlib
from typing import Any

from errors import AgentDefinitionError


def _split_type_path(type_path: str) -> tuple[str, str]:
    if ":" in type_path:
        module_name, _, attr = type_path.partition(":")
    else:
        module_name, _, attr = type_path.rpartition(".")
    if not module_name or not attr:
        raise AgentDefinitionError(f"Invalid type path (expected 'module:Class'): {type_path!r}")
    return module_name, attr


def resolve_type(type_path: str) -> type:
    module_name, attr = _split_type_path(type_path)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise AgentDefinitionError(f"Cannot import module '{module_name}' for type {type_path!r}: {e}") from e

    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise AgentDefinitionError(f"Module '{module_name}' has no attribute '{attr}'") from e

    if not isinstance(target, type):
        raise AgentDefinitionError(f"Type path {type_path!r} does not name a class")
    return target


def create_object(type_path: str, params: dict[str, Any] | None = None) -> Any:
    """Instantiate the work class named by `type_path`."""
    cls = resolve_type(type_path)
    kwargs = dict(params or {})
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise AgentDefinitionError(f"Cannot construct {cls.__qualname__} with params {sorted(kwargs)}: {e}") from e


def type_full_name(obj: Any) -> str:
    cls = type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"
