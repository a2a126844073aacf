"""Core runtime error types.

The scheduler degrades instead of stopping: most of these are caught close to
where they are raised and logged. The API layer maps the rest to HTTP responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


class SchedulerRuntimeError(Exception):
    """Base class for runtime errors."""


@dataclass(frozen=True)
class SchemaViolation:
    path: str
    message: str


class SchemaValidationError(SchedulerRuntimeError):
    def __init__(self, kind: str, violations: Iterable[SchemaViolation]):
        self.kind = kind
        self.violations = list(violations)
        super().__init__(f"{kind} failed schema validation ({len(self.violations)} violation(s))")


class ConfigurationError(SchedulerRuntimeError):
    def __init__(self, message: str, details: Any | None = None):
        self.details = details
        super().__init__(message)


class AgentDefinitionError(SchedulerRuntimeError):
    def __init__(self, message: str, definition: Any | None = None):
        self.definition = definition
        super().__init__(message)


class JobStateError(SchedulerRuntimeError):
    def __init__(self, message: str, code: str = "INVALID_JOB_TRANSITION"):
        self.code = code
        super().__init__(message)
