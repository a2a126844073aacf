"""Execution identity for scheduled work.

Scheduled jobs run as the anonymous user of a configured domain. The job
runner binds that user to a context variable for the duration of the work, so
work code can ask who it is running as via `current_user()`.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator

from errors import ConfigurationError

_current_user: contextvars.ContextVar["ContextUser | None"] = contextvars.ContextVar("current_user", default=None)


@dataclass(frozen=True)
class ContextUser:
    name: str
    domain: str
    is_anonymous: bool = True


@dataclass(frozen=True)
class Domain:
    name: str

    def anonymous_user(self) -> ContextUser:
        return ContextUser(name=f"{self.name}\\Anonymous", domain=self.name)


class DomainManager:
    def __init__(self, domains: Iterable[str], default_domain: str):
        self._domains = {name: Domain(name) for name in domains}
        if default_domain not in self._domains:
            raise ConfigurationError(f"Default domain '{default_domain}' is not in the configured domains")
        self._default = self._domains[default_domain]

    def get_domain(self, name: str) -> Domain | None:
        return self._domains.get(name)

    def get_default_domain(self) -> Domain:
        return self._default

    def resolve_context_user(self, preferred: str) -> ContextUser:
        """Anonymous user of the preferred domain, else of the default domain."""
        domain = self.get_domain(preferred) or self.get_default_domain()
        return domain.anonymous_user()


def current_user() -> ContextUser | None:
    return _current_user.get()


@contextmanager
def user_switcher(user: ContextUser | None) -> Iterator[None]:
    token = _current_user.set(user)
    try:
        yield
    finally:
        _current_user.reset(token)
