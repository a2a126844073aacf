"""Logging helpers.

The runtime uses Python logging with a JSON formatter so scheduler activity
can be grepped per agent and per event.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_STRUCTURED_EXTRAS = ("event", "agent", "job", "interval", "count", "user", "definition", "code")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Common structured extras (when provided).
        for k in _STRUCTURED_EXTRAS:
            v = getattr(record, k, None)
            if v is not None:
                base[k] = v if isinstance(v, (str, int, float, bool)) else str(v)

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(base, ensure_ascii=True, sort_keys=True)
