"""Cleanup task: deletes files older than `max_age` from a directory."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from utils import parse_timespan, utcnow

logger = logging.getLogger(__name__)


class CleanupTask:
    def __init__(self, directory: str, max_age: Any = "1.00:00:00", pattern: str = "*", recursive: bool = False):
        self.directory = Path(directory)
        self.max_age = parse_timespan(max_age, timedelta(days=1))
        self.pattern = pattern
        self.recursive = recursive

    def execute(self) -> int:
        if not self.directory.is_dir():
            logger.info("cleanup_skipped", extra={"event": "cleanup_skipped", "job": str(self.directory)})
            return 0

        cutoff = (utcnow() - self.max_age).timestamp()
        candidates = self.directory.rglob(self.pattern) if self.recursive else self.directory.glob(self.pattern)
        removed = 0
        for p in candidates:
            if not p.is_file():
                continue
            if p.stat().st_mtime < cutoff:
                p.unlink(missing_ok=True)
                removed += 1

        logger.info("cleanup_done", extra={"event": "cleanup_done", "job": str(self.directory), "count": removed})
        return removed
