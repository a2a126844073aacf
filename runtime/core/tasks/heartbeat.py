"""Heartbeat task: logs that the scheduler is alive and who it runs as."""

from __future__ import annotations

import logging

from executor.identity import current_user

logger = logging.getLogger(__name__)


class HeartbeatTask:
    def __init__(self, label: str = "runtime"):
        self.label = label
        self.beats = 0

    def execute(self) -> None:
        self.beats += 1
        user = current_user()
        logger.info(
            "heartbeat",
            extra={"event": "heartbeat", "job": self.label, "count": self.beats, "user": user.name if user else None},
        )
