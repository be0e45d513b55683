from __future__ import annotations

import logging
import queue
import threading
from typing import Sequence

from healthchecker.models import Check

logger = logging.getLogger(__name__)


class Scheduler:
    """Re-enqueue the whole check list onto the work queue every interval."""

    def __init__(
        self,
        checks: Sequence[Check],
        work_queue: "queue.Queue[Check]",
        interval_s: float,
        stop_event: threading.Event,
    ) -> None:
        self.checks = list(checks)
        self.work_queue = work_queue
        self.interval_s = interval_s
        self._stop = stop_event
        self.state = "idle"
        self.ticks = 0

    def tick(self) -> int:
        """Enqueue every check in list order. Returns how many were queued."""
        queued = 0
        for c in self.checks:
            if self._stop.is_set():
                break
            # Blocking put: a dropped probe would skew the round accounting.
            self.work_queue.put(c)
            queued += 1
        self.ticks += 1
        logger.debug("Tick %d: queued %d checks", self.ticks, queued)
        return queued

    def run(self) -> None:
        self.state = "running"
        logger.info(
            "Scheduler started: %d checks every %ss", len(self.checks), self.interval_s
        )
        while not self._stop.wait(self.interval_s):
            self.tick()
        self.state = "cancelled"
        logger.info("Scheduler stopped after %d ticks", self.ticks)
