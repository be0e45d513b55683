from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List

from healthchecker.checks.http_check import run_http
from healthchecker.checks.results import CheckResult
from healthchecker.models import Check

logger = logging.getLogger(__name__)

Probe = Callable[[Check], CheckResult]


def _default_probe(check: Check) -> CheckResult:
    return run_http(check)


class Dispatcher:
    """
    Pool of worker threads turning each queued Check into exactly one
    CheckResult.

    A worker that has dequeued a check always publishes its result, even if
    the stop event fires mid-probe or the probe itself blows up.
    """

    def __init__(
        self,
        work_queue: "queue.Queue[Check]",
        result_queue: "queue.Queue[CheckResult]",
        stop_event: threading.Event,
        workers: int = 1,
        probe: Probe | None = None,
        poll_s: float = 0.1,
    ) -> None:
        self.work_queue = work_queue
        self.result_queue = result_queue
        self._stop = stop_event
        self.workers = max(1, workers)
        self.probe = probe or _default_probe
        self.poll_s = poll_s
        self._threads: List[threading.Thread] = []

    def execute(self, check: Check) -> CheckResult:
        try:
            return self.probe(check)
        except Exception as e:
            logger.exception("Probe for %s crashed", check.name)
            return CheckResult(
                name=check.name,
                domain=check.domain or "",
                success=False,
                error=f"probe crashed: {e}",
            )

    def run_worker(self) -> None:
        while not self._stop.is_set():
            try:
                check = self.work_queue.get(timeout=self.poll_s)
            except queue.Empty:
                continue
            try:
                self.result_queue.put(self.execute(check))
            finally:
                self.work_queue.task_done()

    def start(self) -> None:
        for i in range(self.workers):
            t = threading.Thread(
                target=self.run_worker, name=f"dispatcher-{i}", daemon=True
            )
            t.start()
            self._threads.append(t)
        logger.info("Dispatcher started with %d worker(s)", self.workers)

    def join(self, timeout: float | None = None) -> None:
        for t in self._threads:
            t.join(timeout)
