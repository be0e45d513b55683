from __future__ import annotations

import functools
import logging
import queue
import threading
from pathlib import Path
from typing import Dict, Sequence

from healthchecker.aggregator import Aggregator, ReportSink
from healthchecker.checks.http_check import run_http
from healthchecker.checks.results import CheckResult
from healthchecker.config import settings
from healthchecker.dispatcher import Dispatcher, Probe
from healthchecker.grouping import group_into_domains
from healthchecker.models import Check
from healthchecker.registry import load_registry
from healthchecker.scheduler import Scheduler
from healthchecker.state import DomainStats

logger = logging.getLogger(__name__)


class Monitor:
    """
    Wire Scheduler -> work queue -> Dispatcher -> result queue -> Aggregator
    and run each stage on its own thread until stop() is called.
    """

    def __init__(
        self,
        checks: Sequence[Check],
        stats: Dict[str, DomainStats],
        interval_s: float | None = None,
        timeout_s: float | None = None,
        workers: int | None = None,
        reset_each_round: bool | None = None,
        sink: ReportSink | None = None,
        probe: Probe | None = None,
        poll_s: float = 0.1,
    ) -> None:
        if not checks:
            raise ValueError("Monitor needs at least one check")

        self.interval_s = settings.HEALTHCHECK_INTERVAL_S if interval_s is None else interval_s
        self.timeout_s = settings.timeout_s if timeout_s is None else timeout_s
        workers = settings.HEALTHCHECK_WORKERS if workers is None else workers
        if reset_each_round is None:
            reset_each_round = settings.HEALTHCHECK_RESET_EACH_ROUND
        if probe is None:
            probe = functools.partial(run_http, timeout_s=self.timeout_s)

        self.stop_event = threading.Event()
        self.results_closed = threading.Event()
        self.work_queue: "queue.Queue[Check]" = queue.Queue()
        self.result_queue: "queue.Queue[CheckResult]" = queue.Queue()

        self.scheduler = Scheduler(
            checks, self.work_queue, self.interval_s, self.stop_event
        )
        self.dispatcher = Dispatcher(
            self.work_queue,
            self.result_queue,
            self.stop_event,
            workers=workers,
            probe=probe,
            poll_s=poll_s,
        )
        self.aggregator = Aggregator(
            stats,
            round_size=len(checks),
            result_queue=self.result_queue,
            closed_event=self.results_closed,
            sink=sink,
            reset_each_round=reset_each_round,
            poll_s=poll_s,
        )
        self._scheduler_thread: threading.Thread | None = None
        self._aggregator_thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._scheduler_thread is not None and not self.stop_event.is_set()

    def start(self) -> None:
        if self._scheduler_thread is not None:
            raise RuntimeError("Monitor already started")

        self._aggregator_thread = threading.Thread(
            target=self.aggregator.run, name="aggregator", daemon=True
        )
        self._aggregator_thread.start()
        self.dispatcher.start()
        self._scheduler_thread = threading.Thread(
            target=self.scheduler.run, name="scheduler", daemon=True
        )
        self._scheduler_thread.start()

    def stop(self) -> None:
        """
        Stop enqueuing, let workers publish the probes they are running,
        aggregate everything already on the result queue, then return.
        Checks still waiting on the work queue are dropped.
        """
        self.stop_event.set()
        grace_s = self.timeout_s + 1.0

        if self._scheduler_thread is not None:
            self._scheduler_thread.join(grace_s)
        self.dispatcher.join(grace_s)

        dropped = self.work_queue.qsize()
        if dropped:
            logger.info("Dropping %d queued check(s) on shutdown", dropped)

        self.results_closed.set()
        if self._aggregator_thread is not None:
            self._aggregator_thread.join(grace_s)
        logger.info("Monitor stopped")


def build_monitor(config_path: str | Path, **kwargs) -> Monitor:
    checks, stats = group_into_domains(load_registry(config_path))
    logger.info("Loaded %d checks across %d domain(s)", len(checks), len(stats))
    return Monitor(checks, stats, **kwargs)
