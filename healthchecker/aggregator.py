from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Dict, List

from healthchecker.checks.results import CheckResult
from healthchecker.formatting import format_report
from healthchecker.state import DomainStats, StatsStore

logger = logging.getLogger(__name__)

ReportSink = Callable[[List[str]], None]


def print_report(lines: List[str]) -> None:
    for line in lines:
        print(line, flush=True)


class Aggregator:
    """
    Fold CheckResults into per-domain counters and report once per round.

    A round is ``round_size`` results, one per configured check. Counters are
    cumulative since start unless ``reset_each_round`` is set.
    """

    def __init__(
        self,
        stats: Dict[str, DomainStats],
        round_size: int,
        result_queue: "queue.Queue[CheckResult]",
        closed_event: threading.Event,
        sink: ReportSink | None = None,
        reset_each_round: bool = False,
        poll_s: float = 0.1,
    ) -> None:
        if round_size < 1:
            raise ValueError("round_size must be at least 1")
        self.store = StatsStore(stats)
        self.round_size = round_size
        self.result_queue = result_queue
        self._closed = closed_event
        self.sink = sink or print_report
        self.reset_each_round = reset_each_round
        self.poll_s = poll_s
        self.rounds = 0
        self._pending = 0

    def consume(self, result: CheckResult) -> List[str] | None:
        """Record one result; returns the report lines when it closes a round."""
        st = self.store.record(result.domain, result.success)
        logger.debug(
            "%s (%s): success=%s up=%d total=%d",
            result.name,
            result.domain,
            result.success,
            st.up,
            st.total,
        )
        self._pending += 1
        if self._pending < self.round_size:
            return None
        return self.report()

    def report(self) -> List[str]:
        lines = format_report(self.store.items())
        for domain, st in self.store.items():
            logger.debug("%s Up: %d Total: %d", domain, st.up, st.total)
        self.rounds += 1
        self._pending = 0
        if self.reset_each_round:
            self.store.reset()
        return lines

    def _emit(self, lines: List[str]) -> None:
        try:
            self.sink(lines)
        except Exception:
            # Report output errors should never stop the aggregation loop.
            logger.exception("Report sink failed")

    def run(self) -> None:
        while True:
            try:
                result = self.result_queue.get(timeout=self.poll_s)
            except queue.Empty:
                if self._closed.is_set():
                    break
                continue
            lines = self.consume(result)
            if lines is not None:
                self._emit(lines)

        if self._pending:
            logger.info("Reporting partial round of %d result(s)", self._pending)
            self._emit(self.report())
        logger.info("Aggregator stopped after %d round(s)", self.rounds)
