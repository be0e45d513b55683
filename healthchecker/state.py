from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Tuple

logger = logging.getLogger(__name__)


@dataclass
class DomainStats:
    up: int = 0
    total: int = 0

    def record(self, success: bool) -> None:
        self.total += 1
        if success:
            self.up += 1

    def availability(self) -> float | None:
        """Percentage of successful probes, or None before the first probe."""
        if self.total == 0:
            return None
        return 100.0 * self.up / self.total

    def reset(self) -> None:
        self.up = 0
        self.total = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class StatsStore:
    """
    Per-domain availability counters.

    Not thread-safe: the aggregator thread is the only writer, every other
    component reaches it through the result queue.
    """

    def __init__(self, stats: Dict[str, DomainStats] | None = None) -> None:
        self._stats: Dict[str, DomainStats] = dict(stats or {})

    def __contains__(self, domain: str) -> bool:
        return domain in self._stats

    def __len__(self) -> int:
        return len(self._stats)

    def items(self) -> Iterator[Tuple[str, DomainStats]]:
        return iter(self._stats.items())

    def get(self, domain: str) -> DomainStats:
        return self._stats[domain]

    def record(self, domain: str, success: bool) -> DomainStats:
        st = self._stats.get(domain)
        if st is None:
            logger.warning("Result for ungrouped domain %s, adding it", domain)
            st = self._stats[domain] = DomainStats()
        st.record(success)
        return st

    def reset(self) -> None:
        for st in self._stats.values():
            st.reset()

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {k: v.to_dict() for k, v in self._stats.items()}
