from __future__ import annotations

from typing import Iterable, List, Tuple

from healthchecker.state import DomainStats


def format_availability(domain: str, stats: DomainStats) -> str:
    availability = stats.availability()
    if availability is None:
        availability = 0.0
    return f"{domain} has {availability:.0f}% availability percentage"


def format_report(stats: Iterable[Tuple[str, DomainStats]]) -> List[str]:
    return [format_availability(domain, st) for domain, st in stats]
