"""Derive the coarse domain key per check and seed per-domain counters.

The domain is the last two dot-separated labels of the URL hostname, so
``api.example.com`` and ``www.example.com`` both land under ``example.com``.
This is deliberately naive: multi-part public suffixes collapse to the
suffix itself (``sub.pages.example.co.uk`` groups as ``co.uk``).
"""

from __future__ import annotations

import ipaddress
from typing import Dict, List, Sequence, Tuple
from urllib.parse import urlsplit

from healthchecker.models import Check
from healthchecker.registry import ConfigError
from healthchecker.state import DomainStats


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def get_domain(url: object) -> str:
    try:
        hostname = urlsplit(str(url)).hostname
    except ValueError as exc:
        raise ConfigError(f"Error parsing url {url!r}: {exc}") from exc

    if not hostname:
        raise ConfigError(f"URL has no hostname: {url!r}")

    hostname = hostname.rstrip(".")
    if _is_ip_literal(hostname):
        raise ConfigError(
            f"Cannot derive a domain from IP address {hostname!r} in {url!r}"
        )

    labels = hostname.split(".")
    if len(labels) < 2 or not all(labels[-2:]):
        raise ConfigError(
            f"Hostname {hostname!r} in {url!r} needs at least two labels"
        )
    return ".".join(labels[-2:])


def group_into_domains(
    checks: Sequence[Check],
) -> Tuple[List[Check], Dict[str, DomainStats]]:
    """
    Annotate every check with its domain and build one zeroed DomainStats
    per distinct domain, in first-seen order.
    """
    annotated: List[Check] = []
    groups: Dict[str, DomainStats] = {}

    for c in checks:
        domain = get_domain(c.url)
        annotated.append(c.model_copy(update={"domain": domain}))
        if domain not in groups:
            groups[domain] = DomainStats()

    return annotated, groups
