from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ProbeTimings:
    dns_ms: float | None = None
    connect_ms: float | None = None
    tls_ms: float | None = None
    ttfb_ms: float | None = None


@dataclass(frozen=True)
class CheckResult:
    name: str
    domain: str
    success: bool
    latency_ms: int = 0
    status_code: int | None = None
    error: str | None = None
    timings: ProbeTimings = field(default_factory=ProbeTimings)
