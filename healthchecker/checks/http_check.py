"""Single bounded-timeout HTTP probe with per-phase latency samples.

The request runs on a short-lived helper thread so the caller can stop
waiting at the deadline even while the transport is blocked (DNS lookups in
particular ignore the requests timeout). Phase timings come from urllib3
connection subclasses mounted on a per-probe session; they report into a
thread-local recorder owned by the helper thread.

A helper that misses the deadline is abandoned, not killed. It exits once
the requests connect/read timeouts fire, except while it is blocked in the
system resolver, which only gives up after its own timeout (resolv.conf
`timeout` x `attempts`). helpers_running() reports how many are still alive.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import replace

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import NameResolutionError, NewConnectionError

from healthchecker.checks.results import CheckResult, ProbeTimings
from healthchecker.config import settings
from healthchecker.models import Check

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

_probe_local = threading.local()

_helpers_lock = threading.Lock()
_helpers_running = 0


def helpers_running() -> int:
    """Number of request helper threads that have not returned yet."""
    with _helpers_lock:
        return _helpers_running


def _count_helper(delta: int) -> None:
    global _helpers_running
    with _helpers_lock:
        _helpers_running += delta


def _ms(start: float, end: float) -> float:
    return (end - start) * 1000.0


def _current_timings() -> ProbeTimings | None:
    return getattr(_probe_local, "timings", None)


class _TimedConnectionMixin:
    def _new_conn(self):
        timings = _current_timings()
        if timings is None:
            return super()._new_conn()

        host = self._dns_host
        start = time.perf_counter()
        try:
            infos = socket.getaddrinfo(host, self.port, 0, socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise NameResolutionError(self.host, self, e) from e
        resolved = time.perf_counter()
        timings.dns_ms = _ms(start, resolved)

        # Connect to the resolved addresses in order; self.host still drives
        # the Host header and SNI, so the name is looked up only once.
        addresses = list(dict.fromkeys(info[4][0] for info in infos))
        last_error: NewConnectionError | None = None
        try:
            for address in addresses:
                self._dns_host = address
                try:
                    sock = super()._new_conn()
                except NewConnectionError as e:
                    last_error = e
                    continue
                timings.connect_ms = _ms(resolved, time.perf_counter())
                return sock
        finally:
            self._dns_host = host
        if last_error is None:
            raise NameResolutionError(
                self.host, self, socket.gaierror(f"no addresses for {host}")
            )
        raise last_error


class _TimedHTTPConnection(_TimedConnectionMixin, HTTPConnection):
    pass


class _TimedHTTPSConnection(_TimedConnectionMixin, HTTPSConnection):
    def connect(self):
        start = time.perf_counter()
        super().connect()
        timings = _current_timings()
        if timings is None or timings.connect_ms is None:
            return
        total = _ms(start, time.perf_counter())
        timings.tls_ms = max(0.0, total - timings.connect_ms - (timings.dns_ms or 0.0))


class _TimedHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _TimedHTTPConnection


class _TimedHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _TimedHTTPSConnection


class TimingAdapter(HTTPAdapter):
    """HTTPAdapter whose connections record DNS, connect and TLS durations."""

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _TimedHTTPConnectionPool,
            "https": _TimedHTTPSConnectionPool,
        }


def _send_request(
    check: Check, timeout_s: float, timings: ProbeTimings, user_agent: str
) -> int:
    _count_helper(1)
    _probe_local.timings = timings
    try:
        with requests.Session() as session:
            adapter = TimingAdapter(max_retries=0)
            session.mount("http://", adapter)
            session.mount("https://", adapter)

            headers = {"User-Agent": user_agent}
            headers.update(check.headers)
            data = None
            if check.body is not None and check.method in BODY_METHODS:
                data = check.body.encode("utf-8")

            start = time.perf_counter()
            with session.request(
                check.method,
                str(check.url),
                headers=headers,
                data=data,
                timeout=(timeout_s, timeout_s),
                allow_redirects=False,
                stream=True,
            ) as resp:
                timings.ttfb_ms = _ms(start, time.perf_counter())
                return resp.status_code
    finally:
        _probe_local.timings = None
        _count_helper(-1)


def _log_timings(check: Check, timings: ProbeTimings) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if timings.dns_ms is not None:
        logger.debug("%s DNS done: %.1fms", check.name, timings.dns_ms)
    if timings.connect_ms is not None:
        logger.debug("%s Connect time: %.1fms", check.name, timings.connect_ms)
    if timings.tls_ms is not None:
        logger.debug("%s TLS handshake: %.1fms", check.name, timings.tls_ms)
    if timings.ttfb_ms is not None:
        logger.debug(
            "%s Time from start to first byte: %.1fms", check.name, timings.ttfb_ms
        )


def run_http(
    check: Check,
    timeout_s: float | None = None,
    user_agent: str | None = None,
) -> CheckResult:
    """
    Probe ``check`` once. Success means HTTP 200 received in under
    ``timeout_s``; every transport failure becomes ``success=False``.
    """
    if timeout_s is None:
        timeout_s = settings.timeout_s
    if user_agent is None:
        user_agent = settings.HEALTHCHECK_USER_AGENT

    logger.debug("Sending request: %s %s %s", check.name, check.method, check.url)

    timings = ProbeTimings()
    status_code: int | None = None
    error: str | None = None

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="probe")
    start = time.perf_counter()
    try:
        future = executor.submit(_send_request, check, timeout_s, timings, user_agent)
        status_code = future.result(timeout=timeout_s)
    except FutureTimeoutError:
        error = f"no response within {timeout_s:.3f}s"
        logger.debug(
            "%s missed the deadline, %d request helper(s) still running",
            check.name,
            helpers_running(),
        )
    except Exception as e:
        error = str(e) or type(e).__name__
    finally:
        executor.shutdown(wait=False)
    elapsed = time.perf_counter() - start
    latency_ms = int(elapsed * 1000)

    # The helper thread may still be writing after a missed deadline.
    timings = replace(timings)
    _log_timings(check, timings)

    ok = status_code == 200 and elapsed < timeout_s
    if error is not None:
        logger.debug("%s failed after %sms: %s", check.name, latency_ms, error)
    elif not ok:
        logger.debug("%s down: HTTP %s in %sms", check.name, status_code, latency_ms)

    return CheckResult(
        name=check.name,
        domain=check.domain or "",
        success=ok,
        latency_ms=latency_ms,
        status_code=status_code,
        error=error,
        timings=timings,
    )
