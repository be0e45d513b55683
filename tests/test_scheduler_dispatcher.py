import queue
import threading
import time
import unittest

from healthchecker.checks.results import CheckResult
from healthchecker.dispatcher import Dispatcher
from healthchecker.models import Check
from healthchecker.scheduler import Scheduler


def _checks(n: int = 3):
    return [
        Check(name=f"c{i}", url=f"https://s{i}.example.com/", domain="example.com")
        for i in range(n)
    ]


class SchedulerTests(unittest.TestCase):
    def test_tick_enqueues_each_check_in_order(self) -> None:
        work = queue.Queue()
        checks = _checks(3)
        sched = Scheduler(checks, work, interval_s=15, stop_event=threading.Event())

        self.assertEqual(sched.tick(), 3)
        self.assertEqual([work.get_nowait().name for _ in range(3)], ["c0", "c1", "c2"])
        self.assertTrue(work.empty())

    def test_run_ticks_until_cancelled(self) -> None:
        work = queue.Queue()
        stop = threading.Event()
        sched = Scheduler(_checks(2), work, interval_s=0.02, stop_event=stop)
        t = threading.Thread(target=sched.run, daemon=True)

        self.assertEqual(sched.state, "idle")
        t.start()
        deadline = time.monotonic() + 2
        while sched.ticks < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        stop.set()
        t.join(1)

        self.assertFalse(t.is_alive())
        self.assertEqual(sched.state, "cancelled")
        self.assertGreaterEqual(sched.ticks, 2)
        self.assertGreaterEqual(work.qsize(), 4)

    def test_first_tick_waits_one_interval(self) -> None:
        work = queue.Queue()
        stop = threading.Event()
        sched = Scheduler(_checks(1), work, interval_s=5, stop_event=stop)
        t = threading.Thread(target=sched.run, daemon=True)
        t.start()
        time.sleep(0.05)
        stop.set()
        t.join(1)

        self.assertEqual(sched.ticks, 0)
        self.assertTrue(work.empty())


class DispatcherTests(unittest.TestCase):
    def _run(self, checks, probe, workers: int = 1):
        work, results, stop = queue.Queue(), queue.Queue(), threading.Event()
        dispatcher = Dispatcher(work, results, stop, workers=workers, probe=probe, poll_s=0.01)
        dispatcher.start()
        for c in checks:
            work.put(c)
        work.join()
        stop.set()
        dispatcher.join(1)
        out = []
        while not results.empty():
            out.append(results.get_nowait())
        return out

    def test_one_result_per_check(self) -> None:
        def probe(check):
            return CheckResult(name=check.name, domain=check.domain, success=True)

        results = self._run(_checks(5), probe)
        self.assertEqual([r.name for r in results], ["c0", "c1", "c2", "c3", "c4"])

    def test_worker_pool_keeps_one_result_per_check(self) -> None:
        def probe(check):
            time.sleep(0.01)
            return CheckResult(name=check.name, domain=check.domain, success=True)

        results = self._run(_checks(8), probe, workers=4)
        self.assertEqual(sorted(r.name for r in results), sorted(f"c{i}" for i in range(8)))

    def test_crashing_probe_yields_failed_result(self) -> None:
        def probe(check):
            if check.name == "c1":
                raise RuntimeError("boom")
            return CheckResult(name=check.name, domain=check.domain, success=True)

        with self.assertLogs("healthchecker.dispatcher", level="ERROR"):
            results = self._run(_checks(3), probe)

        by_name = {r.name: r for r in results}
        self.assertEqual(len(results), 3)
        self.assertFalse(by_name["c1"].success)
        self.assertIn("boom", by_name["c1"].error)
        self.assertEqual(by_name["c1"].domain, "example.com")
        self.assertTrue(by_name["c2"].success)


if __name__ == "__main__":
    unittest.main()
