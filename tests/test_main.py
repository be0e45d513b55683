import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from healthchecker.main import main
from healthchecker.runner import build_monitor


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        urllib3_logger = logging.getLogger("urllib3")
        saved = (root.level, list(root.handlers), urllib3_logger.level)

        def restore() -> None:
            root.setLevel(saved[0])
            for handler in list(root.handlers):
                if handler not in saved[1]:
                    root.removeHandler(handler)
                    handler.close()
            urllib3_logger.setLevel(saved[2])

        self.addCleanup(restore)

    def test_config_error_exits_non_zero_without_starting(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "checks.yml"
            path.write_text("- name: local\n  url: http://localhost:8080/\n")

            with patch("healthchecker.runner.Monitor.start") as start, self.assertLogs(
                "healthchecker.main", level="ERROR"
            ):
                rc = main([str(path)])

        self.assertEqual(rc, 1)
        start.assert_not_called()

    def test_missing_config_exits_non_zero(self) -> None:
        with tempfile.TemporaryDirectory() as td, self.assertLogs(
            "healthchecker.main", level="ERROR"
        ):
            rc = main([str(Path(td) / "missing.yml")])
        self.assertEqual(rc, 1)

    def _run_main(self, *flags: str):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "checks.yml"
            path.write_text("- name: index\n  url: https://example.com/\n")

            def fake_start(monitor):
                monitor.stop_event.set()

            with patch("healthchecker.runner.Monitor.start", fake_start), patch(
                "healthchecker.runner.Monitor.stop"
            ) as stop, patch("healthchecker.main.signal.signal"):
                rc = main([str(path), *flags])
        return rc, stop

    def test_runs_until_stop_event(self) -> None:
        rc, stop = self._run_main("--verbose")

        self.assertEqual(rc, 0)
        stop.assert_called_once()
        self.assertEqual(logging.getLogger().level, logging.DEBUG)
        self.assertEqual(logging.getLogger("urllib3").level, logging.WARNING)

    def test_default_log_level_is_info(self) -> None:
        rc, _ = self._run_main()

        self.assertEqual(rc, 0)
        self.assertEqual(logging.getLogger().level, logging.INFO)


class BuildMonitorTests(unittest.TestCase):
    def test_groups_checks_before_monitoring(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "checks.yml"
            path.write_text(
                "- name: api\n  url: https://api.example.com/\n"
                "- name: www\n  url: https://www.example.com/\n"
                "- name: status\n  url: https://status.example.org/\n"
            )
            monitor = build_monitor(path, interval_s=15, timeout_s=0.5)

        self.assertEqual(
            [c.domain for c in monitor.scheduler.checks],
            ["example.com", "example.com", "example.org"],
        )
        self.assertEqual(
            monitor.aggregator.store.snapshot(),
            {"example.com": {"up": 0, "total": 0}, "example.org": {"up": 0, "total": 0}},
        )
        self.assertEqual(monitor.aggregator.round_size, 3)


if __name__ == "__main__":
    unittest.main()
