from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Sequence

from healthchecker.registry import ConfigError
from healthchecker.runner import build_monitor

logger = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="healthchecker",
        description="Probe HTTP endpoints and report per-domain availability.",
    )
    parser.add_argument("config", help="Path to the YAML check list")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log per-probe timing diagnostics to stderr",
    )
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # basicConfig is a no-op once the root logger has handlers.
    logging.getLogger().setLevel(level)
    # Keep transport chatter out of the timing diagnostics.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.verbose)

    try:
        monitor = build_monitor(args.config)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    def _handle_signal(signum, _frame) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        monitor.stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    monitor.start()
    monitor.stop_event.wait()
    monitor.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
