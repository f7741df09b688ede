from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from .config import LotterySettings, load_config
from .errors import ConfigError, QuantityOutOfRange
from .logs import DEFAULT_LOG_DIR, configure_logging, shutdown_logging
from .notifier import build_notifier
from .purchase import check_quantity
from .scheduler import LotteryScheduler, default_jobs
from .tasks import AccountResult, LotteryTasks


def build_tasks(settings: LotterySettings, logger: logging.Logger) -> LotteryTasks:
    notifier = build_notifier(settings.telegram, logger=logger)
    return LotteryTasks(settings, notifier=notifier, logger=logger)


def install_signal_handlers(stop_event: threading.Event, logger: logging.Logger) -> None:
    def _stop(signum, _frame) -> None:
        logger.info("Received signal %s; stopping after the current job.", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)


def _exit_code(results: List[AccountResult]) -> int:
    return 0 if all(result.ok for result in results) else 1


def run(args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        settings = load_config(args.env_file)
    except ConfigError as exc:
        logger.error("Configuration failed: %s", exc)
        return 2
    if args.quantity is not None:
        settings = settings.copy(quantity=args.quantity)
    if settings.verbose or settings.log_dir != DEFAULT_LOG_DIR:
        logger = configure_logging(args.verbose or settings.verbose, settings.log_dir)
    settings.describe(logger)

    tasks = build_tasks(settings, logger)

    if args.service:
        scheduler = LotteryScheduler(settings, default_jobs(tasks), logger=logger)
        stop_event = threading.Event()
        install_signal_handlers(stop_event, logger)
        scheduler.run_forever(stop_event)
        return 0

    if args.check:
        return _exit_code(tasks.check_balance())
    if args.check_and_buy:
        return _exit_code(tasks.check_balance_and_buy())
    if args.winning:
        return _exit_code(tasks.check_winning())
    if args.dry_run:
        return _exit_code(tasks.dry_run())
    return _exit_code(tasks.buy_lotto())


def _quantity(value: str) -> int:
    try:
        return check_quantity(int(value))
    except (ValueError, QuantityOutOfRange) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="dhlottery Lotto 6/45 auto-purchase")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with credentials")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--service", action="store_true", help="Run the weekly scheduler until stopped.")
    mode.add_argument("--once", action="store_true", help="Buy once and exit (default).")
    mode.add_argument("--check", action="store_true", help="Check deposit balances only.")
    mode.add_argument("--check-and-buy", action="store_true", help="Check balances, then buy where funded.")
    mode.add_argument("--winning", action="store_true", help="Check the latest draw against the ledger.")
    mode.add_argument("--dry-run", action="store_true", help="Log in and open the game page without buying.")
    parser.add_argument("--quantity", type=_quantity, default=None, help="Games to buy (1-5).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging (default INFO).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = configure_logging(args.verbose)
    try:
        return run(args, logger)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
        return 130
    finally:
        shutdown_logging(logger)


if __name__ == "__main__":
    sys.exit(main())
