"""
Command-line entry point for the reactive caching worker.

    reactive-cache-worker --subjects myapp.cache_subjects [--consumer-name NAME]

Each ``--subjects`` module is imported before the worker starts; importing it
must register its subject types on ``get_reactive_cache_service()``.
"""

import argparse
import asyncio
import importlib
import signal
import sys

from reactive_cache.core.logging.logger import get_logger, setup_logging
from reactive_cache.worker.reactive_caching_worker import ReactiveCachingWorker

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reactive-cache-worker",
        description="Run compute cycles for reactive cache subjects.",
    )
    parser.add_argument(
        "--subjects",
        action="append",
        required=True,
        metavar="MODULE",
        help="Module that registers subject types (repeatable)",
    )
    parser.add_argument("--consumer-name", default=None, help="Stream consumer name")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR, CRITICAL")
    parser.add_argument("--log-format", choices=("json", "console"), default=None)
    return parser


def load_subject_modules(modules: list[str]) -> None:
    for module in modules:
        importlib.import_module(module)
        logger.info("Subject module loaded", stage="WORKER.CLI", module=module)


async def run_worker(consumer_name: str | None = None) -> None:
    worker = ReactiveCachingWorker(consumer_name=consumer_name)
    await worker.initialize()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        await worker.start()
    finally:
        await worker.cleanup()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_format)

    try:
        load_subject_modules(args.subjects)
    except ImportError as e:
        logger.error("Failed to import subject module", stage="WORKER.CLI", error=str(e))
        return 2

    asyncio.run(run_worker(args.consumer_name))
    return 0


if __name__ == "__main__":
    sys.exit(main())
