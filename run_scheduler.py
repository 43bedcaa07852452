#!/usr/bin/env python3
"""
Background runner for the football data sync scheduler.

Runs the league sync scheduler as a standalone service, for deployments where
the API process keeps SCHEDULER_ENABLED off. It can be run via systemd,
supervisor, or directly.

Usage:
    python run_scheduler.py            # Run in foreground
    python run_scheduler.py --once     # Sync every league once and exit
"""
import argparse
import asyncio
import signal
import sys

from football_api.core.config import settings
from football_api.core.database import init_db
from football_api.core.logging import configure_logging, get_logger
from football_api.core.scheduler import SyncScheduler, sync_all_leagues_job

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the sync scheduler."""

    def __init__(self):
        self.scheduler = SyncScheduler()
        self.shutdown = asyncio.Event()

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("Starting scheduler runner...")
        await self.scheduler.start()
        logger.info("Scheduler is now running, press Ctrl+C to stop")

        # Setup signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        await self.shutdown.wait()

        await self.scheduler.stop()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        logger.info("Shutdown signal received")
        self.shutdown.set()


def main() -> int:
    parser = argparse.ArgumentParser(description="Football data sync scheduler")
    parser.add_argument("--once", action="store_true", help="sync every stored league once and exit")
    args = parser.parse_args()

    init_db()

    if args.once:
        result = asyncio.run(sync_all_leagues_job())
        if result is None or result["failed"]:
            return 1
        return 0

    asyncio.run(SchedulerRunner().start())
    return 0


if __name__ == "__main__":
    sys.exit(main())
