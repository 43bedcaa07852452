"""
Automated task scheduler for the football data API.

This module provides scheduled background jobs for:
- Team, player and match sync of every stored league

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import uuid
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from football_api.core import metrics
from football_api.core.config import settings
from football_api.core.database import SessionLocal
from football_api.core.logging import clear_correlation_id, get_logger, set_correlation_id
from football_api.services.sync.orchestrator import SyncOrchestrator

logger = get_logger(__name__)


async def sync_all_leagues_job() -> Optional[Dict[str, Any]]:
    """Sync every stored league; failures are logged, never raised into APScheduler."""
    token = set_correlation_id(f"scheduler-{uuid.uuid4()}")
    db = SessionLocal()
    orchestrator = SyncOrchestrator(db)
    try:
        result = await orchestrator.sync_all_leagues()
        logger.info(
            f"League sync: {result['succeeded']}/{result['leagues']} leagues synced, "
            f"{result['failed']} failed"
        )
        return result
    except Exception as e:
        logger.error(f"League sync failed: {e}", exc_info=True)
        return None
    finally:
        await orchestrator.cleanup()
        db.close()
        clear_correlation_id(token)


class SyncScheduler:
    """
    Scheduler for the background league sync.

    All scheduled jobs should be defined here with clear
    schedules and error handling.
    """

    def __init__(self, sync_hours: Optional[str] = None, timezone: Optional[str] = None):
        self.sync_hours = sync_hours or settings.SCHEDULER_SYNC_HOURS
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting sync scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # Only one instance of each job
                "misfire_grace_time": 300,  # 5 minutes grace for misfires
            },
        )

        self._schedule_league_sync()

        self.scheduler.start()
        self.running = True
        metrics.scheduler_running.set(1)

        logger.info(f"Scheduler started with {len(self.scheduler.get_jobs())} jobs")
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        metrics.scheduler_running.set(0)
        logger.info("Scheduler stopped")

    def _schedule_league_sync(self):
        """
        Schedule: Sync teams, players and matches of every stored league.

        Frequency: SCHEDULER_SYNC_HOURS (cron hour field), at :00
        """
        self.scheduler.add_job(
            sync_all_leagues_job,
            trigger=CronTrigger(hour=self.sync_hours, minute=0, timezone=self.timezone),
            id="league_sync",
            name="Sync all leagues",
            misfire_grace_time=600,
        )
        logger.info(f"Scheduled: League sync (hours {self.sync_hours} {self.timezone})")

    def job_summaries(self) -> List[Dict[str, Any]]:
        if self.scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "nextRunAt": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self.scheduler.get_jobs()
        ]

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        for job in self.job_summaries():
            logger.info(f"  {job['name']} ({job['id']}), next run: {job['nextRunAt'] or 'pending'}")


# Global scheduler instance
_scheduler: Optional[SyncScheduler] = None


async def start_scheduler() -> SyncScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = SyncScheduler()
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[SyncScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
