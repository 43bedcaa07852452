"""Sync API routes for data synchronization health.

Provides endpoints for:
- Sync health monitoring per league
- Scheduler status
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from football_api.api.deps import get_orchestrator
from football_api.core.auth import require_admin
from football_api.core.scheduler import get_scheduler
from football_api.services.sync.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/sync", tags=["sync"], dependencies=[Depends(require_admin)])


@router.get("/status")
async def get_sync_status(
    league_id: Optional[int] = Query(None, description="Limit to one league"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """
    Get sync health status dashboard.

    Returns aggregated status from sync_metadata including:
    - Health status (healthy, degraded, unhealthy)
    - Last run times, counts and error per league and data type
    - Whether the background scheduler is running
    """
    status = orchestrator.get_sync_status(league_id=league_id)
    scheduler = get_scheduler()
    status["scheduler"] = {
        "running": bool(scheduler and scheduler.running),
        "jobs": scheduler.job_summaries() if scheduler and scheduler.running else [],
    }
    return {"success": True, "data": status}
