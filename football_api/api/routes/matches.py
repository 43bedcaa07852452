"""Match sync route."""
from typing import Dict

from fastapi import APIRouter, Depends, Request

from football_api.api.deps import get_orchestrator
from football_api.core.auth import require_admin
from football_api.core.config import settings
from football_api.core.rate_limit import limiter
from football_api.services.sync.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/matches", tags=["matches"], dependencies=[Depends(require_admin)])


@router.post("/sync/{league_id}")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_matches(
    request: Request,
    league_id: int,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Upsert the league's fixtures for the configured season window."""
    result = await orchestrator.sync_matches(league_id)
    return {
        "success": True,
        "message": "Matches synchronized successfully",
        "data": result,
    }
