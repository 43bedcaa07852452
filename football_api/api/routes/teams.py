"""Team and player sync route."""
from typing import Dict

from fastapi import APIRouter, Depends, Request

from football_api.api.deps import get_orchestrator
from football_api.core.auth import require_admin
from football_api.core.config import settings
from football_api.core.rate_limit import limiter
from football_api.services.sync.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/teams", tags=["teams"], dependencies=[Depends(require_admin)])


@router.post("/sync/{league_id}")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_teams(
    request: Request,
    league_id: int,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """
    Upsert the league's teams and their squads from the provider.

    Storage failures do not fail the request; they are listed in
    ``data.errors``. Records missing an identity field are listed in
    ``data.skipped``.
    """
    result = await orchestrator.sync_teams_and_players(league_id)
    return {
        "success": True,
        "message": "Teams and players synchronized successfully",
        "data": result,
    }
