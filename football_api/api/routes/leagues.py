"""League sync route."""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field

from football_api.api.deps import get_orchestrator
from football_api.core.auth import require_admin
from football_api.core.config import settings
from football_api.core.rate_limit import limiter
from football_api.services.sync.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/leagues", tags=["leagues"], dependencies=[Depends(require_admin)])


class LeagueSyncRequest(BaseModel):
    """Both fields are checked by the orchestrator so blanks get its own 400 message."""

    model_config = ConfigDict(populate_by_name=True)

    league_name: Optional[str] = Field(None, alias="leagueName")
    league_country: Optional[str] = Field(None, alias="leagueCountry")


@router.post("/sync", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_league(
    request: Request,
    payload: Optional[LeagueSyncRequest] = None,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """
    Create a league from the provider catalog by name and country.

    Returns 409 when the league is already stored and 404 when the provider
    does not list it.
    """
    payload = payload or LeagueSyncRequest()
    league = await orchestrator.sync_league(payload.league_name, payload.league_country)
    return {
        "success": True,
        "message": "League synchronized successfully",
        "data": league.to_dict(),
    }
