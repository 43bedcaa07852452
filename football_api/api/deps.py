"""Shared FastAPI dependencies for the sync routes."""
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.orm import Session

from football_api.core.database import get_db
from football_api.services.sync.orchestrator import SyncOrchestrator


async def get_orchestrator(db: Session = Depends(get_db)) -> AsyncGenerator[SyncOrchestrator, None]:
    """Dependency to get a sync orchestrator; its provider client is closed after the request."""
    orchestrator = SyncOrchestrator(db)
    try:
        yield orchestrator
    finally:
        await orchestrator.cleanup()
