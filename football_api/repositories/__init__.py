"""
Repository layer for data access.

Usage:
    from football_api.repositories import TeamRepository
    from football_api.core.database import SessionLocal

    db = SessionLocal()
    teams = TeamRepository(db).find_by_league(1)
    db.close()
"""

from football_api.repositories.base import BaseRepository, UpsertedRow
from football_api.repositories.football import (
    LeagueRepository,
    TeamRepository,
    SyncMetadataRepository,
)

__all__ = [
    "BaseRepository",
    "UpsertedRow",
    "LeagueRepository",
    "TeamRepository",
    "SyncMetadataRepository",
]
