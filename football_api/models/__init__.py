"""
Relational model for leagues, teams, players, matches and sync bookkeeping.

Usage:
    from football_api.models import League, Team, Player, Match
"""
from football_api.models.models import (
    Base,
    League,
    Team,
    Player,
    Match,
    SyncMetadata,
)

__all__ = [
    "Base",
    "League",
    "Team",
    "Player",
    "Match",
    "SyncMetadata",
]
