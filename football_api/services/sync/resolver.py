"""Resolve provider team references to stored team ids.

Built once per sync call from the league's stored teams and thrown away
afterwards, so a resolver never sees teams synced after it was built.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from football_api.repositories import TeamRepository

TEAMS_NOT_FOUND = "Teams not found"


@dataclass(frozen=True)
class ResolvedTeam:
    id: int
    stadium_name: Optional[str] = None


class TeamRefResolver:
    """In-memory ``external_ref -> team`` lookup for one league."""

    def __init__(self, teams: Dict[str, ResolvedTeam]):
        self._teams = teams

    @classmethod
    def for_league(cls, db: Session, league_id: int) -> "TeamRefResolver":
        teams = TeamRepository(db).find_by_league(league_id)
        return cls({
            team.external_ref: ResolvedTeam(id=team.id, stadium_name=team.stadium_name)
            for team in teams
        })

    def __len__(self) -> int:
        return len(self._teams)

    def lookup(self, external_ref: Any) -> Optional[ResolvedTeam]:
        if external_ref is None:
            return None
        ref = str(external_ref).strip()
        if not ref:
            return None
        return self._teams.get(ref)

    def resolve_team_ref(self, external_ref: Any) -> Optional[int]:
        """Internal team id for a provider team key, or None."""
        team = self.lookup(external_ref)
        return team.id if team else None

    def resolve_pair(
        self, home_ref: Any, away_ref: Any
    ) -> Optional[Tuple[ResolvedTeam, ResolvedTeam]]:
        """Both teams of a fixture, or None unless both resolve."""
        home = self.lookup(home_ref)
        away = self.lookup(away_ref)
        if home is None or away is None:
            return None
        return home, away
