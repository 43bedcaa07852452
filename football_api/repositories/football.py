"""
Repositories for the synced football entities.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from football_api.models import League, Team, SyncMetadata
from football_api.repositories.base import BaseRepository


class LeagueRepository(BaseRepository[League]):
    def __init__(self, db: Session):
        super().__init__(League, db)

    def find_by_name_and_country(self, name: str, country: str) -> Optional[League]:
        """Case-insensitive lookup on the (name, country) natural key."""
        return self.where_first(
            func.lower(League.name) == name.strip().lower(),
            func.lower(League.country) == country.strip().lower(),
        )

    def find_all(self) -> List[League]:
        return self.query().order_by(League.id).all()


class TeamRepository(BaseRepository[Team]):
    def __init__(self, db: Session):
        super().__init__(Team, db)

    def find_by_league(self, league_id: int) -> List[Team]:
        return self.where(Team.league_id == league_id)


class SyncMetadataRepository(BaseRepository[SyncMetadata]):
    def __init__(self, db: Session):
        super().__init__(SyncMetadata, db)

    def get_or_create(self, source: str, data_type: str, league_id: Optional[int] = None) -> SyncMetadata:
        """Get or create the metadata row for one sync scope (flushed, not committed)."""
        metadata = self.where_first(
            SyncMetadata.source == source,
            SyncMetadata.data_type == data_type,
            SyncMetadata.league_id == league_id,
        )
        if metadata is None:
            metadata = self.create(
                source=source,
                data_type=data_type,
                league_id=league_id,
                records_processed=0,
                records_created=0,
                records_updated=0,
                records_skipped=0,
                records_failed=0,
            )
        return metadata

    def find_for_league(self, league_id: Optional[int] = None) -> List[SyncMetadata]:
        query = self.query()
        if league_id is not None:
            query = query.filter(SyncMetadata.league_id == league_id)
        return query.order_by(SyncMetadata.league_id, SyncMetadata.data_type).all()

    def mark_started(self, metadata: SyncMetadata) -> None:
        metadata.last_sync_started_at = datetime.utcnow()
        metadata.last_sync_status = "running"
        metadata.error_message = None
