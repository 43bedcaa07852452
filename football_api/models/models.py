"""
Database models for the football data API.

Every synced entity carries ``external_ref``, the provider's stable id, with a
unique constraint: the bulk upserts in the sync layer conflict on it.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, JSON, Index, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class League(Base):
    """Competition synced from the provider catalog (``get_leagues``)."""
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_ref = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    country = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    teams = relationship("Team", back_populates="league")
    matches = relationship("Match", back_populates="league")

    __table_args__ = (
        Index('ix_leagues_name_country', 'name', 'country'),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "externalRef": self.external_ref,
            "logoUrl": self.logo_url,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class Team(Base):
    """Club owned by the league it was last synced under."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)
    external_ref = Column(String(50), unique=True, nullable=False, index=True)  # provider team_key
    name = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=True)
    founded_year = Column(Integer, nullable=True)
    country = Column(String(255), nullable=True)
    stadium_name = Column(String(255), nullable=True)
    venue_address = Column(String(500), nullable=True)
    stadium_city = Column(String(255), nullable=True)
    stadium_capacity = Column(Integer, nullable=True)
    coach = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)  # generated narrative, not synced
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    league = relationship("League", back_populates="teams")
    players = relationship("Player", back_populates="team")


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    external_ref = Column(String(50), unique=True, nullable=False, index=True)  # provider player_id
    full_name = Column(String(255), nullable=False)
    primary_position = Column(String(100), nullable=True)
    age = Column(Integer, nullable=True)
    shirt_number = Column(String(10), nullable=True)
    thumb_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    team = relationship("Team", back_populates="players")


class Match(Base):
    """Fixture between two stored teams. Date and time are kept as the provider sends them."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)
    home_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    away_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    external_ref = Column(String(50), unique=True, nullable=False, index=True)  # provider match_id
    match_date = Column(String(10), nullable=True, index=True)  # YYYY-MM-DD
    match_time = Column(String(8), nullable=True)  # HH:MM
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    status = Column(String(50), nullable=False, default="upcoming", index=True)
    venue = Column(String(255), nullable=True)

    # Generated narrative, never written by the sync path
    match_preview = Column(Text, nullable=True)
    prediction = Column(Text, nullable=True)
    predicted_score_home = Column(Text, nullable=True)
    predicted_score_away = Column(Text, nullable=True)
    statistics = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    league = relationship("League", back_populates="matches")
    home_team = relationship("Team", foreign_keys=[home_team_id])
    away_team = relationship("Team", foreign_keys=[away_team_id])


class SyncMetadata(Base):
    """Outcome of the latest sync per (source, data_type, league)."""
    __tablename__ = "sync_metadata"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(50), nullable=False)
    data_type = Column(String(50), nullable=False)  # leagues, teams, matches
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=True, index=True)
    last_sync_started_at = Column(DateTime, nullable=True)
    last_sync_completed_at = Column(DateTime, nullable=True)
    last_sync_status = Column(String(20), nullable=True)  # running, success, partial, failed
    records_processed = Column(Integer, nullable=False, default=0)
    records_created = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_skipped = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)
    sync_duration_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('source', 'data_type', 'league_id', name='uq_sync_metadata_scope'),
    )
