"""Sync orchestrator for pulling football data from the provider into the local store.

This orchestrator coordinates, per entity family:
- Fetching provider records via FootballDataClient
- Deduplication by provider reference
- Mapping into table rows (skips for records missing identity fields)
- Team reference resolution for matches
- Bulk upserts via the Reconciler
- Sync metadata tracking and health reporting

Ordering within one league: teams are upserted before their players (players
need the team ids), and match sync resolves against teams already stored.

Failure policy:
- Precondition failures (missing input, unknown league, provider unreachable
  or malformed) raise FootballApiError subclasses.
- Storage failures never raise; they come back in the result's ``errors``.
"""
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from football_api.core import metrics
from football_api.core.config import settings
from football_api.core.errors import BadRequestError, ConflictError, FootballApiError, NotFoundError
from football_api.core.logging import get_logger
from football_api.models import League, SyncMetadata
from football_api.repositories import LeagueRepository, SyncMetadataRepository
from football_api.services.sync.client import FootballDataClient
from football_api.services.sync.dedupe import dedupe, field_key
from football_api.services.sync.locks import league_locks
from football_api.services.sync.mappers import (
    Skipped, find_league, map_league, map_match, map_player, map_team, split_results, try_map,
)
from football_api.services.sync.reconciler import Reconciler
from football_api.services.sync.resolver import TEAMS_NOT_FOUND, TeamRefResolver

logger = get_logger(__name__)

SOURCE = "football_api"

team_key = field_key("team_key")
player_key = field_key("player_id")
match_key = field_key("match_id")

# Reason given for a team whose squad was dropped because the team row was not stored
TEAM_NOT_STORED = "Team not stored"


class SyncRun:
    """Bookkeeping for one tracked sync: timing plus the SyncMetadata row."""

    def __init__(self, metadata: SyncMetadata, family: str):
        self.metadata = metadata
        self.family = family
        self.started = time.perf_counter()

    @property
    def duration_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)

    def complete(self, processed: int, created: int, updated: int, skipped: int, errors: List[str], failed: int = 0) -> None:
        status = "partial" if errors else "success"
        metadata = self.metadata
        metadata.last_sync_completed_at = datetime.utcnow()
        metadata.last_sync_status = status
        metadata.records_processed = processed
        metadata.records_created = created
        metadata.records_updated = updated
        metadata.records_skipped = skipped
        metadata.records_failed = failed
        metadata.sync_duration_ms = self.duration_ms
        metadata.error_message = "; ".join(errors) if errors else None
        metrics.sync_runs_total.labels(family=self.family, status=status).inc()
        metrics.sync_duration_seconds.labels(family=self.family).observe(self.duration_ms / 1000)

    def fail(self, error: BaseException) -> None:
        self.metadata.last_sync_status = "failed"
        self.metadata.error_message = str(error)
        self.metadata.sync_duration_ms = self.duration_ms
        metrics.sync_runs_total.labels(family=self.family, status="failed").inc()


class SyncOrchestrator:
    """
    Entry point for league, team+player and match synchronization.

    All sync operations should go through this orchestrator.
    """

    def __init__(self, db: Session, client: Optional[FootballDataClient] = None):
        """
        Args:
            db: SQLAlchemy database session
            client: Provider client (created lazily from settings when omitted)
        """
        self.db = db
        self._client = client
        self.leagues = LeagueRepository(db)
        self.sync_metadata = SyncMetadataRepository(db)
        self.reconciler = Reconciler(db)

    @property
    def client(self) -> FootballDataClient:
        """Lazy load the provider client."""
        if self._client is None:
            self._client = FootballDataClient()
        return self._client

    # ========================================================================
    # League sync
    # ========================================================================

    async def sync_league(self, league_name: Optional[str], league_country: Optional[str]) -> League:
        """
        Create one league from the provider catalog.

        Leagues are never re-synced: an existing (name, country) is a conflict.
        The stored row keeps the provider's spelling, not the caller's.

        Raises:
            BadRequestError: name or country empty
            ConflictError: league already stored
            NotFoundError: no provider league matches
            ConnectivityError, InvalidUpstreamResponseError: provider failure
        """
        name = (league_name or "").strip()
        country = (league_country or "").strip()
        if not name:
            raise BadRequestError("League name is required and cannot be empty")
        if not country:
            raise BadRequestError("Country is required and cannot be empty")

        existing = self.leagues.find_by_name_and_country(name, country)
        if existing is not None:
            raise ConflictError("League already exists in database", data=existing.to_dict())

        records = await self.client.fetch_records("get_leagues")
        match = find_league(records, name, country)
        if match is None:
            raise NotFoundError(f"League '{name}' from '{country}' not found in external API")

        row = map_league(match)
        duplicate = self.leagues.where_first(League.external_ref == row["external_ref"])
        if duplicate is not None:
            raise ConflictError("League already exists in database", data=duplicate.to_dict())

        league = self.leagues.create(**row)
        self.leagues.save()
        self.leagues.refresh(league)

        metrics.sync_runs_total.labels(family="leagues", status="success").inc()
        logger.info(
            f"League synced: {league.name} ({league.country})",
            extra={"league_id": league.id, "external_ref": league.external_ref},
        )
        return league

    # ========================================================================
    # Team + player sync
    # ========================================================================

    async def sync_teams_and_players(self, league_id: int) -> Dict[str, Any]:
        """
        Upsert every team of a league, then every player of those teams.

        Returns:
            {totalTeam, totalPlayer, teamsUpdated, playersUpdated, skipped, errors}
            where totalTeam/totalPlayer count newly created rows.

        Raises:
            NotFoundError: league not stored
            ConnectivityError, InvalidUpstreamResponseError: provider failure
        """
        league = self._get_league(league_id)
        league_ref = league.external_ref

        async with league_locks.hold(league_id):
            with self._tracked("teams", league_id) as run:
                raw_teams = await self.client.fetch_records("get_teams", {"league_id": league_ref})
                teams = dedupe(raw_teams, team_key)

                team_rows, skipped = split_results(
                    try_map(map_team, team, league_id, reference_key="team_key") for team in teams
                )
                team_result = self.reconciler.reconcile("team", team_rows)
                team_ids = team_result.ids_by_ref()

                candidates = []
                for team in teams:
                    team_id = team_ids.get(team_key(team))
                    players = team.get("players") if isinstance(team, dict) else None
                    if not isinstance(players, list):
                        continue
                    if team_id is None:
                        if players:
                            skipped.append(Skipped(team_key(team), TEAM_NOT_STORED))
                        continue
                    candidates.extend((player, team_id) for player in players)

                candidates = dedupe(candidates, lambda pair: player_key(pair[0]))
                player_rows, player_skips = split_results(
                    try_map(map_player, player, team_id, reference_key="player_id")
                    for player, team_id in candidates
                )
                skipped.extend(player_skips)
                player_result = self.reconciler.reconcile("player", player_rows)
                metrics.record_sync_outcome("team", created=0, updated=0, skipped=len(skipped) - len(player_skips))
                metrics.record_sync_outcome("player", created=0, updated=0, skipped=len(player_skips))

                errors = team_result.errors + player_result.errors
                failed = (len(team_rows) if team_result.errors else 0) + (
                    len(player_rows) if player_result.errors else 0
                )
                run.complete(
                    processed=len(teams) + len(candidates),
                    created=team_result.created + player_result.created,
                    updated=team_result.updated + player_result.updated,
                    skipped=len(skipped),
                    errors=errors,
                    failed=failed,
                )

        logger.info(
            f"Team sync for league {league_id}: {team_result.created} teams created, "
            f"{team_result.updated} updated; {player_result.created} players created, "
            f"{player_result.updated} updated; {len(skipped)} skipped, {len(errors)} errors",
            extra={"league_id": league_id},
        )

        return {
            "totalTeam": team_result.created,
            "totalPlayer": player_result.created,
            "teamsUpdated": team_result.updated,
            "playersUpdated": player_result.updated,
            "skipped": [skip.to_dict() for skip in skipped],
            "errors": errors,
        }

    # ========================================================================
    # Match sync
    # ========================================================================

    async def sync_matches(self, league_id: int) -> Dict[str, Any]:
        """
        Upsert the league's fixtures for the tracked season.

        Fixtures whose home or away team is not stored for this league are
        skipped with reason "Teams not found"; the rest of the batch goes on.

        Returns:
            {matchesAdded, matchesUpdated, skipped, errors}

        Raises:
            NotFoundError: league not stored
            ConnectivityError, InvalidUpstreamResponseError: provider failure
        """
        league = self._get_league(league_id)
        league_ref = league.external_ref

        async with league_locks.hold(league_id):
            with self._tracked("matches", league_id) as run:
                events = await self.client.fetch_records("get_events", {
                    "league_id": league_ref,
                    "from": settings.SYNC_EVENTS_FROM,
                    "to": settings.SYNC_EVENTS_TO,
                })
                season_events = [
                    event for event in events
                    if isinstance(event, dict) and event.get("league_year") == settings.SYNC_SEASON_TAG
                ]

                resolver = TeamRefResolver.for_league(self.db, league_id)
                unique_events = dedupe(season_events, match_key)

                results = []
                for event in unique_events:
                    teams = resolver.resolve_pair(
                        event.get("match_hometeam_id"), event.get("match_awayteam_id")
                    )
                    if teams is None:
                        results.append(Skipped(match_key(event), TEAMS_NOT_FOUND))
                        continue
                    home, away = teams
                    results.append(try_map(
                        map_match, event, league_id, home.id, away.id, home.stadium_name,
                        reference_key="match_id",
                    ))

                match_rows, skipped = split_results(results)
                match_result = self.reconciler.reconcile("match", match_rows)
                metrics.record_sync_outcome("match", created=0, updated=0, skipped=len(skipped))

                run.complete(
                    processed=len(unique_events),
                    created=match_result.created,
                    updated=match_result.updated,
                    skipped=len(skipped),
                    errors=match_result.errors,
                    failed=len(match_rows) if match_result.errors else 0,
                )

        logger.info(
            f"Match sync for league {league_id}: {match_result.created} added, "
            f"{match_result.updated} updated, {len(skipped)} skipped "
            f"({len(season_events)}/{len(events)} events in season {settings.SYNC_SEASON_TAG})",
            extra={"league_id": league_id},
        )

        return {
            "matchesAdded": match_result.created,
            "matchesUpdated": match_result.updated,
            "skipped": [skip.to_dict() for skip in skipped],
            "errors": match_result.errors,
        }

    # ========================================================================
    # Scheduled sync
    # ========================================================================

    async def sync_all_leagues(self) -> Dict[str, Any]:
        """
        Run team+player then match sync for every stored league.

        A league whose sync raises is reported and the next one still runs.
        """
        league_ids = [league.id for league in self.leagues.find_all()]
        results: Dict[str, Any] = {"leagues": len(league_ids), "succeeded": 0, "failed": 0, "details": {}}

        for league_id in league_ids:
            try:
                teams = await self.sync_teams_and_players(league_id)
                matches = await self.sync_matches(league_id)
            except FootballApiError as e:
                logger.warning(f"Sync of league {league_id} aborted: {e.message}", extra={"league_id": league_id})
                results["failed"] += 1
                results["details"][league_id] = {"error": e.message}
                continue
            except Exception as e:
                logger.exception(f"Sync of league {league_id} failed unexpectedly: {e}", extra={"league_id": league_id})
                self.leagues.rollback()
                results["failed"] += 1
                results["details"][league_id] = {"error": str(e)}
                continue

            results["succeeded"] += 1
            results["details"][league_id] = {"teams": teams, "matches": matches}

        return results

    # ========================================================================
    # Status
    # ========================================================================

    def get_sync_status(self, league_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Return sync health aggregated from sync_metadata.

        healthy: every tracked sync last succeeded; degraded: some did;
        unhealthy: none did.
        """
        entries = self.sync_metadata.find_for_league(league_id)

        success_count = sum(1 for m in entries if m.last_sync_status == "success")
        if not entries or success_count == len(entries):
            health_status = "healthy"
        elif success_count > 0:
            health_status = "degraded"
        else:
            health_status = "unhealthy"

        return {
            "health_status": health_status,
            "total_jobs": len(entries),
            "success_count": success_count,
            "jobs": [
                {
                    "leagueId": m.league_id,
                    "dataType": m.data_type,
                    "status": m.last_sync_status,
                    "running": league_locks.is_locked(m.league_id),
                    "lastStartedAt": m.last_sync_started_at.isoformat() if m.last_sync_started_at else None,
                    "lastCompletedAt": m.last_sync_completed_at.isoformat() if m.last_sync_completed_at else None,
                    "processed": m.records_processed,
                    "created": m.records_created,
                    "updated": m.records_updated,
                    "skipped": m.records_skipped,
                    "failed": m.records_failed,
                    "durationMs": m.sync_duration_ms,
                    "error": m.error_message,
                }
                for m in entries
            ],
        }

    # ========================================================================
    # Helpers
    # ========================================================================

    def _get_league(self, league_id: int) -> League:
        league = self.leagues.find_by_id(league_id)
        if league is None:
            raise NotFoundError("League not found")
        return league

    @contextmanager
    def _tracked(self, data_type: str, league_id: Optional[int]) -> Iterator[SyncRun]:
        """Record a sync run in sync_metadata; marks it failed if the body raises."""
        metadata = self.sync_metadata.get_or_create(SOURCE, data_type, league_id)
        self.sync_metadata.mark_started(metadata)
        self.sync_metadata.save()

        run = SyncRun(metadata, data_type)
        try:
            yield run
        except Exception as e:
            self.sync_metadata.rollback()
            run.fail(e)
            self.sync_metadata.save()
            raise
        self.sync_metadata.save()

    async def cleanup(self) -> None:
        """Close the provider client if this orchestrator opened one."""
        if self._client is not None:
            await self._client.close()
