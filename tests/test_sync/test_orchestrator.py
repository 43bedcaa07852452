"""Integration tests for SyncOrchestrator.

Test Strategy:
1. sync_league() preconditions, conflict and case-insensitive lookup
2. sync_teams_and_players() dedupe, skips, idempotence, squads
3. sync_matches() season filter, referential skip, status normalization
4. Metadata tracking and get_sync_status() health
5. Storage failures land in errors, upstream failures propagate

Each test follows the pattern:
- Given: Database with sample data and a mocked provider client
- When: SyncOrchestrator method is called
- Then: Correct results and database state
"""
import asyncio

import pytest
from unittest.mock import AsyncMock
from prometheus_client import REGISTRY
from sqlalchemy.orm import Session

from football_api.core.config import settings
from football_api.core.errors import (
    BadRequestError,
    ConflictError,
    ConnectivityError,
    InvalidUpstreamResponseError,
    NotFoundError,
)
from football_api.models import League, Match, Player, SyncMetadata, Team
from football_api.repositories import BaseRepository
from football_api.services.sync.orchestrator import SyncOrchestrator

SEASON = settings.SYNC_SEASON_TAG


def event(match_id, home="T1", away="T2", status="Finished", **extra):
    record = {
        "match_id": match_id,
        "match_date": "2025-08-16",
        "match_time": "15:00",
        "match_hometeam_id": home,
        "match_awayteam_id": away,
        "match_hometeam_ft_score": "2",
        "match_awayteam_ft_score": "1",
        "match_status": status,
        "league_year": SEASON,
    }
    record.update(extra)
    return record


class TestSyncLeague:

    @pytest.mark.asyncio
    async def test_creates_league_with_provider_casing(self, db_session: Session, fake_client: AsyncMock):
        fake_client.fetch_records.return_value = [
            {"league_id": "149", "league_name": "Championship", "country_name": "England"},
            {"league_id": "152", "league_name": "PREMIER LEAGUE", "country_name": "England",
             "league_logo": "https://img/152.png"},
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        league = await orchestrator.sync_league("premier league", " england ")

        assert league.id is not None
        assert league.name == "PREMIER LEAGUE"
        assert league.country == "England"
        assert league.external_ref == "152"
        assert league.logo_url == "https://img/152.png"
        fake_client.fetch_records.assert_awaited_once_with("get_leagues")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, country, message", [
        ("", "England", "League name is required and cannot be empty"),
        ("   ", "England", "League name is required and cannot be empty"),
        (None, "England", "League name is required and cannot be empty"),
        ("Premier League", "  ", "Country is required and cannot be empty"),
    ])
    async def test_requires_name_and_country(self, db_session, fake_client, name, country, message):
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        with pytest.raises(BadRequestError) as exc_info:
            await orchestrator.sync_league(name, country)

        assert exc_info.value.message == message
        fake_client.fetch_records.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_league_is_a_conflict(self, db_session, fake_client, sample_league):
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        with pytest.raises(ConflictError) as exc_info:
            await orchestrator.sync_league("PREMIER league", "england")

        assert exc_info.value.status_code == 409
        assert exc_info.value.data["externalRef"] == "PL1"
        fake_client.fetch_records.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_league_is_not_found(self, db_session, fake_client):
        fake_client.fetch_records.return_value = [
            {"league_id": "152", "league_name": "Premier League", "country_name": "England"},
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.sync_league("Premier League", "Scotland")

        assert exc_info.value.message == "League 'Premier League' from 'Scotland' not found in external API"
        assert db_session.query(League).count() == 0

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(self, db_session, fake_client):
        fake_client.fetch_records.side_effect = InvalidUpstreamResponseError()
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        with pytest.raises(InvalidUpstreamResponseError):
            await orchestrator.sync_league("Premier League", "England")


class TestSyncTeamsAndPlayers:

    @pytest.mark.asyncio
    async def test_duplicate_team_keys_keep_first(self, db_session, fake_client, sample_league):
        fake_client.fetch_records.return_value = [
            {"team_key": "T1", "team_name": "Arsenal"},
            {"team_key": "T1", "team_name": "Arsenal Dup"},
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_teams_and_players(sample_league.id)

        assert result["totalTeam"] == 1
        assert result["totalPlayer"] == 0
        assert result["errors"] == []
        assert [t.name for t in db_session.query(Team).all()] == ["Arsenal"]
        fake_client.fetch_records.assert_awaited_once_with("get_teams", {"league_id": "PL1"})

    @pytest.mark.asyncio
    async def test_syncs_squads(self, db_session, fake_client, sample_league):
        fake_client.fetch_records.return_value = [
            {
                "team_key": "T1", "team_name": "Arsenal",
                "players": [
                    {"player_id": "P1", "player_name": "B. Saka", "player_number": "7"},
                    {"player_id": "P2", "player_name": "M. Odegaard"},
                ],
            },
            {
                "team_key": "T2", "team_name": "Chelsea",
                "players": [
                    {"player_id": "P1", "player_name": "B. Saka (loan listing)"},
                    {"player_id": "P3", "player_name": "C. Palmer"},
                ],
            },
            {"team_key": "T3", "team_name": "Spurs", "players": "unavailable"},
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_teams_and_players(sample_league.id)

        assert result["totalTeam"] == 3
        assert result["totalPlayer"] == 3
        saka = db_session.query(Player).filter(Player.external_ref == "P1").one()
        assert saka.full_name == "B. Saka"
        assert saka.team.external_ref == "T1"
        assert saka.shirt_number == "7"

    @pytest.mark.asyncio
    async def test_resync_updates_instead_of_duplicating(self, db_session, fake_client, sample_league):
        records = [
            {"team_key": "T1", "team_name": "Arsenal",
             "players": [{"player_id": "P1", "player_name": "B. Saka"}]},
            {"team_key": "T2", "team_name": "Chelsea"},
        ]
        fake_client.fetch_records.return_value = records
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        first = await orchestrator.sync_teams_and_players(sample_league.id)
        team_ids = {t.external_ref: t.id for t in db_session.query(Team).all()}
        second = await orchestrator.sync_teams_and_players(sample_league.id)

        assert (first["totalTeam"], first["totalPlayer"]) == (2, 1)
        assert (second["totalTeam"], second["totalPlayer"]) == (0, 0)
        assert (second["teamsUpdated"], second["playersUpdated"]) == (2, 1)
        assert db_session.query(Team).count() == 2
        assert db_session.query(Player).count() == 1
        assert {t.external_ref: t.id for t in db_session.query(Team).all()} == team_ids

    @pytest.mark.asyncio
    async def test_records_missing_identity_are_skipped(self, db_session, fake_client, sample_league):
        fake_client.fetch_records.return_value = [
            {"team_name": "No Key FC"},
            {"team_key": "T1", "team_name": "Arsenal",
             "players": [{"player_id": "P1"}, {"player_id": "P2", "player_name": "B. White"}]},
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_teams_and_players(sample_league.id)

        assert result["totalTeam"] == 1
        assert result["totalPlayer"] == 1
        assert result["errors"] == []
        assert result["skipped"] == [
            {"externalRef": None, "reason": "Missing required team data: team_key"},
            {"externalRef": "P1", "reason": "Missing required player data: player_name"},
        ]

    @pytest.mark.asyncio
    async def test_squad_of_unstored_team_is_reported(self, db_session, fake_client, sample_league):
        fake_client.fetch_records.return_value = [
            {"team_key": "T9", "players": [{"player_id": "P9", "player_name": "N. Body"}]},
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_teams_and_players(sample_league.id)

        assert result["totalTeam"] == 0
        assert result["totalPlayer"] == 0
        assert result["skipped"] == [
            {"externalRef": "T9", "reason": "Missing required team data: team_name"},
            {"externalRef": "T9", "reason": "Team not stored"},
        ]
        assert db_session.query(Player).count() == 0

    @pytest.mark.asyncio
    async def test_skipped_records_are_counted(self, db_session, fake_client, sample_league):
        def skipped_count(entity):
            value = REGISTRY.get_sample_value(
                "football_sync_records_total", {"entity": entity, "outcome": "skipped"}
            )
            return value or 0.0

        fake_client.fetch_records.return_value = [
            {"team_name": "No Key FC"},
            {"team_key": "T1", "team_name": "Arsenal", "players": [{"player_id": "P1"}]},
        ]
        teams_before, players_before = skipped_count("team"), skipped_count("player")
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        await orchestrator.sync_teams_and_players(sample_league.id)

        assert skipped_count("team") - teams_before == 1
        assert skipped_count("player") - players_before == 1

    @pytest.mark.asyncio
    async def test_overlapping_syncs_of_one_league_are_serialized(self, db_session, fake_client, sample_league):
        order = []

        async def fetch_records(action, params=None):
            order.append("start")
            await asyncio.sleep(0.01)
            order.append("end")
            return []

        fake_client.fetch_records.side_effect = fetch_records

        await asyncio.gather(
            SyncOrchestrator(db_session, client=fake_client).sync_teams_and_players(sample_league.id),
            SyncOrchestrator(db_session, client=fake_client).sync_teams_and_players(sample_league.id),
        )

        assert order == ["start", "end", "start", "end"]

    @pytest.mark.asyncio
    async def test_unknown_league_is_not_found(self, db_session, fake_client):
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        with pytest.raises(NotFoundError):
            await orchestrator.sync_teams_and_players(999)

        fake_client.fetch_records.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_failure_lands_in_errors(self, db_session, fake_client, sample_league, monkeypatch):
        def broken_upsert(self, items, update_columns, conflict_column="external_ref"):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(BaseRepository, "bulk_upsert", broken_upsert)
        fake_client.fetch_records.return_value = [{"team_key": "T1", "team_name": "Arsenal"}]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_teams_and_players(sample_league.id)

        assert result["totalTeam"] == 0
        assert result["errors"] == ["Bulk operation failed: connection reset"]

        metadata = db_session.query(SyncMetadata).filter(SyncMetadata.data_type == "teams").one()
        assert metadata.last_sync_status == "partial"
        assert metadata.records_failed == 1

    @pytest.mark.asyncio
    async def test_upstream_failure_marks_sync_failed(self, db_session, fake_client, sample_league):
        fake_client.fetch_records.side_effect = ConnectivityError("provider down")
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        with pytest.raises(ConnectivityError):
            await orchestrator.sync_teams_and_players(sample_league.id)

        metadata = db_session.query(SyncMetadata).filter(SyncMetadata.data_type == "teams").one()
        assert metadata.last_sync_status == "failed"
        assert metadata.error_message == "provider down"


class TestSyncMatches:

    @pytest.mark.asyncio
    async def test_upserts_resolvable_matches(self, db_session, fake_client, sample_teams):
        league_id = sample_teams[0].league_id
        fake_client.fetch_records.return_value = [event("M1"), event("M2", home="T2", away="T1", status="")]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_matches(league_id)

        assert result == {"matchesAdded": 2, "matchesUpdated": 0, "skipped": [], "errors": []}
        m1 = db_session.query(Match).filter(Match.external_ref == "M1").one()
        assert m1.home_team_id == sample_teams[0].id
        assert m1.away_team_id == sample_teams[1].id
        assert m1.status == "finished"
        assert m1.venue == "Emirates Stadium"
        assert m1.match_date == "2025-08-16"
        assert m1.home_score == 2
        m2 = db_session.query(Match).filter(Match.external_ref == "M2").one()
        assert m2.status == "upcoming"
        assert m2.venue == "Stamford Bridge"

        fake_client.fetch_records.assert_awaited_once_with("get_events", {
            "league_id": "PL1",
            "from": settings.SYNC_EVENTS_FROM,
            "to": settings.SYNC_EVENTS_TO,
        })

    @pytest.mark.asyncio
    async def test_unresolvable_teams_are_skipped(self, db_session, fake_client, sample_teams):
        fake_client.fetch_records.return_value = [event("M1"), event("M2", away="T99")]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_matches(sample_teams[0].league_id)

        assert result["matchesAdded"] == 1
        assert result["skipped"] == [{"externalRef": "M2", "reason": "Teams not found"}]
        assert db_session.query(Match).count() == 1

    @pytest.mark.asyncio
    async def test_skipped_matches_are_counted(self, db_session, fake_client, sample_teams):
        def skipped_count():
            value = REGISTRY.get_sample_value(
                "football_sync_records_total", {"entity": "match", "outcome": "skipped"}
            )
            return value or 0.0

        fake_client.fetch_records.return_value = [event("M1", away="T99"), event("M2", home="T98")]
        before = skipped_count()
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        await orchestrator.sync_matches(sample_teams[0].league_id)

        assert skipped_count() - before == 2

    @pytest.mark.asyncio
    async def test_other_seasons_and_duplicates_are_dropped(self, db_session, fake_client, sample_teams):
        fake_client.fetch_records.return_value = [
            event("M1"),
            event("M1", status="Postponed"),
            event("M0", league_year="2024/2025"),
        ]
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_matches(sample_teams[0].league_id)

        assert result["matchesAdded"] == 1
        assert [m.status for m in db_session.query(Match).all()] == ["finished"]

    @pytest.mark.asyncio
    async def test_resync_updates_scores_and_status(self, db_session, fake_client, sample_teams):
        league_id = sample_teams[0].league_id
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        fake_client.fetch_records.return_value = [
            event("M1", status=None, match_hometeam_ft_score="", match_awayteam_ft_score=""),
        ]
        await orchestrator.sync_matches(league_id)

        fake_client.fetch_records.return_value = [event("M1", status="Finished")]
        result = await orchestrator.sync_matches(league_id)

        assert (result["matchesAdded"], result["matchesUpdated"]) == (0, 1)
        db_session.expire_all()
        match = db_session.query(Match).one()
        assert match.status == "finished"
        assert (match.home_score, match.away_score) == (2, 1)


class TestSyncStatus:

    @pytest.mark.asyncio
    async def test_status_reflects_last_runs(self, db_session, fake_client, sample_teams):
        league_id = sample_teams[0].league_id
        orchestrator = SyncOrchestrator(db_session, client=fake_client)
        fake_client.fetch_records.return_value = [event("M1")]
        await orchestrator.sync_matches(league_id)

        fake_client.fetch_records.side_effect = ConnectivityError("provider down")
        with pytest.raises(ConnectivityError):
            await orchestrator.sync_teams_and_players(league_id)

        status = orchestrator.get_sync_status(league_id)

        assert status["health_status"] == "degraded"
        assert status["total_jobs"] == 2
        jobs = {job["dataType"]: job for job in status["jobs"]}
        assert jobs["matches"]["status"] == "success"
        assert jobs["matches"]["created"] == 1
        assert jobs["teams"]["status"] == "failed"
        assert jobs["teams"]["error"] == "provider down"

    def test_no_runs_is_healthy(self, db_session, fake_client):
        status = SyncOrchestrator(db_session, client=fake_client).get_sync_status()

        assert status == {"health_status": "healthy", "total_jobs": 0, "success_count": 0, "jobs": []}


class TestSyncAllLeagues:

    @pytest.mark.asyncio
    async def test_failure_in_one_league_does_not_stop_others(self, db_session, fake_client, sample_league):
        other = League(external_ref="L2", name="La Liga", country="Spain")
        db_session.add(other)
        db_session.commit()

        async def fetch_records(action, params=None):
            if params["league_id"] == "PL1":
                raise ConnectivityError("provider down")
            return []

        fake_client.fetch_records.side_effect = fetch_records
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_all_leagues()

        assert result["leagues"] == 2
        assert result["succeeded"] == 1
        assert result["failed"] == 1
        assert result["details"][sample_league.id] == {"error": "provider down"}

    @pytest.mark.asyncio
    async def test_unexpected_error_in_one_league_does_not_stop_others(self, db_session, fake_client, sample_league):
        other = League(external_ref="L2", name="La Liga", country="Spain")
        db_session.add(other)
        db_session.commit()

        async def fetch_records(action, params=None):
            if params["league_id"] == "PL1":
                raise KeyError("boom")
            return []

        fake_client.fetch_records.side_effect = fetch_records
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        result = await orchestrator.sync_all_leagues()

        assert result["succeeded"] == 1
        assert result["failed"] == 1
        assert result["details"][sample_league.id] == {"error": "'boom'"}
        assert "error" not in result["details"][other.id]


class TestCleanup:

    @pytest.mark.asyncio
    async def test_cleanup_closes_client(self, db_session, fake_client):
        orchestrator = SyncOrchestrator(db_session, client=fake_client)

        await orchestrator.cleanup()

        fake_client.close.assert_awaited_once()
