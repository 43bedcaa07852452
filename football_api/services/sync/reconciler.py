"""Reconciliation engine: one bulk upsert per entity batch.

A batch either lands completely or not at all. A storage failure is data, not
a fault: it is rolled back and reported in ``errors`` with zero counts, and
``reconcile`` never raises past this layer.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from football_api.core import metrics
from football_api.core.logging import get_logger
from football_api.models import Team, Player, Match
from football_api.repositories import BaseRepository, UpsertedRow

logger = get_logger(__name__)

BULK_FAILURE_PREFIX = "Bulk operation failed: "

ENTITY_MODELS = {
    "team": Team,
    "player": Player,
    "match": Match,
}

# Overwritten on conflict. Never the primary key, external_ref or created_at;
# never the generated narrative columns, which the mappers do not produce.
UPDATABLE_COLUMNS = {
    "team": (
        "league_id", "name", "logo_url", "founded_year", "country",
        "stadium_name", "venue_address", "stadium_city", "stadium_capacity",
        "coach", "last_synced_at", "updated_at",
    ),
    "player": (
        "team_id", "full_name", "primary_position", "thumb_url", "age",
        "shirt_number", "updated_at",
    ),
    "match": (
        "league_id", "home_team_id", "away_team_id", "match_date", "match_time",
        "home_score", "away_score", "status", "venue", "updated_at",
    ),
}


@dataclass
class ReconcileResult:
    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)
    rows: List[UpsertedRow] = field(default_factory=list)

    def ids_by_ref(self) -> Dict[str, int]:
        return {row.external_ref: row.id for row in self.rows}


class Reconciler:
    """Writes mapped batches to storage and classifies the outcome per row."""

    def __init__(self, db: Session):
        self.db = db

    def reconcile(self, entity_type: str, records: List[Dict[str, Any]]) -> ReconcileResult:
        """
        Upsert one batch keyed by external_ref and count created vs updated rows.

        Args:
            entity_type: "team", "player" or "match"
            records: Mapped, deduplicated rows

        Returns:
            ReconcileResult; on storage failure counts are zero and ``errors``
            holds one "Bulk operation failed: ..." entry.
        """
        result = ReconcileResult()
        if not records:
            return result

        model = ENTITY_MODELS[entity_type]
        repository = BaseRepository(model, self.db)

        try:
            rows = repository.bulk_upsert(records, UPDATABLE_COLUMNS[entity_type])
            repository.save()
        except Exception as e:
            repository.rollback()
            logger.error(
                f"Bulk {entity_type} upsert of {len(records)} records failed: {e}",
                extra={"entity": entity_type},
            )
            result.errors.append(f"{BULK_FAILURE_PREFIX}{e}")
            metrics.record_sync_outcome(entity_type, created=0, updated=0, failed=len(records))
            return result

        for row in rows:
            if row.created:
                result.created += 1
            else:
                result.updated += 1
        result.rows = rows

        metrics.record_sync_outcome(entity_type, created=result.created, updated=result.updated)
        logger.info(
            f"Reconciled {len(rows)} {entity_type} records: "
            f"{result.created} created, {result.updated} updated",
            extra={"entity": entity_type},
        )
        return result
