"""Translate provider records into rows for the local tables.

Provider JSON is loose: any field may be missing, null, or an empty string.
Every mapper below is total over that input: each field it reads is listed
with its default, and only the identity fields are required. A record missing
an identity field raises MissingRequiredFieldError; batch callers go through
``try_map`` and get a ``Skipped`` instead.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from football_api.core.errors import MissingRequiredFieldError

Record = Dict[str, Any]

DEFAULT_MATCH_STATUS = "upcoming"


@dataclass(frozen=True)
class Mapped:
    record: Record


@dataclass(frozen=True)
class Skipped:
    reference: Optional[str]
    reason: str

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"externalRef": self.reference, "reason": self.reason}


MapResult = Union[Mapped, Skipped]


def _value(external: Any, key: str) -> Any:
    """Field value, with blank strings read as missing."""
    if not isinstance(external, dict):
        return None
    value = external.get(key)
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _int_value(external: Any, key: str) -> Optional[int]:
    """Integer field; anything that is not a whole number reads as missing."""
    value = _value(external, key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _require(external: Record, entity: str, *keys: str) -> None:
    missing = [key for key in keys if _value(external, key) is None]
    if missing:
        raise MissingRequiredFieldError(entity, missing)


def _ref(value: Any) -> str:
    return str(value).strip()


def map_league(external: Record) -> Record:
    """
    Provider league → leagues row.

    Reads: league_id, league_name, country_name (required); league_logo.
    """
    _require(external, "league", "league_id", "league_name", "country_name")
    return {
        "external_ref": _ref(external["league_id"]),
        "name": external["league_name"],
        "country": external["country_name"],
        "logo_url": _value(external, "league_logo"),
    }


def find_league(records: Iterable[Record], name: str, country: str) -> Optional[Record]:
    """First provider league whose name and country match, ignoring case and padding."""
    wanted = (name.strip().lower(), country.strip().lower())
    for record in records:
        league_name = _value(record, "league_name")
        country_name = _value(record, "country_name")
        if league_name is None or country_name is None:
            continue
        if (str(league_name).strip().lower(), str(country_name).strip().lower()) == wanted:
            return record
    return None


def map_team(external: Record, league_id: int) -> Record:
    """
    Provider team → teams row.

    Reads: team_key, team_name (required); team_badge, team_founded,
    team_country, venue.{venue_name, venue_address, venue_city,
    venue_capacity}, coaches[0].coach_name.
    """
    _require(external, "team", "team_name", "team_key")

    venue = external.get("venue")
    if not isinstance(venue, dict):
        venue = {}

    coaches = external.get("coaches")
    coach = _value(coaches[0], "coach_name") if isinstance(coaches, list) and coaches else None

    now = datetime.utcnow()
    return {
        "external_ref": _ref(external["team_key"]),
        "league_id": league_id,
        "name": external["team_name"],
        "logo_url": _value(external, "team_badge"),
        "founded_year": _int_value(external, "team_founded"),
        "country": _value(external, "team_country"),
        "stadium_name": _value(venue, "venue_name"),
        "venue_address": _value(venue, "venue_address"),
        "stadium_city": _value(venue, "venue_city"),
        "stadium_capacity": _int_value(venue, "venue_capacity"),
        "coach": coach,
        "last_synced_at": now,
        "created_at": now,
        "updated_at": now,
    }


def map_player(external: Record, team_id: int) -> Record:
    """
    Provider player → players row.

    Reads: player_id, player_name (required); player_type, player_image,
    player_age, player_number.
    """
    _require(external, "player", "player_name", "player_id")
    now = datetime.utcnow()
    return {
        "external_ref": _ref(external["player_id"]),
        "team_id": team_id,
        "full_name": external["player_name"],
        "primary_position": _value(external, "player_type"),
        "thumb_url": _value(external, "player_image"),
        "age": _int_value(external, "player_age"),
        "shirt_number": _value(external, "player_number"),
        "created_at": now,
        "updated_at": now,
    }


def normalize_status(status: Any) -> str:
    if status is None:
        return DEFAULT_MATCH_STATUS
    normalized = str(status).strip().lower()
    return normalized or DEFAULT_MATCH_STATUS


def map_match(
    external: Record,
    league_id: int,
    home_team_id: int,
    away_team_id: int,
    venue: Optional[str] = None,
) -> Record:
    """
    Provider event → matches row.

    Reads: match_id (required); match_date, match_time,
    match_hometeam_ft_score, match_awayteam_ft_score, match_status.
    Date, time and scores pass through untouched.
    """
    _require(external, "match", "match_id")
    now = datetime.utcnow()
    return {
        "external_ref": _ref(external["match_id"]),
        "league_id": league_id,
        "home_team_id": home_team_id,
        "away_team_id": away_team_id,
        "match_date": _value(external, "match_date"),
        "match_time": _value(external, "match_time"),
        "home_score": _value(external, "match_hometeam_ft_score"),
        "away_score": _value(external, "match_awayteam_ft_score"),
        "status": normalize_status(external.get("match_status")),
        "venue": venue,
        "created_at": now,
        "updated_at": now,
    }


def try_map(mapper: Callable[..., Record], external: Record, *args: Any, reference_key: str) -> MapResult:
    """Run a mapper, turning a missing identity field into a Skipped result."""
    try:
        return Mapped(mapper(external, *args))
    except MissingRequiredFieldError as e:
        reference = _value(external, reference_key)
        return Skipped(_ref(reference) if reference is not None else None, e.message)


def split_results(results: Iterable[MapResult]) -> "tuple[List[Record], List[Skipped]]":
    """Partition mapper results into rows to store and skips to report."""
    records: List[Record] = []
    skipped: List[Skipped] = []
    for result in results:
        if isinstance(result, Mapped):
            records.append(result.record)
        else:
            skipped.append(result)
    return records, skipped
