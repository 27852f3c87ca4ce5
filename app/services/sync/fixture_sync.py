"""
Fixture sync service.

Translates Sportmonks fixture objects into canonical fixtures:
identity by external id (falling back to an unlinked fixture with the
same teams on the same UTC date), then update-in-place or insert.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.models import Fixture, FixtureStatus
from app.services.sportmonks_client import SportmonksClient
from app.services.sync.base import BaseSyncService, DATA_SOURCE, parse_int, parse_utc_datetime
from app.services.sync.summary import (
    SyncSummary,
    MISSING_ID,
    MISSING_PARTICIPANTS,
    MISSING_KICKOFF,
    UNMAPPED_TEAM,
    SAME_TEAM,
)
from app.services.sync.team_resolver import TeamResolver
from app.utils.timestamps import ensure_utc

logger = logging.getLogger(__name__)

INSERTED = "inserted"
UPDATED = "updated"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
FAILED = "failed"


# ==================== Status mapping ====================

# Sportmonks v3 developer state names + football-data.org vocabulary
STATUS_MAP: dict[str, FixtureStatus] = {
    # Scheduled
    "NS": FixtureStatus.scheduled,
    "TBA": FixtureStatus.scheduled,
    "DELAYED": FixtureStatus.scheduled,
    "PENDING": FixtureStatus.scheduled,
    "SCHEDULED": FixtureStatus.scheduled,
    "TIMED": FixtureStatus.scheduled,
    "NOT_STARTED": FixtureStatus.scheduled,
    # Live
    "LIVE": FixtureStatus.live,
    "INPLAY_1ST_HALF": FixtureStatus.live,
    "HT": FixtureStatus.live,
    "BREAK": FixtureStatus.live,
    "INPLAY_2ND_HALF": FixtureStatus.live,
    "EXTRA_TIME_BREAK": FixtureStatus.live,
    "INPLAY_ET": FixtureStatus.live,
    "INPLAY_ET_2ND_HALF": FixtureStatus.live,
    "PEN_BREAK": FixtureStatus.live,
    "INPLAY_PENALTIES": FixtureStatus.live,
    "AWAITING_UPDATES": FixtureStatus.live,
    "IN_PLAY": FixtureStatus.live,
    "PAUSED": FixtureStatus.live,
    # Finished
    "FT": FixtureStatus.finished,
    "AET": FixtureStatus.finished,
    "FT_PEN": FixtureStatus.finished,
    "AWARDED": FixtureStatus.finished,
    "WO": FixtureStatus.finished,
    "FINISHED": FixtureStatus.finished,
    # Postponed
    "POSTP": FixtureStatus.postponed,
    "POSTPONED": FixtureStatus.postponed,
    # Suspended
    "SUSP": FixtureStatus.suspended,
    "SUSPENDED": FixtureStatus.suspended,
    "INTERRUPTED": FixtureStatus.suspended,
    # Canceled
    "CANCL": FixtureStatus.canceled,
    "CANCELED": FixtureStatus.canceled,
    "CANCELLED": FixtureStatus.canceled,
    "ABAN": FixtureStatus.canceled,
    "ABANDONED": FixtureStatus.canceled,
    "DELETED": FixtureStatus.canceled,
}


def map_status(raw: str | None) -> FixtureStatus:
    """Map any provider status string to a canonical status. Unknown -> scheduled."""
    if not raw or not isinstance(raw, str):
        return FixtureStatus.scheduled
    key = raw.strip().upper().replace(" ", "_").replace("-", "_")
    return STATUS_MAP.get(key, FixtureStatus.scheduled)


# ==================== Payload extraction ====================

def extract_status(payload: dict[str, Any]) -> str | None:
    """Raw provider status: state.developer_name / state.state / short_name, else "status"."""
    state = payload.get("state")
    if isinstance(state, dict):
        for key in ("developer_name", "state", "short_name"):
            if state.get(key):
                return state[key]
    elif isinstance(state, str):
        return state
    status = payload.get("status")
    return status if isinstance(status, str) else None


def extract_participants(
    payload: dict[str, Any],
) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """
    Return (home, away) participant objects.

    Uses meta.location; falls back to list order when locations are absent.
    """
    participants = [p for p in payload.get("participants") or [] if isinstance(p, dict)]
    home = away = None
    for participant in participants:
        location = (participant.get("meta") or {}).get("location")
        if location == "home" and home is None:
            home = participant
        elif location == "away" and away is None:
            away = participant

    if home is None and away is None and len(participants) >= 2:
        home, away = participants[0], participants[1]
    return home, away


def extract_scores(
    payload: dict[str, Any],
    home_external_id: int | None,
    away_external_id: int | None,
) -> tuple[int | None, int | None]:
    """Goals from the CURRENT score entries, by participant_id or score.participant side."""
    home_score = away_score = None
    for entry in payload.get("scores") or []:
        if not isinstance(entry, dict) or entry.get("description") != "CURRENT":
            continue
        score = entry.get("score") or {}
        goals = parse_int(score.get("goals"))
        participant_id = parse_int(entry.get("participant_id"))
        side = score.get("participant")

        if participant_id is not None and participant_id == home_external_id:
            home_score = goals
        elif participant_id is not None and participant_id == away_external_id:
            away_score = goals
        elif side == "home":
            home_score = goals
        elif side == "away":
            away_score = goals
    return home_score, away_score


def extract_kickoff(payload: dict[str, Any]) -> datetime | None:
    """Kickoff in UTC from starting_at_timestamp, else starting_at."""
    kickoff = parse_utc_datetime(payload.get("starting_at_timestamp"))
    if kickoff is None:
        kickoff = parse_utc_datetime(payload.get("starting_at"))
    return kickoff


def _nested_name(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if isinstance(value, dict) and value.get("name") is not None:
        return str(value["name"]).strip() or None
    return None


def extract_round(payload: dict[str, Any]) -> tuple[int | None, str | None]:
    """(matchday, round_name). Matchday is set when the round name is numeric."""
    round_name = _nested_name(payload, "round")
    return parse_int(round_name), round_name


def extract_stage(payload: dict[str, Any]) -> str | None:
    return _nested_name(payload, "stage")


def extract_venue(payload: dict[str, Any]) -> str | None:
    return _nested_name(payload, "venue")


def extract_primary_station(payload: dict[str, Any]) -> tuple[str | None, int | None]:
    """Name and id of the first TV-station entry, for quick display."""
    for entry in payload.get("tvstations") or []:
        if not isinstance(entry, dict):
            continue
        station = entry.get("tvstation") or {}
        station_id = parse_int(station.get("id")) or parse_int(entry.get("tvstation_id"))
        return station.get("name"), station_id
    return None, None


def _same_value(current: Any, new: Any) -> bool:
    if isinstance(current, datetime) and isinstance(new, datetime):
        return ensure_utc(current) == ensure_utc(new)
    return current == new


@dataclass
class FixtureSyncResult:
    outcome: str
    fixture_id: int | None = None


# ==================== Service ====================

class FixtureSyncService(BaseSyncService):
    """
    Upsert canonical fixtures from Sportmonks fixture objects.

    One fixture is one unit of work: it is committed on its own, and a
    store error rolls back only that fixture.
    """

    # Always overwritten with the provider value
    OVERWRITE_FIELDS = (
        "home_team_id", "away_team_id", "utc_kickoff", "competition_id",
        "status", "home_score", "away_score", "data_source",
        "broadcaster", "broadcaster_id",
    )
    # Only overwritten when the provider sends a value
    FILL_FIELDS = ("matchday", "round_name", "stage_name", "venue")

    def __init__(
        self,
        db: AsyncSession,
        client: SportmonksClient | None = None,
        settings: Settings | None = None,
        resolver: TeamResolver | None = None,
    ):
        super().__init__(db, client, settings)
        self.resolver = resolver or TeamResolver(db)

    async def find_existing(
        self, external_id: int, home_team_id: int, away_team_id: int, kickoff: datetime
    ) -> Fixture | None:
        """Fixture by external id, else an unlinked fixture with the same teams on the same UTC date."""
        result = await self.db.execute(
            select(Fixture).where(Fixture.sportmonks_fixture_id == external_id)
        )
        fixture = result.scalar_one_or_none()
        if fixture is not None:
            return fixture

        day_start = datetime.combine(kickoff.date(), time.min, tzinfo=timezone.utc)
        result = await self.db.execute(
            select(Fixture)
            .where(
                Fixture.sportmonks_fixture_id.is_(None),
                Fixture.home_team_id == home_team_id,
                Fixture.away_team_id == away_team_id,
                Fixture.utc_kickoff >= day_start,
                Fixture.utc_kickoff < day_start + timedelta(days=1),
            )
            .order_by(Fixture.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    def build_values(
        self,
        payload: dict[str, Any],
        home_team_id: int,
        away_team_id: int,
        home_external_id: int | None,
        away_external_id: int | None,
        kickoff: datetime,
        competition_id: int | None,
    ) -> dict[str, Any]:
        home_score, away_score = extract_scores(payload, home_external_id, away_external_id)
        matchday, round_name = extract_round(payload)
        broadcaster, broadcaster_id = extract_primary_station(payload)
        return {
            "home_team_id": home_team_id,
            "away_team_id": away_team_id,
            "utc_kickoff": kickoff,
            "competition_id": competition_id,
            "status": map_status(extract_status(payload)),
            "home_score": home_score,
            "away_score": away_score,
            "data_source": DATA_SOURCE,
            "matchday": matchday,
            "round_name": round_name,
            "stage_name": extract_stage(payload),
            "venue": extract_venue(payload),
            "broadcaster": broadcaster,
            "broadcaster_id": broadcaster_id,
        }

    def _diff(self, fixture: Fixture, values: dict[str, Any]) -> dict[str, Any]:
        changes = {}
        for key in self.OVERWRITE_FIELDS:
            if not _same_value(getattr(fixture, key), values[key]):
                changes[key] = values[key]
        for key in self.FILL_FIELDS:
            if values[key] is not None and not _same_value(getattr(fixture, key), values[key]):
                changes[key] = values[key]
        return changes

    async def sync_fixture(
        self,
        payload: dict[str, Any],
        competition_id: int | None,
        summary: SyncSummary,
        dry_run: bool = False,
    ) -> FixtureSyncResult:
        """
        Sync one provider fixture.

        Args:
            payload: Sportmonks fixture object
            competition_id: Our competition ID
            summary: Run summary to record the outcome in
            dry_run: Classify and count without writing

        Returns:
            FixtureSyncResult with the outcome and the canonical fixture id
        """
        summary.processed += 1
        external_id = parse_int(payload.get("id"))
        if external_id is None:
            summary.record_skip(MISSING_ID, None, "fixture without id")
            return FixtureSyncResult(SKIPPED)

        home, away = extract_participants(payload)
        if home is None or away is None:
            summary.record_skip(MISSING_PARTICIPANTS, external_id)
            logger.info(f"Fixture {external_id}: skipped, missing participants")
            return FixtureSyncResult(SKIPPED)

        home_external_id = parse_int(home.get("id"))
        away_external_id = parse_int(away.get("id"))
        home_team_id = await self.resolver.resolve_id(home_external_id)
        away_team_id = await self.resolver.resolve_id(away_external_id)

        unresolved = []
        for side, team_id, external_team_id, participant in (
            ("home", home_team_id, home_external_id, home),
            ("away", away_team_id, away_external_id, away),
        ):
            if team_id is None:
                name = participant.get("name") or "?"
                unresolved.append(f"{side} {external_team_id} ({name})")
                if external_team_id is not None:
                    summary.unresolved_teams[external_team_id] = name
        if unresolved:
            detail = ", ".join(unresolved)
            summary.record_skip(UNMAPPED_TEAM, external_id, detail)
            logger.info(f"Fixture {external_id}: skipped, unmapped team {detail}")
            return FixtureSyncResult(SKIPPED)

        if home_team_id == away_team_id:
            summary.record_skip(SAME_TEAM, external_id, f"both sides resolve to team {home_team_id}")
            logger.warning(f"Fixture {external_id}: skipped, both sides resolve to team {home_team_id}")
            return FixtureSyncResult(SKIPPED)

        kickoff = extract_kickoff(payload)
        if kickoff is None:
            summary.record_skip(MISSING_KICKOFF, external_id)
            logger.info(f"Fixture {external_id}: skipped, no kickoff time")
            return FixtureSyncResult(SKIPPED)

        values = self.build_values(
            payload, home_team_id, away_team_id,
            home_external_id, away_external_id, kickoff, competition_id,
        )

        try:
            fixture = await self.find_existing(external_id, home_team_id, away_team_id, kickoff)

            if fixture is None:
                if dry_run:
                    summary.inserted += 1
                    logger.info(f"[DRY RUN] Would create fixture {external_id}")
                    return FixtureSyncResult(INSERTED)
                fixture = Fixture(sportmonks_fixture_id=external_id, **values)
                self.db.add(fixture)
                await self.db.commit()
                summary.inserted += 1
                logger.debug(f"Fixture {external_id}: created as {fixture.id}")
                return FixtureSyncResult(INSERTED, fixture.id)

            fixture_id = fixture.id
            changes = self._diff(fixture, values)
            if fixture.sportmonks_fixture_id is None:
                changes["sportmonks_fixture_id"] = external_id
                logger.info(f"Fixture {external_id}: linked to existing fixture {fixture_id}")

            if not changes:
                summary.unchanged += 1
                return FixtureSyncResult(UNCHANGED, fixture_id)

            if dry_run:
                summary.updated += 1
                logger.info(f"[DRY RUN] Would update fixture {fixture_id}: {sorted(changes)}")
                return FixtureSyncResult(UPDATED, fixture_id)

            for key, value in changes.items():
                setattr(fixture, key, value)
            await self.db.commit()
            summary.updated += 1
            logger.debug(f"Fixture {external_id}: updated {fixture_id} {sorted(changes)}")
            return FixtureSyncResult(UPDATED, fixture_id)

        except SQLAlchemyError as e:
            await self.db.rollback()
            summary.record_failure(external_id, str(e))
            logger.error(f"Fixture {external_id}: store write failed: {e}")
            return FixtureSyncResult(FAILED)
