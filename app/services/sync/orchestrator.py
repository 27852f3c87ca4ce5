"""
Sync orchestrator service.

Coordinates the fixture pipeline: month windows are fetched in
ascending order, fixtures are processed in provider order through the
batch runner, and the outcome of the run is written to sync_logs.
"""
import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.exceptions import ProviderError
from app.models import Competition, SyncLog, Team
from app.services.sportmonks_client import FixtureWindow, SportmonksClient, get_sportmonks_client
from app.services.sync.base import parse_int
from app.services.sync.batch import RunDeadline, run_in_batches
from app.services.sync.broadcast_sync import BroadcastSyncService
from app.services.sync.fixture_sync import FixtureSyncService, FixtureSyncResult, FAILED
from app.services.sync.summary import SyncSummary
from app.services.sync.team_merge import TeamMergeService, MergeResult
from app.services.sync.team_resolver import TeamResolver
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Orchestrates sync operations across all sync services.

    Order within one run:
    1. Competitions with sync enabled and a Sportmonks league mapping
    2. Month windows, ascending
    3. Fixtures in provider order, in batches
    4. Broadcast rows of each synced fixture (optional)
    """

    def __init__(
        self,
        db: AsyncSession,
        client: SportmonksClient | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the orchestrator with all sync services.

        Args:
            db: SQLAlchemy async session
            client: Optional Sportmonks client (uses singleton if not provided)
            settings: Optional settings (uses cached settings if not provided)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.client = client or get_sportmonks_client()

        # Initialize specialized sync services
        self.resolver = TeamResolver(db)
        self.fixtures = FixtureSyncService(db, self.client, self.settings, resolver=self.resolver)
        self.broadcasts = BroadcastSyncService(db, self.client, self.settings)
        self.merge = TeamMergeService(db, self.settings)

    async def get_sync_competitions(
        self, competition_ids: list[int] | None = None
    ) -> list[tuple[int, str, int]]:
        """
        Competitions to sync as (id, name, sportmonks_league_id).

        When sync_enabled=False our local data is the source of truth and
        Sportmonks must not overwrite it, so those are never returned.
        """
        ids = competition_ids or self.settings.sync_competition_ids
        stmt = (
            select(Competition.id, Competition.name, Competition.sportmonks_league_id)
            .where(
                Competition.sync_enabled.is_(True),
                Competition.sportmonks_league_id.is_not(None),
            )
            .order_by(Competition.id)
        )
        if ids:
            stmt = stmt.where(Competition.id.in_(ids))

        result = await self.db.execute(stmt)
        competitions = [tuple(row) for row in result.all()]

        if ids:
            found = {c[0] for c in competitions}
            for missing in sorted(set(ids) - found):
                logger.warning(
                    f"Competition {missing}: not found, sync disabled or no Sportmonks league mapping"
                )
        return competitions

    async def _team_filter(self, team_slugs: list[str] | None) -> set[int] | None:
        """Sportmonks team ids of the requested teams, or None for no filter."""
        if not team_slugs:
            return None

        result = await self.db.execute(
            select(Team.slug, Team.sportmonks_team_id).where(Team.slug.in_(team_slugs))
        )
        rows = result.all()
        found = {row.slug for row in rows}
        for slug in sorted(set(team_slugs) - found):
            logger.warning(f"Team '{slug}' not found, ignored in team filter")

        external_ids = set()
        for row in rows:
            if row.sportmonks_team_id is None:
                logger.warning(f"Team '{row.slug}' has no Sportmonks id, ignored in team filter")
            else:
                external_ids.add(row.sportmonks_team_id)
        return external_ids

    @staticmethod
    def _involves(payload: dict[str, Any], external_team_ids: set[int] | None) -> bool:
        if external_team_ids is None:
            return True
        return any(
            parse_int(p.get("id")) in external_team_ids
            for p in payload.get("participants") or []
            if isinstance(p, dict)
        )

    async def _sync_one(
        self,
        payload: dict[str, Any],
        competition_id: int,
        summary: SyncSummary,
        dry_run: bool,
        include_broadcasts: bool,
    ) -> FixtureSyncResult:
        result = await self.fixtures.sync_fixture(payload, competition_id, summary, dry_run=dry_run)
        if not include_broadcasts or result.fixture_id is None or result.outcome == FAILED:
            return result

        external_id = parse_int(payload.get("id"))
        try:
            counts = await self.broadcasts.sync_fixture_broadcasts(
                result.fixture_id, payload.get("tvstations") or [], dry_run=dry_run
            )
        except Exception as e:
            await self.db.rollback()
            summary.record_broadcast_failure(external_id, str(e))
            logger.error(f"Fixture {external_id}: broadcast ingestion failed: {e}")
            return result

        summary.broadcasts_inserted += counts["inserted"]
        summary.broadcasts_updated += counts["updated"]
        summary.broadcasts_unmapped += counts["unmapped"]
        return result

    async def sync_fixtures(
        self,
        competition_ids: list[int] | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        team_slugs: list[str] | None = None,
        dry_run: bool = False,
        include_broadcasts: bool = True,
    ) -> SyncSummary:
        """
        Fetch and sync fixtures for a date range.

        Args:
            competition_ids: Our competition IDs (default: settings, then all enabled)
            date_from: First day (default: today, UTC)
            date_to: Last day, inclusive (default: date_from + sync_days_ahead)
            team_slugs: Only sync fixtures involving these teams
            dry_run: Classify and count without writing
            include_broadcasts: Also upsert Broadcast rows for each fixture

        Returns:
            SyncSummary of the run
        """
        date_from = date_from or utcnow().date()
        date_to = date_to or date_from + timedelta(days=self.settings.sync_days_ahead)
        if date_from > date_to:
            raise ValueError(f"date_from {date_from} is after date_to {date_to}")

        summary = SyncSummary(dry_run=dry_run)
        deadline = RunDeadline(self.settings.sync_run_deadline_seconds)
        started_at = utcnow()
        calls_before = self.client.api_calls
        self.resolver.invalidate()

        logger.info(
            f"Starting fixture sync {date_from}..{date_to}"
            f"{' [DRY RUN]' if dry_run else ''}"
        )

        try:
            competitions = await self.get_sync_competitions(competition_ids)
            team_filter = await self._team_filter(team_slugs)

            for competition_id, name, league_id in competitions:
                if summary.deadline_exceeded:
                    break
                logger.info(f"Syncing {name} (competition {competition_id}, Sportmonks league {league_id})")

                async for window in self.client.iter_fixture_windows(league_id, date_from, date_to):
                    summary.record_window(competition_id, window)
                    if not window.ok:
                        continue

                    payloads = [f for f in window.fixtures if self._involves(f, team_filter)]
                    batch = await run_in_batches(
                        payloads,
                        batch_size=self.settings.sync_batch_size,
                        processor=lambda payload: self._sync_one(
                            payload, competition_id, summary, dry_run, include_broadcasts
                        ),
                        pause_seconds=self.settings.sync_batch_pause_seconds,
                        deadline=deadline,
                        describe=lambda payload: payload.get("id"),
                    )
                    for failure in batch.failures:
                        summary.record_failure(failure.item, failure.error)

                    if batch.deadline_exceeded or deadline.exceeded():
                        summary.deadline_exceeded = True
                        logger.warning(f"Run deadline exceeded during {name}, stopping")
                        break
        except Exception as e:
            summary.fatal_error = str(e)
            logger.error(f"Fixture sync aborted: {e}")
            summary.api_calls = self.client.api_calls - calls_before
            if not dry_run:
                await self._write_sync_log(summary, started_at, competition_ids)
            raise

        summary.api_calls = self.client.api_calls - calls_before
        if not dry_run:
            await self._write_sync_log(summary, started_at, competition_ids)

        logger.info(
            f"Fixture sync complete ({summary.status.value}): inserted={summary.inserted} "
            f"updated={summary.updated} unchanged={summary.unchanged} skipped={summary.skipped} "
            f"failed={summary.failed} windows_failed={summary.windows_failed} api_calls={summary.api_calls}"
        )
        return summary

    async def sync_live(
        self,
        competition_ids: list[int] | None = None,
        dry_run: bool = False,
    ) -> SyncSummary:
        """
        Update status and scores of fixtures that are currently in play.

        Each in-play payload goes through the same upsert as the window
        sync. Broadcast rows are left to the window sync.

        Args:
            competition_ids: Our competition IDs (default: settings, then all enabled)
            dry_run: Classify and count without writing

        Returns:
            SyncSummary of the run
        """
        summary = SyncSummary(dry_run=dry_run)
        deadline = RunDeadline(self.settings.sync_run_deadline_seconds)
        started_at = utcnow()
        calls_before = self.client.api_calls
        self.resolver.invalidate()

        competitions = await self.get_sync_competitions(competition_ids)
        by_league = {league_id: competition_id for competition_id, _, league_id in competitions}
        if not by_league:
            logger.info("Live sync: no competitions to sync")
            return summary

        today = started_at.date()
        try:
            payloads = await self.client.get_inplay_fixtures(sorted(by_league))
        except ProviderError as e:
            logger.error(f"Live sync: in-play fetch failed: {e}")
            summary.record_window(None, FixtureWindow(today, today, error=str(e)))
        else:
            summary.record_window(None, FixtureWindow(today, today, payloads))
            payloads = [p for p in payloads if parse_int(p.get("league_id")) in by_league]
            batch = await run_in_batches(
                payloads,
                batch_size=self.settings.sync_batch_size,
                processor=lambda payload: self._sync_one(
                    payload, by_league[parse_int(payload.get("league_id"))], summary, dry_run,
                    include_broadcasts=False,
                ),
                pause_seconds=self.settings.sync_batch_pause_seconds,
                deadline=deadline,
                describe=lambda payload: payload.get("id"),
            )
            for failure in batch.failures:
                summary.record_failure(failure.item, failure.error)
            summary.deadline_exceeded = batch.deadline_exceeded

        summary.api_calls = self.client.api_calls - calls_before
        if not dry_run:
            await self._write_sync_log(summary, started_at, competition_ids, sync_type="live")

        logger.info(
            f"Live sync complete ({summary.status.value}): processed={summary.processed} "
            f"updated={summary.updated} inserted={summary.inserted} skipped={summary.skipped} "
            f"failed={summary.failed}"
        )
        return summary

    async def _write_sync_log(
        self,
        summary: SyncSummary,
        started_at,
        competition_ids: list[int] | None,
        sync_type: str = "fixtures",
    ) -> None:
        log = SyncLog(
            sync_type=sync_type,
            competition_id=competition_ids[0] if competition_ids and len(competition_ids) == 1 else None,
            started_at=started_at,
            completed_at=utcnow(),
            status=summary.status,
            fixtures_processed=summary.processed,
            fixtures_inserted=summary.inserted,
            fixtures_updated=summary.updated,
            fixtures_unchanged=summary.unchanged,
            fixtures_skipped=summary.skipped,
            fixtures_failed=summary.failed,
            api_calls=summary.api_calls,
            windows_failed=summary.windows_failed,
            error_message=summary.fatal_error,
            details={
                "skip_reasons": summary.skip_counts(),
                "windows": summary.windows,
                "failures": summary.failures[:100],
                "unresolved_teams": {str(k): v for k, v in summary.unresolved_teams.items()},
                "deadline_exceeded": summary.deadline_exceeded,
            },
        )
        try:
            self.db.add(log)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to write sync log: {e}")

    # ==================== Team maintenance ====================

    async def find_duplicate_teams(self) -> list[dict[str, Any]]:
        return await self.merge.find_duplicate_teams()

    async def merge_teams(self, keep_id: int, delete_id: int, dry_run: bool = False) -> MergeResult:
        result = await self.merge.merge_teams(keep_id, delete_id, dry_run=dry_run)
        self.resolver.invalidate()
        return result

    async def merge_pairs(self, pairs: list[tuple[int, int]], dry_run: bool = False) -> dict[str, Any]:
        result = await self.merge.merge_pairs(pairs, dry_run=dry_run)
        self.resolver.invalidate()
        return result

    async def backfill_team_ids(self, mapping: dict[str, int], dry_run: bool = False) -> list[dict[str, Any]]:
        return await self.resolver.backfill_external_ids(mapping, dry_run=dry_run)

    # ==================== Broadcast maintenance ====================

    async def unmapped_stations_report(self) -> dict[str, Any]:
        return await self.broadcasts.unmapped_stations_report()

    async def apply_station_mappings(self, dry_run: bool = False) -> int:
        return await self.broadcasts.apply_station_mappings(dry_run=dry_run)

    async def refresh_fixture_broadcasts(self, fixture_id: int, dry_run: bool = False) -> dict[str, Any]:
        return await self.broadcasts.refresh_fixture_broadcasts(fixture_id, dry_run=dry_run)
