"""
Duplicate team detection and merge.

Two canonical teams sharing a Sportmonks team id are the same club.
A merge rewrites every fixture reference from the losing team to the
kept one and deletes the loser, all inside one transaction.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any

from sqlalchemy import select, update, delete, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.exceptions import MergeError
from app.models import Fixture, Team
from app.services.sync.batch import run_in_batches

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    keep_id: int
    delete_id: int
    home_rewritten: int = 0
    away_rewritten: int = 0
    fixtures_before: int = 0
    fixtures_after: int = 0
    external_id_carried: bool = False
    dry_run: bool = False

    @property
    def fixtures_moved(self) -> int:
        return self.home_rewritten + self.away_rewritten

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["fixtures_moved"] = self.fixtures_moved
        return data


class TeamMergeService:
    """Find and merge canonical teams that share a Sportmonks team id."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    async def _fixture_count(self, team_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Fixture.id)).where(
                or_(Fixture.home_team_id == team_id, Fixture.away_team_id == team_id)
            )
        )
        return result.scalar_one()

    async def _fixture_counts(self, team_ids: list[int]) -> dict[int, int]:
        counts = {team_id: 0 for team_id in team_ids}
        if not team_ids:
            return counts
        for column in (Fixture.home_team_id, Fixture.away_team_id):
            result = await self.db.execute(
                select(column, func.count(Fixture.id))
                .where(column.in_(team_ids))
                .group_by(column)
            )
            for team_id, count in result.all():
                counts[team_id] += count
        return counts

    async def find_duplicate_teams(self) -> list[dict[str, Any]]:
        """
        Group teams that share a Sportmonks team id.

        Returns:
            One group per shared id with every team, its fixture count and
            the suggested merge: keep the lowest id, delete the others.
        """
        shared_ids = (
            select(Team.sportmonks_team_id)
            .where(Team.sportmonks_team_id.is_not(None))
            .group_by(Team.sportmonks_team_id)
            .having(func.count(Team.id) > 1)
        )
        result = await self.db.execute(
            select(Team.id, Team.name, Team.slug, Team.sportmonks_team_id)
            .where(Team.sportmonks_team_id.in_(shared_ids))
            .order_by(Team.sportmonks_team_id, Team.id)
        )
        rows = result.all()
        counts = await self._fixture_counts([row.id for row in rows])

        groups: dict[int, list[dict[str, Any]]] = {}
        for row in rows:
            groups.setdefault(row.sportmonks_team_id, []).append(
                {"id": row.id, "name": row.name, "slug": row.slug, "fixtures": counts[row.id]}
            )

        duplicates = []
        for external_id, teams in groups.items():
            duplicates.append({
                "sportmonks_team_id": external_id,
                "teams": teams,
                "keep_id": teams[0]["id"],
                "delete_ids": [t["id"] for t in teams[1:]],
            })

        logger.info(f"Found {len(duplicates)} duplicate team groups")
        return duplicates

    async def merge_teams(self, keep_id: int, delete_id: int, dry_run: bool = False) -> MergeResult:
        """
        Merge ``delete_id`` into ``keep_id`` in a single transaction.

        Steps: validate, rewrite home references, rewrite away references,
        recount keep's fixtures, carry over external id/competition,
        delete the losing team, commit. Any failure rolls everything back.

        Raises:
            MergeError: when the pair is refused or the store write fails
        """
        if keep_id == delete_id:
            raise MergeError(f"Cannot merge team {keep_id} into itself")

        keep = await self.db.get(Team, keep_id)
        if keep is None:
            raise MergeError(f"Keep team {keep_id} not found")
        loser = await self.db.get(Team, delete_id)
        if loser is None:
            raise MergeError(f"Delete team {delete_id} not found")

        keep_external = keep.sportmonks_team_id
        loser_external = loser.sportmonks_team_id
        if keep_external is not None and loser_external is not None and keep_external != loser_external:
            raise MergeError(
                f"Teams {keep_id} and {delete_id} have different Sportmonks ids "
                f"({keep_external} vs {loser_external})"
            )

        head_to_head = await self.db.execute(
            select(func.count(Fixture.id)).where(
                or_(
                    and_(Fixture.home_team_id == keep_id, Fixture.away_team_id == delete_id),
                    and_(Fixture.home_team_id == delete_id, Fixture.away_team_id == keep_id),
                )
            )
        )
        if head_to_head.scalar_one():
            raise MergeError(
                f"Teams {keep_id} and {delete_id} play each other; merging would create "
                f"fixtures with the same home and away team"
            )

        merge = MergeResult(keep_id=keep_id, delete_id=delete_id, dry_run=dry_run)
        label = f"'{loser.name}' ({delete_id}) -> '{keep.name}' ({keep_id})"

        try:
            merge.fixtures_before = await self._fixture_count(keep_id)

            home = await self.db.execute(
                update(Fixture)
                .where(Fixture.home_team_id == delete_id)
                .values(home_team_id=keep_id)
            )
            merge.home_rewritten = home.rowcount or 0

            away = await self.db.execute(
                update(Fixture)
                .where(Fixture.away_team_id == delete_id)
                .values(away_team_id=keep_id)
            )
            merge.away_rewritten = away.rowcount or 0

            merge.fixtures_after = await self._fixture_count(keep_id)

            if keep_external is None and loser_external is not None:
                keep.sportmonks_team_id = loser_external
                merge.external_id_carried = True
            if keep.competition_id is None and loser.competition_id is not None:
                keep.competition_id = loser.competition_id

            await self.db.execute(delete(Team).where(Team.id == delete_id))

            if dry_run:
                await self.db.rollback()
                logger.info(f"[DRY RUN] Would merge {label}: {merge.fixtures_moved} fixtures")
                return merge

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Merge {label} rolled back: {e}")
            raise MergeError(f"Merge of {delete_id} into {keep_id} failed: {e}") from e

        logger.info(
            f"Merged {label}: home={merge.home_rewritten} away={merge.away_rewritten} "
            f"fixtures {merge.fixtures_before} -> {merge.fixtures_after}"
        )
        return merge

    async def merge_pairs(
        self, pairs: list[tuple[int, int]], dry_run: bool = False
    ) -> dict[str, Any]:
        """
        Merge several (keep_id, delete_id) pairs.

        A failing pair is logged and reported; the other pairs still run.
        """
        async def process(pair: tuple[int, int]) -> MergeResult:
            keep_id, delete_id = pair
            return await self.merge_teams(keep_id, delete_id, dry_run=dry_run)

        batch = await run_in_batches(
            pairs,
            batch_size=self.settings.sync_batch_size,
            processor=process,
            pause_seconds=self.settings.sync_batch_pause_seconds,
            describe=lambda pair: f"{pair[1]}->{pair[0]}",
        )
        return {
            "merged": [result.to_dict() for result in batch.results],
            "failed": [failure.to_dict() for failure in batch.failures],
        }
