"""
Team identity resolver.

Maps Sportmonks team ids onto canonical teams. Resolution is a pure
lookup: it never creates teams. Linking new external ids is an explicit
operator flow (backfill_external_ids).
"""
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Team
from app.services.sync.base import parse_int
from app.utils.team_name_matcher import team_name_similarity

logger = logging.getLogger(__name__)

LINKED = "linked"
ALREADY_LINKED = "already_linked"
NOT_FOUND = "not_found"
CONFLICT = "conflict"


class TeamResolver:
    """Resolve provider team ids to canonical team ids, cached for one run."""

    def __init__(self, db: AsyncSession):
        self.db = db
        # external id -> canonical team id; misses are cached as None
        self._cache: dict[int, int | None] = {}

    async def resolve_id(self, external_team_id: int | None) -> int | None:
        """
        Return the canonical team id linked to a Sportmonks team id.

        When several teams share the id (duplicates awaiting a merge)
        the lowest id wins and every duplicate is logged.
        """
        if external_team_id is None:
            return None
        if external_team_id in self._cache:
            return self._cache[external_team_id]

        result = await self.db.execute(
            select(Team.id)
            .where(Team.sportmonks_team_id == external_team_id)
            .order_by(Team.id)
        )
        team_ids = [row[0] for row in result.all()]

        if len(team_ids) > 1:
            logger.warning(
                f"Sportmonks team {external_team_id} is linked to {len(team_ids)} teams "
                f"{team_ids}; using {team_ids[0]}. Run the duplicate merge."
            )

        team_id = team_ids[0] if team_ids else None
        self._cache[external_team_id] = team_id
        return team_id

    async def resolve(self, external_team_id: int | None) -> Team | None:
        """Return the canonical Team for a Sportmonks team id, or None."""
        team_id = await self.resolve_id(external_team_id)
        if team_id is None:
            return None
        return await self.db.get(Team, team_id)

    async def resolve_participant(self, participant: dict[str, Any] | None) -> Team | None:
        """Resolve a provider participant object ({"id": ..., "name": ...})."""
        if not participant:
            return None
        return await self.resolve(parse_int(participant.get("id")))

    def invalidate(self) -> None:
        self._cache.clear()

    async def backfill_external_ids(
        self, mapping: dict[str, int], dry_run: bool = False
    ) -> list[dict[str, Any]]:
        """
        Link Sportmonks team ids onto canonical teams by slug.

        Args:
            mapping: {team_slug: sportmonks_team_id}
            dry_run: Report outcomes without writing

        Returns:
            One entry per slug with outcome linked / already_linked /
            not_found / conflict
        """
        outcomes = []
        linked = 0

        for slug, external_id in mapping.items():
            entry: dict[str, Any] = {
                "slug": slug,
                "external_id": external_id,
                "team_id": None,
                "outcome": None,
                "detail": None,
            }
            outcomes.append(entry)

            result = await self.db.execute(select(Team).where(Team.slug == slug))
            team = result.scalar_one_or_none()
            if team is None:
                entry["outcome"] = NOT_FOUND
                logger.warning(f"Backfill: team '{slug}' not found")
                continue
            entry["team_id"] = team.id

            if team.sportmonks_team_id == external_id:
                entry["outcome"] = ALREADY_LINKED
                continue

            if team.sportmonks_team_id is not None:
                entry["outcome"] = CONFLICT
                entry["detail"] = f"team already linked to {team.sportmonks_team_id}"
                logger.warning(f"Backfill: '{slug}' already linked to {team.sportmonks_team_id}, not {external_id}")
                continue

            holder = await self.db.execute(
                select(Team.id, Team.slug).where(
                    Team.sportmonks_team_id == external_id,
                    Team.id != team.id,
                )
            )
            holder_row = holder.first()
            if holder_row is not None:
                entry["outcome"] = CONFLICT
                entry["detail"] = f"id held by team {holder_row.id} ({holder_row.slug}); merge instead"
                logger.warning(
                    f"Backfill: Sportmonks id {external_id} already on team {holder_row.id} "
                    f"({holder_row.slug}); refusing to link '{slug}'"
                )
                continue

            entry["outcome"] = LINKED
            if not dry_run:
                team.sportmonks_team_id = external_id
            linked += 1
            logger.info(f"Backfill: linked '{slug}' (team {team.id}) -> Sportmonks {external_id}")

        if linked and not dry_run:
            await self.db.commit()
        self.invalidate()
        return outcomes

    async def suggest_candidates(
        self, name: str, limit: int = 5, min_score: int = 60
    ) -> list[dict[str, Any]]:
        """Fuzzy-match a provider team name against unlinked canonical teams, best first."""
        result = await self.db.execute(
            select(Team.id, Team.name, Team.slug).where(Team.sportmonks_team_id.is_(None))
        )
        scored = []
        for row in result.all():
            score = team_name_similarity(name, row.name)
            if score >= min_score:
                scored.append({"team_id": row.id, "name": row.name, "slug": row.slug, "score": score})

        scored.sort(key=lambda c: (-c["score"], c["team_id"]))
        return scored[:limit]
