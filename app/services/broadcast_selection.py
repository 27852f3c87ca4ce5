"""
Primary broadcaster selection.

A fixture can have many Broadcast rows (one per country or rights
holder). The one shown to users is picked by an explicit ranking, never
by row insertion order. Precedence, first difference wins:

1. mapped to an active, non-blackout provider before anything else
2. provider rights_tier ascending (1 = primary rights holder, NULL last)
3. provider type: television, streaming, radio, then anything else
4. most recently created row first
5. lowest Broadcast id, then channel name

The key is a total order over distinct rows, so the result does not
depend on the order the candidates are passed in.
"""
import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import Broadcast, ProviderType
from app.utils.timestamps import ensure_utc

TYPE_PRECEDENCE = {
    ProviderType.television.value: 0,
    ProviderType.streaming.value: 1,
    ProviderType.radio.value: 2,
}
OTHER_TYPE_RANK = len(TYPE_PRECEDENCE)


class BroadcastVisibility(str, enum.Enum):
    TBD = "tbd"              # no row resolved to a provider yet
    CONFIRMED = "confirmed"  # at least one resolved, non-blackout provider
    BLACKOUT = "blackout"    # explicit no-domestic-coverage sentinel


@dataclass(frozen=True)
class BroadcastCandidate:
    broadcast_id: int
    provider_id: int | None = None
    provider_name: str | None = None
    provider_type: str | None = None
    rights_tier: int | None = None
    provider_active: bool = True
    channel_name: str | None = None
    country_code: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_broadcast(cls, broadcast: Broadcast) -> "BroadcastCandidate":
        provider = broadcast.provider if broadcast.provider_id is not None else None
        provider_type = None
        if provider is not None and provider.type is not None:
            provider_type = getattr(provider.type, "value", provider.type)
        return cls(
            broadcast_id=broadcast.id,
            provider_id=broadcast.provider_id,
            provider_name=provider.name if provider else None,
            provider_type=provider_type,
            rights_tier=provider.rights_tier if provider else None,
            provider_active=provider.is_active if provider else False,
            channel_name=broadcast.channel_name,
            country_code=broadcast.country_code,
            created_at=broadcast.created_at,
        )

    @property
    def is_mapped(self) -> bool:
        return self.provider_id is not None

    @property
    def is_blackout(self) -> bool:
        return self.is_mapped and self.provider_type == ProviderType.blackout.value

    @property
    def is_eligible(self) -> bool:
        return self.is_mapped and self.provider_active and not self.is_blackout

    def to_dict(self) -> dict[str, Any]:
        return {
            "broadcast_id": self.broadcast_id,
            "provider_id": self.provider_id,
            "provider_name": self.provider_name,
            "provider_type": self.provider_type,
            "rights_tier": self.rights_tier,
            "channel_name": self.channel_name,
            "country_code": self.country_code,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def rank_key(candidate: BroadcastCandidate) -> tuple:
    """Sort key implementing the precedence above; smaller sorts first."""
    created_at = ensure_utc(candidate.created_at)
    return (
        0 if candidate.is_eligible else 1,
        candidate.rights_tier if candidate.rights_tier is not None else math.inf,
        TYPE_PRECEDENCE.get(candidate.provider_type, OTHER_TYPE_RANK),
        -created_at.timestamp() if created_at else math.inf,
        candidate.broadcast_id,
        candidate.channel_name or "",
    )


def rank_broadcasts(candidates: Iterable[BroadcastCandidate]) -> list[BroadcastCandidate]:
    return sorted(candidates, key=rank_key)


def select_primary(candidates: Iterable[BroadcastCandidate]) -> BroadcastCandidate | None:
    """Best-ranked candidate with an active, non-blackout provider; None if there is none."""
    for candidate in rank_broadcasts(candidates):
        if candidate.is_eligible:
            return candidate
    return None


def broadcast_visibility(candidates: Iterable[BroadcastCandidate]) -> BroadcastVisibility:
    """A blackout row overrides everything else: it is an explicit editorial decision."""
    candidates = list(candidates)
    if any(c.is_blackout for c in candidates):
        return BroadcastVisibility.BLACKOUT
    if any(c.is_eligible for c in candidates):
        return BroadcastVisibility.CONFIRMED
    return BroadcastVisibility.TBD


@dataclass
class PrimaryBroadcast:
    fixture_id: int
    visibility: BroadcastVisibility
    primary: BroadcastCandidate | None = None
    candidates: list[BroadcastCandidate] = field(default_factory=list)

    @classmethod
    def from_candidates(cls, fixture_id: int, candidates: Iterable[BroadcastCandidate]) -> "PrimaryBroadcast":
        ranked = rank_broadcasts(candidates)
        visibility = broadcast_visibility(ranked)
        primary = None if visibility == BroadcastVisibility.BLACKOUT else select_primary(ranked)
        return cls(fixture_id=fixture_id, visibility=visibility, primary=primary, candidates=ranked)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fixture_id": self.fixture_id,
            "visibility": self.visibility.value,
            "primary": self.primary.to_dict() if self.primary else None,
            "candidates": [c.to_dict() for c in self.candidates],
        }


class BroadcastSelectionService:
    """Load Broadcast rows with their providers and apply the ranking."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def primary_for_fixtures(self, fixture_ids: list[int]) -> dict[int, PrimaryBroadcast]:
        if not fixture_ids:
            return {}

        result = await self.db.execute(
            select(Broadcast)
            .options(selectinload(Broadcast.provider))
            .where(Broadcast.fixture_id.in_(fixture_ids))
            .execution_options(populate_existing=True)
        )
        grouped: dict[int, list[BroadcastCandidate]] = {fixture_id: [] for fixture_id in fixture_ids}
        for broadcast in result.scalars().all():
            grouped[broadcast.fixture_id].append(BroadcastCandidate.from_broadcast(broadcast))

        return {
            fixture_id: PrimaryBroadcast.from_candidates(fixture_id, candidates)
            for fixture_id, candidates in grouped.items()
        }

    async def primary_for_fixture(self, fixture_id: int) -> PrimaryBroadcast:
        results = await self.primary_for_fixtures([fixture_id])
        return results[fixture_id]
