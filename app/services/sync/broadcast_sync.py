"""
Broadcast sync service.

Stores every Sportmonks TV station of a fixture as a Broadcast row and
links it to a canonical provider through the operator-maintained
tv_station_mappings table. Stations without a mapping are kept with
provider_id = NULL and show up in the unmapped report.
"""
import logging
from typing import Any

from sqlalchemy import select, update, func, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.models import Broadcast, Fixture, TvStationMapping
from app.services.sportmonks_client import SportmonksClient
from app.services.sync.base import BaseSyncService, DATA_SOURCE, parse_int

logger = logging.getLogger(__name__)


class BroadcastSyncService(BaseSyncService):
    """Ingest TV stations into Broadcast rows and report mapping coverage."""

    def __init__(
        self,
        db: AsyncSession,
        client: SportmonksClient | None = None,
        settings: Settings | None = None,
    ):
        super().__init__(db, client, settings)
        self._mapping_cache: dict[int, int] | None = None

    async def load_station_mappings(self) -> dict[int, int]:
        """Read-only {sportmonks_tv_station_id: provider_id} lookup, cached per run."""
        if self._mapping_cache is not None:
            return self._mapping_cache

        result = await self.db.execute(
            select(TvStationMapping.sportmonks_tv_station_id, TvStationMapping.provider_id)
        )
        self._mapping_cache = {row[0]: row[1] for row in result.all()}
        return self._mapping_cache

    def _invalidate_caches(self) -> None:
        self._mapping_cache = None

    def _station_rows(self, tvstations: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Normalize provider TV-station entries, applying the country filter."""
        countries = self.settings.broadcast_countries
        rows = []
        seen: set[int] = set()

        for entry in tvstations or []:
            if not isinstance(entry, dict):
                continue
            station = entry.get("tvstation") or {}
            station_id = parse_int(station.get("id")) or parse_int(entry.get("tvstation_id"))
            if station_id is None or station_id in seen:
                continue

            country_id = parse_int(entry.get("country_id"))
            if countries and country_id not in countries:
                continue
            seen.add(station_id)

            rows.append({
                "sportmonks_tv_station_id": station_id,
                "channel_name": station.get("name"),
                "broadcaster_type": station.get("type"),
                "country_code": countries.get(country_id) if countries else None,
            })
        return rows

    async def sync_fixture_broadcasts(
        self, fixture_id: int, tvstations: list[dict[str, Any]], dry_run: bool = False
    ) -> dict[str, int]:
        """
        Upsert Broadcast rows for one fixture keyed by (fixture_id, station id).

        Existing rows are never deleted. A mapped station sets provider_id;
        an unmapped one leaves whatever provider an editor may have set.

        Returns:
            Dict with inserted / updated / unmapped counts
        """
        counts = {"inserted": 0, "updated": 0, "unmapped": 0}
        rows = self._station_rows(tvstations)
        if not rows:
            return counts

        mappings = await self.load_station_mappings()
        result = await self.db.execute(
            select(Broadcast).where(Broadcast.fixture_id == fixture_id)
        )
        existing = {
            b.sportmonks_tv_station_id: b
            for b in result.scalars().all()
            if b.sportmonks_tv_station_id is not None
        }

        for row in rows:
            station_id = row["sportmonks_tv_station_id"]
            provider_id = mappings.get(station_id)
            broadcast = existing.get(station_id)

            if broadcast is None:
                if provider_id is None:
                    counts["unmapped"] += 1
                counts["inserted"] += 1
                if not dry_run:
                    self.db.add(Broadcast(
                        fixture_id=fixture_id,
                        provider_id=provider_id,
                        data_source=DATA_SOURCE,
                        **row,
                    ))
                continue

            changes = {
                key: value for key, value in row.items()
                if value is not None and getattr(broadcast, key) != value
            }
            if provider_id is not None and broadcast.provider_id != provider_id:
                changes["provider_id"] = provider_id
            if (provider_id or broadcast.provider_id) is None:
                counts["unmapped"] += 1
            if changes:
                counts["updated"] += 1
                if not dry_run:
                    for key, value in changes.items():
                        setattr(broadcast, key, value)

        if not dry_run and (counts["inserted"] or counts["updated"]):
            await self.db.commit()
        return counts

    async def refresh_fixture_broadcasts(self, fixture_id: int, dry_run: bool = False) -> dict[str, Any]:
        """Re-fetch one fixture from Sportmonks and ingest its TV stations."""
        fixture = await self.db.get(Fixture, fixture_id)
        if fixture is None or fixture.sportmonks_fixture_id is None:
            return {"fixture_id": fixture_id, "error": "Fixture not found or not linked to Sportmonks"}

        payload = await self.client.get_fixture(fixture.sportmonks_fixture_id)
        if payload is None:
            return {"fixture_id": fixture_id, "error": "Fixture not found at Sportmonks"}

        counts = await self.sync_fixture_broadcasts(
            fixture_id, payload.get("tvstations") or [], dry_run=dry_run
        )
        return {"fixture_id": fixture_id, **counts}

    async def apply_station_mappings(self, dry_run: bool = False) -> int:
        """
        Fill provider_id on unmapped rows whose station has been mapped since.

        Returns:
            Number of Broadcast rows updated (or that would be, in dry run)
        """
        self._invalidate_caches()
        mappings = await self.load_station_mappings()
        updated = 0

        for station_id, provider_id in mappings.items():
            if dry_run:
                result = await self.db.execute(
                    select(func.count(Broadcast.id)).where(
                        Broadcast.provider_id.is_(None),
                        Broadcast.sportmonks_tv_station_id == station_id,
                    )
                )
                updated += result.scalar_one()
                continue

            result = await self.db.execute(
                update(Broadcast)
                .where(
                    Broadcast.provider_id.is_(None),
                    Broadcast.sportmonks_tv_station_id == station_id,
                )
                .values(provider_id=provider_id)
            )
            updated += result.rowcount or 0

        if not dry_run and updated:
            await self.db.commit()
        logger.info(f"Applied TV station mappings to {updated} broadcasts")
        return updated

    async def unmapped_stations_report(self) -> dict[str, Any]:
        """
        Distinct unmapped TV stations plus overall mapping coverage.

        Returns:
            Dict with per-station rows (channel name, fixture count,
            last seen) ordered by fixture count, and coverage totals
        """
        result = await self.db.execute(
            select(
                Broadcast.sportmonks_tv_station_id,
                func.max(Broadcast.channel_name),
                func.count(distinct(Broadcast.fixture_id)),
                func.max(Broadcast.updated_at),
            )
            .where(
                Broadcast.provider_id.is_(None),
                Broadcast.sportmonks_tv_station_id.is_not(None),
            )
            .group_by(Broadcast.sportmonks_tv_station_id)
            .order_by(func.count(distinct(Broadcast.fixture_id)).desc(), Broadcast.sportmonks_tv_station_id)
        )
        stations = [
            {
                "sportmonks_tv_station_id": station_id,
                "channel_name": channel_name,
                "fixtures": fixtures,
                "last_seen": last_seen.isoformat() if last_seen else None,
            }
            for station_id, channel_name, fixtures, last_seen in result.all()
        ]

        total = (await self.db.execute(select(func.count(Broadcast.id)))).scalar_one()
        mapped = (
            await self.db.execute(
                select(func.count(Broadcast.id)).where(Broadcast.provider_id.is_not(None))
            )
        ).scalar_one()

        return {
            "stations": stations,
            "total_broadcasts": total,
            "mapped": mapped,
            "unmapped": total - mapped,
            "coverage_percent": round(mapped * 100 / total, 1) if total else 0.0,
        }
