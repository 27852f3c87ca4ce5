from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from app.models import Broadcast, Fixture, TvStationMapping
from app.services.sync.broadcast_sync import BroadcastSyncService


@pytest.fixture
async def station_mappings(test_session, sample_providers) -> list[TvStationMapping]:
    mappings = [
        TvStationMapping(sportmonks_tv_station_id=901, provider_id=10, station_name="Sky Sports Main Event"),
        TvStationMapping(sportmonks_tv_station_id=902, provider_id=11, station_name="TNT Sports 1"),
    ]
    test_session.add_all(mappings)
    await test_session.commit()
    return mappings


async def _rows(test_session, fixture_id: int) -> dict[int, Broadcast]:
    result = await test_session.execute(
        select(Broadcast)
        .where(Broadcast.fixture_id == fixture_id)
        .execution_options(populate_existing=True)
    )
    return {b.sportmonks_tv_station_id: b for b in result.scalars().all()}


@pytest.mark.asyncio
class TestSyncFixtureBroadcasts:
    async def test_inserts_mapped_and_unmapped_stations(
        self, test_session, mock_client, test_settings, sample_fixture, station_mappings, tvstation
    ):
        service = BroadcastSyncService(test_session, mock_client, test_settings)

        counts = await service.sync_fixture_broadcasts(sample_fixture.id, [
            tvstation(901, "Sky Sports Main Event"),
            tvstation(903, "Premier Sports 1"),
            tvstation(904, "beIN Sports", country_id=17),  # filtered out: not a UK entry
            tvstation(901, "Sky Sports Main Event", country_id=11),  # duplicate station
        ])

        assert counts == {"inserted": 2, "updated": 0, "unmapped": 1}
        rows = await _rows(test_session, sample_fixture.id)
        assert set(rows) == {901, 903}
        assert rows[901].provider_id == 10
        assert rows[901].country_code == "GB"
        assert rows[903].provider_id is None

    async def test_resync_is_idempotent(
        self, test_session, mock_client, test_settings, sample_fixture, station_mappings, tvstation
    ):
        service = BroadcastSyncService(test_session, mock_client, test_settings)
        stations = [tvstation(901, "Sky Sports Main Event"), tvstation(902, "TNT Sports 1")]

        await service.sync_fixture_broadcasts(sample_fixture.id, stations)
        counts = await service.sync_fixture_broadcasts(sample_fixture.id, stations)

        assert counts == {"inserted": 0, "updated": 0, "unmapped": 0}
        assert len(await _rows(test_session, sample_fixture.id)) == 2

    async def test_never_deletes_rows_missing_from_provider(
        self, test_session, mock_client, test_settings, sample_fixture, station_mappings, tvstation
    ):
        service = BroadcastSyncService(test_session, mock_client, test_settings)

        await service.sync_fixture_broadcasts(sample_fixture.id, [tvstation(901, "Sky Sports Main Event")])
        await service.sync_fixture_broadcasts(sample_fixture.id, [tvstation(902, "TNT Sports 1")])

        assert set(await _rows(test_session, sample_fixture.id)) == {901, 902}

    async def test_editor_provider_kept_for_unmapped_station(
        self, test_session, mock_client, test_settings, sample_fixture, sample_providers, tvstation
    ):
        test_session.add(Broadcast(
            fixture_id=sample_fixture.id, provider_id=12, sportmonks_tv_station_id=905, channel_name="Prime",
        ))
        await test_session.commit()
        service = BroadcastSyncService(test_session, mock_client, test_settings)

        counts = await service.sync_fixture_broadcasts(
            sample_fixture.id, [tvstation(905, "Amazon Prime Video")]
        )

        assert counts["updated"] == 1
        assert counts["unmapped"] == 0
        row = (await _rows(test_session, sample_fixture.id))[905]
        assert row.provider_id == 12
        assert row.channel_name == "Amazon Prime Video"

    async def test_dry_run_writes_nothing(
        self, test_session, mock_client, test_settings, sample_fixture, station_mappings, tvstation
    ):
        service = BroadcastSyncService(test_session, mock_client, test_settings)

        counts = await service.sync_fixture_broadcasts(
            sample_fixture.id, [tvstation(901, "Sky Sports Main Event")], dry_run=True
        )

        assert counts["inserted"] == 1
        assert await _rows(test_session, sample_fixture.id) == {}


@pytest.mark.asyncio
class TestStationMappingMaintenance:
    async def test_apply_mappings_fills_unmapped_rows(
        self, test_session, mock_client, test_settings, sample_fixture, sample_providers, tvstation
    ):
        service = BroadcastSyncService(test_session, mock_client, test_settings)
        await service.sync_fixture_broadcasts(sample_fixture.id, [tvstation(903, "Premier Sports 1")])

        test_session.add(TvStationMapping(sportmonks_tv_station_id=903, provider_id=11))
        await test_session.commit()

        assert await service.apply_station_mappings(dry_run=True) == 1
        assert await service.apply_station_mappings() == 1
        assert (await _rows(test_session, sample_fixture.id))[903].provider_id == 11
        assert await service.apply_station_mappings() == 0

    async def test_unmapped_report(
        self, test_session, mock_client, test_settings, sample_fixture, station_mappings, tvstation
    ):
        service = BroadcastSyncService(test_session, mock_client, test_settings)
        await service.sync_fixture_broadcasts(sample_fixture.id, [
            tvstation(901, "Sky Sports Main Event"),
            tvstation(903, "Premier Sports 1"),
            tvstation(906, "LaLiga TV"),
        ])

        report = await service.unmapped_stations_report()

        assert report["total_broadcasts"] == 3
        assert report["mapped"] == 1
        assert report["unmapped"] == 2
        assert report["coverage_percent"] == 33.3
        assert {s["sportmonks_tv_station_id"] for s in report["stations"]} == {903, 906}
        assert all(s["fixtures"] == 1 for s in report["stations"])

    async def test_refresh_fetches_fixture_from_provider(
        self, test_session, mock_client, test_settings, sample_fixture, station_mappings, tvstation
    ):
        mock_client.get_fixture = AsyncMock(return_value={
            "id": 1001, "tvstations": [tvstation(902, "TNT Sports 1")],
        })
        service = BroadcastSyncService(test_session, mock_client, test_settings)

        result = await service.refresh_fixture_broadcasts(sample_fixture.id)

        mock_client.get_fixture.assert_awaited_once_with(1001)
        assert result == {"fixture_id": sample_fixture.id, "inserted": 1, "updated": 0, "unmapped": 0}

    async def test_refresh_unlinked_fixture(
        self, test_session, mock_client, test_settings, sample_teams
    ):
        fixture = Fixture(home_team_id=1, away_team_id=2, utc_kickoff=datetime(2025, 3, 8, 15, 0, tzinfo=timezone.utc))
        test_session.add(fixture)
        await test_session.commit()
        mock_client.get_fixture = AsyncMock()

        result = await BroadcastSyncService(test_session, mock_client, test_settings).refresh_fixture_broadcasts(fixture.id)

        assert "error" in result
        mock_client.get_fixture.assert_not_awaited()
