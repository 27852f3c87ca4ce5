from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from unittest.mock import AsyncMock, patch, MagicMock

from app.config import Settings
from app.api.deps import get_settings
from app.main import app
from app.models import Broadcast
from app.services.sync.summary import SyncSummary


@pytest.mark.asyncio
class TestSyncFixturesAPI:
    """Tests for POST /api/v1/sync/fixtures."""

    async def test_sync_fixtures(self, client: AsyncClient):
        summary = SyncSummary(processed=3, inserted=2, skipped=1)
        with patch('app.api.sync.SyncOrchestrator') as MockOrchestrator:
            mock_instance = MagicMock()
            mock_instance.sync_fixtures = AsyncMock(return_value=summary)
            MockOrchestrator.return_value = mock_instance

            response = await client.post(
                "/api/v1/sync/fixtures",
                json={"competition_ids": [1], "date_from": "2025-03-01", "date_to": "2025-03-31"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert "2 inserted" in data["message"]
        assert data["details"]["skipped"] == 1

        _, kwargs = mock_instance.sync_fixtures.call_args
        assert kwargs["competition_ids"] == [1]
        assert kwargs["date_from"].isoformat() == "2025-03-01"
        assert kwargs["dry_run"] is False

    async def test_partial_run(self, client: AsyncClient):
        summary = SyncSummary(processed=2, inserted=1)
        summary.record_failure(1002, "database is locked")
        with patch('app.api.sync.SyncOrchestrator') as MockOrchestrator:
            MockOrchestrator.return_value.sync_fixtures = AsyncMock(return_value=summary)

            response = await client.post("/api/v1/sync/fixtures", json={})

        assert response.json()["status"] == "partial"

    async def test_missing_token_fails_before_any_work(self, client: AsyncClient):
        app.dependency_overrides[get_settings] = lambda: Settings(sportmonks_api_token="")
        with patch('app.api.sync.SyncOrchestrator') as MockOrchestrator:
            response = await client.post("/api/v1/sync/fixtures", json={})

        data = response.json()
        assert data["status"] == "failed"
        assert "SPORTMONKS_API_TOKEN" in data["message"]
        MockOrchestrator.assert_not_called()

    async def test_inverted_range_is_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/sync/fixtures",
            json={"date_from": "2025-04-01", "date_to": "2025-03-01"},
        )
        assert response.status_code == 422


@pytest.mark.asyncio
class TestTeamMaintenanceAPI:
    async def test_find_duplicates(self, client: AsyncClient):
        groups = [{"sportmonks_team_id": 52, "teams": [], "keep_id": 20, "delete_ids": [306]}]
        with patch('app.api.sync.SyncOrchestrator') as MockOrchestrator:
            MockOrchestrator.return_value.find_duplicate_teams = AsyncMock(return_value=groups)

            response = await client.get("/api/v1/sync/teams/duplicates")

        data = response.json()
        assert data["status"] == "success"
        assert data["details"]["groups"][0]["keep_id"] == 20

    async def test_merge_partial(self, client: AsyncClient):
        results = {
            "merged": [{"keep_id": 20, "delete_id": 306}],
            "failed": [{"item": "1->20", "error": "different Sportmonks ids"}],
        }
        with patch('app.api.sync.SyncOrchestrator') as MockOrchestrator:
            mock_instance = MagicMock()
            mock_instance.merge_pairs = AsyncMock(return_value=results)
            MockOrchestrator.return_value = mock_instance

            response = await client.post(
                "/api/v1/sync/teams/merge?dry_run=true",
                json={"pairs": [{"keep_id": 20, "delete_id": 306}, {"keep_id": 20, "delete_id": 1}]},
            )

        data = response.json()
        assert data["status"] == "partial"
        mock_instance.merge_pairs.assert_awaited_once_with([(20, 306), (20, 1)], dry_run=True)

    async def test_merge_requires_pairs(self, client: AsyncClient):
        response = await client.post("/api/v1/sync/teams/merge", json={"pairs": []})
        assert response.status_code == 422


@pytest.mark.asyncio
class TestBroadcastAPI:
    async def test_unmapped_report(self, client: AsyncClient, sample_fixture):
        response = await client.get("/api/v1/sync/broadcasts/unmapped")

        data = response.json()
        assert data["status"] == "success"
        assert data["details"]["total_broadcasts"] == 0
        assert data["details"]["stations"] == []

    async def test_apply_mappings_error_is_reported(self, client: AsyncClient):
        with patch('app.api.sync.SyncOrchestrator') as MockOrchestrator:
            MockOrchestrator.return_value.apply_station_mappings = AsyncMock(
                side_effect=RuntimeError("boom")
            )

            response = await client.post("/api/v1/sync/broadcasts/apply-mappings")

        data = response.json()
        assert data["status"] == "failed"
        assert "boom" in data["message"]

    async def test_primary_broadcast(self, client: AsyncClient, test_session, sample_fixture, sample_providers):
        created = datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)
        test_session.add_all([
            Broadcast(id=10, fixture_id=sample_fixture.id, provider_id=10,
                      sportmonks_tv_station_id=901, channel_name="Sky Sports Main Event", created_at=created),
            Broadcast(id=11, fixture_id=sample_fixture.id, provider_id=11,
                      sportmonks_tv_station_id=902, channel_name="TNT Sports 1", created_at=created),
            Broadcast(id=12, fixture_id=sample_fixture.id, provider_id=12,
                      sportmonks_tv_station_id=903, channel_name="Prime Video", created_at=created),
        ])
        await test_session.commit()

        response = await client.get(f"/api/v1/sync/fixtures/{sample_fixture.id}/primary-broadcast")

        assert response.status_code == 200
        data = response.json()
        assert data["visibility"] == "confirmed"
        assert data["primary"]["provider_name"] == "TNT Sports"
        assert [c["broadcast_id"] for c in data["candidates"]] == [11, 12, 10]

    async def test_primary_broadcast_unknown_fixture(self, client: AsyncClient):
        response = await client.get("/api/v1/sync/fixtures/9999/primary-broadcast")
        assert response.status_code == 404


async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}
