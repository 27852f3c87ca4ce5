from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_settings, Settings
from app.config import require_sportmonks_settings
from app.models import Fixture
from app.services.broadcast_selection import BroadcastSelectionService
from app.services.sportmonks_client import SportmonksClient
from app.services.sync import SyncOrchestrator
from app.schemas.sync import (
    SyncResponse,
    SyncStatus,
    FixtureSyncRequest,
    TeamMergeRequest,
    PrimaryBroadcastResponse,
)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/fixtures", response_model=SyncResponse)
async def sync_fixtures(
    request: FixtureSyncRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Fetch fixtures from Sportmonks and sync them into the database."""
    try:
        require_sportmonks_settings(settings)
        orchestrator = SyncOrchestrator(db, SportmonksClient(settings), settings)
        summary = await orchestrator.sync_fixtures(
            competition_ids=request.competition_ids,
            date_from=request.date_from,
            date_to=request.date_to,
            team_slugs=request.team_slugs,
            dry_run=request.dry_run,
            include_broadcasts=request.include_broadcasts,
        )

        return SyncResponse(
            status=summary.status,
            message=(
                f"Fixtures synchronization completed: {summary.inserted} inserted, "
                f"{summary.updated} updated, {summary.unchanged} unchanged, "
                f"{summary.skipped} skipped, {summary.failed} failed"
            ),
            details=summary.to_dict(),
        )
    except Exception as e:
        return SyncResponse(
            status=SyncStatus.FAILED,
            message=f"Fixtures synchronization failed: {str(e)}",
            details=None,
        )


@router.get("/teams/duplicates", response_model=SyncResponse)
async def find_duplicate_teams(db: AsyncSession = Depends(get_db)):
    """List teams that share a Sportmonks team id, with the suggested merge."""
    try:
        orchestrator = SyncOrchestrator(db)
        groups = await orchestrator.find_duplicate_teams()

        return SyncResponse(
            status=SyncStatus.SUCCESS,
            message=f"{len(groups)} duplicate team groups found",
            details={"groups": groups},
        )
    except Exception as e:
        return SyncResponse(
            status=SyncStatus.FAILED,
            message=f"Duplicate detection failed: {str(e)}",
            details=None,
        )


@router.post("/teams/merge", response_model=SyncResponse)
async def merge_teams(
    request: TeamMergeRequest,
    dry_run: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
):
    """Merge (keep_id, delete_id) team pairs. Each pair is its own transaction."""
    try:
        orchestrator = SyncOrchestrator(db)
        results = await orchestrator.merge_pairs(
            [(pair.keep_id, pair.delete_id) for pair in request.pairs],
            dry_run=dry_run,
        )

        merged, failed = len(results["merged"]), len(results["failed"])
        if failed and not merged:
            status = SyncStatus.FAILED
        elif failed:
            status = SyncStatus.PARTIAL
        else:
            status = SyncStatus.SUCCESS

        return SyncResponse(
            status=status,
            message=f"Team merge completed: {merged} merged, {failed} failed",
            details=results,
        )
    except Exception as e:
        return SyncResponse(
            status=SyncStatus.FAILED,
            message=f"Team merge failed: {str(e)}",
            details=None,
        )


@router.get("/broadcasts/unmapped", response_model=SyncResponse)
async def unmapped_stations(db: AsyncSession = Depends(get_db)):
    """TV stations without a provider mapping, most frequent first."""
    try:
        orchestrator = SyncOrchestrator(db)
        report = await orchestrator.unmapped_stations_report()

        return SyncResponse(
            status=SyncStatus.SUCCESS,
            message=(
                f"{len(report['stations'])} unmapped TV stations, "
                f"{report['coverage_percent']}% of broadcasts mapped"
            ),
            details=report,
        )
    except Exception as e:
        return SyncResponse(
            status=SyncStatus.FAILED,
            message=f"Unmapped station report failed: {str(e)}",
            details=None,
        )


@router.post("/broadcasts/apply-mappings", response_model=SyncResponse)
async def apply_station_mappings(
    dry_run: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
):
    """Link existing unmapped broadcasts to providers mapped since."""
    try:
        orchestrator = SyncOrchestrator(db)
        count = await orchestrator.apply_station_mappings(dry_run=dry_run)

        return SyncResponse(
            status=SyncStatus.SUCCESS,
            message=f"TV station mappings applied: {count} broadcasts updated",
            details={"broadcasts_updated": count, "dry_run": dry_run},
        )
    except Exception as e:
        return SyncResponse(
            status=SyncStatus.FAILED,
            message=f"Applying TV station mappings failed: {str(e)}",
            details=None,
        )


@router.get("/fixtures/{fixture_id}/primary-broadcast", response_model=PrimaryBroadcastResponse)
async def get_primary_broadcast(fixture_id: int, db: AsyncSession = Depends(get_db)):
    """Primary broadcaster of a fixture with the ranked candidates."""
    fixture = await db.get(Fixture, fixture_id)
    if fixture is None:
        raise HTTPException(status_code=404, detail="Fixture not found")

    selection = await BroadcastSelectionService(db).primary_for_fixture(fixture_id)
    return selection.to_dict()
