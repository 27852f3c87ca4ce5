"""
Sync services module.

This module contains the services that reconcile Sportmonks data
with the local database.

Services:
- TeamResolver: Sportmonks team id -> canonical team, external id backfill
- TeamMergeService: Duplicate team detection and transactional merge
- FixtureSyncService: Fixture upsert with identity fallback
- BroadcastSyncService: TV station ingestion and mapping coverage
- SyncOrchestrator: Coordinates full sync operations
"""
from app.services.sync.base import BaseSyncService, parse_int, parse_utc_datetime
from app.services.sync.batch import BatchFailure, BatchResult, RunDeadline, run_in_batches
from app.services.sync.summary import SyncSummary
from app.services.sync.team_resolver import TeamResolver
from app.services.sync.team_merge import TeamMergeService, MergeResult
from app.services.sync.fixture_sync import FixtureSyncService, map_status
from app.services.sync.broadcast_sync import BroadcastSyncService
from app.services.sync.orchestrator import SyncOrchestrator

__all__ = [
    # Base
    "BaseSyncService",
    "parse_int",
    "parse_utc_datetime",
    # Batch runner
    "BatchFailure",
    "BatchResult",
    "RunDeadline",
    "run_in_batches",
    # Services
    "SyncSummary",
    "TeamResolver",
    "TeamMergeService",
    "MergeResult",
    "FixtureSyncService",
    "map_status",
    "BroadcastSyncService",
    "SyncOrchestrator",
]
