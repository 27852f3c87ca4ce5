from app.schemas.sync import (
    SyncResponse,
    SyncStatus,
    FixtureSyncRequest,
    TeamMergeRequest,
    TeamMergePair,
    BroadcastCandidateResponse,
    PrimaryBroadcastResponse,
)

__all__ = [
    "SyncResponse",
    "SyncStatus",
    "FixtureSyncRequest",
    "TeamMergeRequest",
    "TeamMergePair",
    "BroadcastCandidateResponse",
    "PrimaryBroadcastResponse",
]
