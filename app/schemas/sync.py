from datetime import date, datetime
from enum import Enum
from pydantic import BaseModel, Field, model_validator


class SyncStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncResponse(BaseModel):
    status: SyncStatus
    message: str
    details: dict | None = None


class FixtureSyncRequest(BaseModel):
    competition_ids: list[int] | None = None
    date_from: date | None = None
    date_to: date | None = None
    team_slugs: list[str] | None = None
    dry_run: bool = False
    include_broadcasts: bool = True

    @model_validator(mode="after")
    def check_date_range(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class TeamMergePair(BaseModel):
    keep_id: int
    delete_id: int


class TeamMergeRequest(BaseModel):
    pairs: list[TeamMergePair] = Field(..., min_length=1)


class BroadcastCandidateResponse(BaseModel):
    broadcast_id: int
    provider_id: int | None = None
    provider_name: str | None = None
    provider_type: str | None = None
    rights_tier: int | None = None
    channel_name: str | None = None
    country_code: str | None = None
    created_at: datetime | None = None


class PrimaryBroadcastResponse(BaseModel):
    fixture_id: int
    visibility: str
    primary: BroadcastCandidateResponse | None = None
    candidates: list[BroadcastCandidateResponse] = []
