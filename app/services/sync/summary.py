"""
Run summary accumulated by the fixture pipeline.

Every outcome of a run (writes, skips, failures, fetch windows) is
counted here and reported at the end instead of being raised.
"""
from dataclasses import dataclass, field
from typing import Any

from app.schemas.sync import SyncStatus

# Skip reasons
MISSING_ID = "missing_id"
MISSING_PARTICIPANTS = "missing_participants"
MISSING_KICKOFF = "missing_kickoff"
UNMAPPED_TEAM = "unmapped_team"
SAME_TEAM = "same_team"


@dataclass
class SyncSummary:
    dry_run: bool = False

    processed: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0

    broadcasts_inserted: int = 0
    broadcasts_updated: int = 0
    broadcasts_unmapped: int = 0
    broadcasts_failed: int = 0

    api_calls: int = 0
    deadline_exceeded: bool = False
    fatal_error: str | None = None

    skipped_items: list[dict[str, Any]] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)
    windows: list[dict[str, Any]] = field(default_factory=list)
    # Sportmonks team id -> provider team name
    unresolved_teams: dict[int, str] = field(default_factory=dict)

    def record_skip(self, reason: str, external_id: int | None, detail: str | None = None) -> None:
        self.skipped += 1
        self.skipped_items.append({"reason": reason, "external_id": external_id, "detail": detail})

    def record_failure(self, external_id: int | None, error: str) -> None:
        self.failed += 1
        self.failures.append({"external_id": external_id, "error": error})

    def record_broadcast_failure(self, external_id: int | None, error: str) -> None:
        self.broadcasts_failed += 1
        self.failures.append({"external_id": external_id, "error": f"broadcasts: {error}"})

    def record_window(self, competition_id: int | None, window) -> None:
        entry = window.to_dict()
        entry["competition_id"] = competition_id
        self.windows.append(entry)

    @property
    def windows_failed(self) -> int:
        return sum(1 for w in self.windows if w["error"])

    @property
    def status(self) -> SyncStatus:
        """Skips are deliberate policy; only failures degrade the status."""
        if self.fatal_error:
            return SyncStatus.FAILED
        if self.windows and self.windows_failed == len(self.windows):
            return SyncStatus.FAILED
        if self.processed and self.failed == self.processed:
            return SyncStatus.FAILED
        if self.failed or self.broadcasts_failed or self.windows_failed or self.deadline_exceeded:
            return SyncStatus.PARTIAL
        return SyncStatus.SUCCESS

    def skip_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for item in self.skipped_items:
            counts[item["reason"]] = counts.get(item["reason"], 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "dry_run": self.dry_run,
            "processed": self.processed,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "failed": self.failed,
            "skip_reasons": self.skip_counts(),
            "broadcasts": {
                "inserted": self.broadcasts_inserted,
                "updated": self.broadcasts_updated,
                "unmapped": self.broadcasts_unmapped,
                "failed": self.broadcasts_failed,
            },
            "api_calls": self.api_calls,
            "windows_total": len(self.windows),
            "windows_failed": self.windows_failed,
            "deadline_exceeded": self.deadline_exceeded,
            "fatal_error": self.fatal_error,
            "skipped_items": self.skipped_items,
            "failures": self.failures,
            "windows": self.windows,
            "unresolved_teams": {str(k): v for k, v in self.unresolved_teams.items()},
        }
