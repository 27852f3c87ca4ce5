#!/usr/bin/env python3
"""
Fetch fixtures from Sportmonks and sync them into the database.

Windows are fetched month by month in ascending order; each fixture is
matched by Sportmonks id (or same teams on the same UTC date) and
updated in place, or inserted. Unmapped teams are skipped and listed.

Usage:
    # Next 30 days for every enabled competition
    python scripts/sync_fixtures.py

    # One competition, explicit range, no writes
    python scripts/sync_fixtures.py --competition-id=1 --date-from=2025-08-01 --date-to=2025-12-31 --dry-run

    # Only fixtures involving two teams
    python scripts/sync_fixtures.py --team=arsenal --team=chelsea --verbose

    # Refresh status and scores of matches in play now
    python scripts/sync_fixtures.py --live
"""

import argparse
import asyncio
import logging
import sys
import os
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import get_settings, require_sportmonks_settings
from app.database import AsyncSessionLocal
from app.exceptions import ConfigurationError
from app.schemas.sync import SyncStatus
from app.services.sportmonks_client import SportmonksClient
from app.services.sync import SyncOrchestrator
from app.services.sync.summary import SyncSummary

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync fixtures from Sportmonks")
    parser.add_argument("--competition-id", type=int, action="append", dest="competition_ids",
                        help="Our competition ID (repeatable). Default: all enabled")
    parser.add_argument("--date-from", type=date.fromisoformat, help="YYYY-MM-DD (default: today)")
    parser.add_argument("--date-to", type=date.fromisoformat, help="YYYY-MM-DD (default: +SYNC_DAYS_AHEAD)")
    parser.add_argument("--team", action="append", dest="team_slugs",
                        help="Only fixtures involving this team slug (repeatable)")
    parser.add_argument("--dry-run", action="store_true", help="Classify and count, no database writes")
    parser.add_argument("--no-broadcasts", action="store_true", help="Skip Broadcast row ingestion")
    parser.add_argument("--live", action="store_true",
                        help="Only refresh fixtures currently in play (ignores dates and teams)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def print_summary(summary: SyncSummary) -> None:
    prefix = "[DRY RUN] " if summary.dry_run else ""
    print(f"\n{'=' * 60}")
    print(f"{prefix}Fixture sync: {summary.status.value.upper()}")
    print(f"{'=' * 60}")
    print(f"  Processed:  {summary.processed}")
    print(f"  Inserted:   {summary.inserted}")
    print(f"  Updated:    {summary.updated}")
    print(f"  Unchanged:  {summary.unchanged}")
    print(f"  Skipped:    {summary.skipped} {summary.skip_counts() or ''}")
    print(f"  Failed:     {summary.failed}")
    print(f"  Broadcasts: +{summary.broadcasts_inserted} ~{summary.broadcasts_updated} "
          f"(unmapped {summary.broadcasts_unmapped}, failed {summary.broadcasts_failed})")
    print(f"  Windows:    {len(summary.windows)} fetched, {summary.windows_failed} failed")
    print(f"  API calls:  {summary.api_calls}")
    if summary.deadline_exceeded:
        print("  ⚠️  Run deadline exceeded, remaining fixtures not processed")

    for window in summary.windows:
        if window["error"]:
            print(f"  ❌ Window {window['start']}..{window['end']} "
                  f"(competition {window['competition_id']}): {window['error']}")
    for item in summary.skipped_items:
        print(f"  ⏭️  {item['external_id']}: {item['reason']}"
              f"{' - ' + item['detail'] if item['detail'] else ''}")
    for failure in summary.failures:
        print(f"  ❌ {failure['external_id']}: {failure['error']}")
    if summary.unresolved_teams:
        print("\n  Unmapped Sportmonks teams (link with scripts/backfill_team_ids.py):")
        for external_id, name in sorted(summary.unresolved_teams.items()):
            print(f"    {external_id}: {name}")


async def run(args: argparse.Namespace) -> SyncSummary:
    settings = get_settings()
    async with AsyncSessionLocal() as db:
        orchestrator = SyncOrchestrator(db, SportmonksClient(settings), settings)
        if args.live:
            return await orchestrator.sync_live(
                competition_ids=args.competition_ids, dry_run=args.dry_run
            )
        return await orchestrator.sync_fixtures(
            competition_ids=args.competition_ids,
            date_from=args.date_from,
            date_to=args.date_to,
            team_slugs=args.team_slugs,
            dry_run=args.dry_run,
            include_broadcasts=not args.no_broadcasts,
        )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        require_sportmonks_settings(get_settings())
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    summary = asyncio.run(run(args))
    print_summary(summary)
    return 1 if summary.status == SyncStatus.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
