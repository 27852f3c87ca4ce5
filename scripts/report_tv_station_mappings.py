#!/usr/bin/env python3
"""
Report TV-station -> provider mapping coverage.

Lists Sportmonks TV stations stored on broadcasts without a provider,
most frequent first. Mappings themselves are maintained by hand in
tv_station_mappings; this script never guesses them.

Usage:
    python scripts/report_tv_station_mappings.py

    # After adding rows to tv_station_mappings
    python scripts/report_tv_station_mappings.py --apply

    # Inspect the primary broadcaster decision for fixtures
    python scripts/report_tv_station_mappings.py --primary=6057 --primary=6058

    # Re-fetch one fixture's TV stations from Sportmonks
    python scripts/report_tv_station_mappings.py --refresh=6057
"""

import argparse
import asyncio
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import get_settings, require_sportmonks_settings
from app.database import AsyncSessionLocal
from app.exceptions import ConfigurationError
from app.services.broadcast_selection import BroadcastSelectionService
from app.services.sync.broadcast_sync import BroadcastSyncService

logger = logging.getLogger(__name__)


def print_report(report: dict) -> None:
    print(f"Broadcasts: {report['total_broadcasts']} total, {report['mapped']} mapped, "
          f"{report['unmapped']} unmapped ({report['coverage_percent']}% coverage)\n")
    if not report["stations"]:
        print("✅ Every TV station is mapped")
        return
    print(f"{'station':>8}  {'fixtures':>8}  {'last seen':<25}  channel")
    for s in report["stations"]:
        print(f"{s['sportmonks_tv_station_id']:>8}  {s['fixtures']:>8}  "
              f"{(s['last_seen'] or '-'):<25}  {s['channel_name'] or '?'}")


def print_primary(selection) -> None:
    print(f"\nFixture {selection.fixture_id}: {selection.visibility.value.upper()}")
    for rank, c in enumerate(selection.candidates, start=1):
        chosen = "→" if selection.primary and c.broadcast_id == selection.primary.broadcast_id else " "
        print(f"  {chosen} {rank}. broadcast {c.broadcast_id}: {c.provider_name or 'UNMAPPED'} "
              f"[{c.provider_type or '-'}, tier {c.rights_tier if c.rights_tier is not None else '-'}] "
              f"{c.channel_name or ''}")


async def run(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as db:
        service = BroadcastSyncService(db)

        for fixture_id in args.refresh:
            result = await service.refresh_fixture_broadcasts(fixture_id, dry_run=args.dry_run)
            print(f"Refreshed fixture {fixture_id}: {result}")

        if args.apply:
            count = await service.apply_station_mappings(dry_run=args.dry_run)
            print(f"{'[DRY RUN] ' if args.dry_run else ''}Applied mappings to {count} broadcasts\n")

        if args.primary:
            selections = await BroadcastSelectionService(db).primary_for_fixtures(args.primary)
            for fixture_id in args.primary:
                print_primary(selections[fixture_id])
            return 0

        print_report(await service.unmapped_stations_report())
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="TV station mapping coverage")
    parser.add_argument("--apply", action="store_true", help="Fill provider_id from tv_station_mappings")
    parser.add_argument("--primary", type=int, action="append", default=[], metavar="FIXTURE_ID",
                        help="Show the ranked broadcasters of a fixture (repeatable)")
    parser.add_argument("--refresh", type=int, action="append", default=[], metavar="FIXTURE_ID",
                        help="Re-fetch a fixture's TV stations from Sportmonks (repeatable)")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if args.refresh:
        try:
            require_sportmonks_settings(get_settings())
        except ConfigurationError as e:
            logger.error(str(e))
            return 1

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
