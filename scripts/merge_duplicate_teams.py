#!/usr/bin/env python3
"""
Merge duplicate teams.

Every fixture of the deleted team is moved to the kept team (home
references, then away references), the kept team's fixture count is
verified, and the duplicate is deleted. Each pair is one transaction:
a failed pair is rolled back and reported, the others continue.

Usage:
    # Explicit pairs, KEEP:DELETE
    python scripts/merge_duplicate_teams.py --pair=20:306 --pair=14:122

    # Every suggestion from find_duplicate_teams.py
    python scripts/merge_duplicate_teams.py --all-suggested --dry-run
"""

import argparse
import asyncio
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import AsyncSessionLocal
from app.services.sync.team_merge import TeamMergeService

logger = logging.getLogger(__name__)


def parse_pair(value: str) -> tuple[int, int]:
    """'20:306' -> (keep_id=20, delete_id=306)."""
    try:
        keep, delete = value.split(":")
        return int(keep), int(delete)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected KEEP:DELETE team ids, got '{value}'")


async def merge(pairs: list[tuple[int, int]], all_suggested: bool, dry_run: bool) -> dict:
    async with AsyncSessionLocal() as db:
        service = TeamMergeService(db)
        if all_suggested:
            for group in await service.find_duplicate_teams():
                pairs.extend((group["keep_id"], delete_id) for delete_id in group["delete_ids"])
        if not pairs:
            return {"merged": [], "failed": []}
        return await service.merge_pairs(pairs, dry_run=dry_run)


def print_results(results: dict, dry_run: bool) -> None:
    prefix = "[DRY RUN] " if dry_run else ""
    for item in results["merged"]:
        print(
            f"  ✅ {prefix}{item['delete_id']} -> {item['keep_id']}: "
            f"home={item['home_rewritten']} away={item['away_rewritten']} "
            f"fixtures {item['fixtures_before']} -> {item['fixtures_after']}"
        )
    for failure in results["failed"]:
        print(f"  ❌ {failure['item']}: {failure['error']}")
    print(f"\n{prefix}Merged: {len(results['merged'])}, failed: {len(results['failed'])}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Merge duplicate teams (KEEP:DELETE pairs)")
    parser.add_argument("--pair", type=parse_pair, action="append", dest="pairs", default=[],
                        help="KEEP:DELETE team ids (repeatable)")
    parser.add_argument("--all-suggested", action="store_true",
                        help="Merge every group found by duplicate detection (keep lowest id)")
    parser.add_argument("--dry-run", action="store_true", help="Roll back instead of committing")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if not args.pairs and not args.all_suggested:
        parser.error("give at least one --pair or --all-suggested")

    results = asyncio.run(merge(list(args.pairs), args.all_suggested, args.dry_run))
    print_results(results, args.dry_run)
    return 1 if results["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
