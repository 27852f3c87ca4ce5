#!/usr/bin/env python3
"""
Report canonical teams that share a Sportmonks team id.

Each group is printed with fixture counts and the suggested merge
(keep the lowest id). Feed the suggestions to merge_duplicate_teams.py.

Usage:
    python scripts/find_duplicate_teams.py
    python scripts/find_duplicate_teams.py --json
"""

import argparse
import asyncio
import json
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import AsyncSessionLocal
from app.services.sync.team_merge import TeamMergeService


def print_groups(groups: list[dict]) -> None:
    if not groups:
        print("✅ No duplicate teams found")
        return

    print(f"Found {len(groups)} Sportmonks team ids on more than one team:\n")
    for group in groups:
        print(f"Sportmonks team {group['sportmonks_team_id']}:")
        for team in group["teams"]:
            marker = "KEEP  " if team["id"] == group["keep_id"] else "DELETE"
            print(f"  [{marker}] {team['id']:>6}  {team['name']} ({team['slug']}) - {team['fixtures']} fixtures")
        pairs = " ".join(f"--pair={group['keep_id']}:{d}" for d in group["delete_ids"])
        print(f"  merge: python scripts/merge_duplicate_teams.py {pairs}\n")


async def find_duplicates() -> list[dict]:
    async with AsyncSessionLocal() as db:
        return await TeamMergeService(db).find_duplicate_teams()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Find teams sharing a Sportmonks team id")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    groups = asyncio.run(find_duplicates())
    if args.json:
        print(json.dumps(groups, indent=2, ensure_ascii=False))
    else:
        print_groups(groups)
    return 0


if __name__ == "__main__":
    sys.exit(main())
