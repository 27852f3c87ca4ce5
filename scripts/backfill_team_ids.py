#!/usr/bin/env python3
"""
Link Sportmonks team ids onto canonical teams by slug.

Fixture sync never creates teams: a provider team without a linked
canonical team makes its fixtures skip. Use this to link them.

Usage:
    python scripts/backfill_team_ids.py --map=bournemouth=52 --map=arsenal=19
    python scripts/backfill_team_ids.py --file=team_ids.json --dry-run

    # Suggest canonical teams for a provider team name
    python scripts/backfill_team_ids.py --suggest="AFC Bournemouth"

team_ids.json holds {"slug": sportmonks_team_id, ...}.
"""

import argparse
import asyncio
import json
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import AsyncSessionLocal
from app.services.sync.team_resolver import TeamResolver, LINKED

OUTCOME_ICONS = {
    "linked": "✅",
    "already_linked": "➖",
    "not_found": "❓",
    "conflict": "❌",
}


def parse_mapping(value: str) -> tuple[str, int]:
    """'bournemouth=52' -> ('bournemouth', 52)."""
    slug, sep, external_id = value.partition("=")
    if not sep or not slug.strip() or not external_id.strip().isdigit():
        raise argparse.ArgumentTypeError(f"Expected SLUG=SPORTMONKS_ID, got '{value}'")
    return slug.strip(), int(external_id)


def load_mapping_file(path: str) -> dict[str, int]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of slug -> id")
    return {str(slug): int(external_id) for slug, external_id in data.items()}


async def backfill(mapping: dict[str, int], dry_run: bool) -> list[dict]:
    async with AsyncSessionLocal() as db:
        return await TeamResolver(db).backfill_external_ids(mapping, dry_run=dry_run)


async def suggest(name: str, limit: int) -> list[dict]:
    async with AsyncSessionLocal() as db:
        return await TeamResolver(db).suggest_candidates(name, limit=limit)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Link Sportmonks team ids to teams")
    parser.add_argument("--map", type=parse_mapping, action="append", dest="pairs", default=[],
                        help="SLUG=SPORTMONKS_ID (repeatable)")
    parser.add_argument("--file", help="JSON file with {slug: sportmonks_team_id}")
    parser.add_argument("--suggest", metavar="NAME", help="Fuzzy-match a provider team name")
    parser.add_argument("--limit", type=int, default=5)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    if args.suggest:
        candidates = asyncio.run(suggest(args.suggest, args.limit))
        if not candidates:
            print(f"No unlinked team looks like '{args.suggest}'")
        for c in candidates:
            print(f"  {c['score']:>3}  {c['team_id']:>6}  {c['name']} ({c['slug']})")
        return 0

    mapping = dict(args.pairs)
    if args.file:
        mapping.update(load_mapping_file(args.file))
    if not mapping:
        parser.error("give --map, --file or --suggest")

    outcomes = asyncio.run(backfill(mapping, args.dry_run))
    for entry in outcomes:
        icon = OUTCOME_ICONS.get(entry["outcome"], "?")
        detail = f" - {entry['detail']}" if entry["detail"] else ""
        print(f"  {icon} {entry['slug']} -> {entry['external_id']}: {entry['outcome']}{detail}")

    linked = sum(1 for e in outcomes if e["outcome"] == LINKED)
    print(f"\n{'[DRY RUN] ' if args.dry_run else ''}Linked {linked} of {len(outcomes)}")
    return 0 if all(e["outcome"] in ("linked", "already_linked") for e in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
