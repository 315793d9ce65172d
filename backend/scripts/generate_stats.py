#!/usr/bin/env python3
"""
Fold a file of raw matches into a player's stored stats.

This script:
1. Reads raw matches from a JSON file (a list, or {"matches": [...]})
2. Generates, enriches, merges and flags the player's stats
3. Saves them to the JSON store and optionally prints a summary table

Usage:
    python scripts/generate_stats.py --puuid <puuid> --matches matches.json
    python scripts/generate_stats.py --puuid <puuid> --matches matches.json --offline --summary
    python scripts/generate_stats.py --puuid <puuid> --matches matches.json --callouts callouts.json
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
import sys
from pathlib import Path

import pandas as pd

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from valstats.env import load_env  # noqa: E402
from valstats.errors import StoreError  # noqa: E402
from valstats.lookup import StaticMetadataSource  # noqa: E402
from valstats.models import PlayerStatsBundle  # noqa: E402
from valstats.pipeline import build_metadata_source, update_player_stats  # noqa: E402
from valstats.settings import Settings  # noqa: E402
from valstats.store import JsonStatsStore  # noqa: E402

logger = logging.getLogger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate and merge per-player stats from raw match telemetry."
    )
    parser.add_argument("--puuid", required=True, help="Player to compute stats for.")
    parser.add_argument(
        "--matches",
        type=Path,
        required=True,
        help='JSON file holding a list of raw matches or {"matches": [...]}.',
    )
    parser.add_argument(
        "--store-dir",
        type=Path,
        default=None,
        help="Directory for stored stats (default: VALSTATS_STORE_DIR).",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not call the lookup API; display metadata stays blank.",
    )
    parser.add_argument(
        "--callouts",
        type=Path,
        default=None,
        help="JSON file mapping map id to its callout list (implies --offline).",
    )
    parser.add_argument(
        "--no-enrich",
        action="store_true",
        help="Skip filling display metadata.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print per-agent and per-map season totals.",
    )
    return parser.parse_args()


def _read_json(path: Path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_matches(path: Path) -> list:
    payload = _read_json(path)
    if isinstance(payload, dict):
        payload = payload.get("matches") or []
    if not isinstance(payload, list):
        raise ValueError(f"{path} does not hold a list of matches")
    return payload


def summary_frame(bundle: PlayerStatsBundle) -> pd.DataFrame:
    rows = []
    for kind, stats, info in (
        ("agent", bundle.agent_stats, lambda s: s.agent),
        ("map", bundle.map_stats, lambda s: s.map),
    ):
        for stat in stats:
            for performance in stat.performance_by_season:
                totals = performance.stats
                rows.append(
                    {
                        "type": kind,
                        "name": info(stat).name or info(stat).id,
                        "season": performance.season.name or performance.season.id,
                        "kills": totals.kills,
                        "deaths": totals.deaths,
                        "wins": totals.matches_won,
                        "losses": totals.matches_lost,
                        "premium": stat.is_premium_stats,
                    }
                )
    frame = pd.DataFrame(rows)
    if frame.empty:
        return frame
    frame["kd"] = (frame["kills"] / frame["deaths"].clip(lower=1)).round(2)
    return frame.sort_values(["type", "kills"], ascending=[True, False]).reset_index(drop=True)


def main() -> None:
    load_env()
    args = _parse_args()
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
    )
    if args.no_enrich:
        settings = replace(settings, enrich_metadata=False)

    try:
        matches = load_matches(args.matches)
    except (OSError, ValueError) as exc:
        print(f"❌ Could not read matches: {exc}")
        sys.exit(1)

    if args.callouts:
        metadata = StaticMetadataSource(callouts=_read_json(args.callouts))
    else:
        metadata = build_metadata_source(settings, offline=args.offline)

    store = JsonStatsStore(args.store_dir or settings.store_dir)
    print(f"🎯 {len(matches)} matches for {args.puuid}")
    try:
        bundle = update_player_stats(args.puuid, matches, store, metadata, settings)
    except StoreError as exc:
        print(f"❌ Store error: {exc}")
        sys.exit(1)

    print(
        f"📊 agents={len(bundle.agent_stats)} maps={len(bundle.map_stats)} "
        f"weapons={len(bundle.weapon_stats)} seasons={len(bundle.season_stats)} "
        f"matches={len(bundle.match_stats)}"
    )
    print(f"📁 Saved to {store.path_for(args.puuid)}")

    if args.summary:
        frame = summary_frame(bundle)
        print("-" * 60)
        print(frame.to_string(index=False) if not frame.empty else "No stats yet.")


if __name__ == "__main__":
    main()
