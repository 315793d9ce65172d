"""Premium flagging: rank items of one type by their rubric score."""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Sequence, TypeVar

import pandas as pd

from valstats.models import MatchStat, PlayerStatsBundle
from valstats.scoring import score_agent, score_map, score_match, score_season, score_weapon

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREMIUM_SHARE = 3
RANKED_MATCH_THRESHOLD = 75
UNRANKED_MATCH_THRESHOLD = 85
TOP_MATCH_SHARE = 0.2


def rank_by_score(items: Sequence[T], scorer: Callable[[T], float]) -> pd.DataFrame:
    """Scores in descending order; equal scores keep their input order."""
    frame = pd.DataFrame(
        {"position": range(len(items)), "score": [float(scorer(item)) for item in items]}
    )
    return frame.sort_values("score", ascending=False, kind="mergesort").reset_index(drop=True)


def determine_premium(items: List[T], scorer: Callable[[T], float]) -> List[T]:
    """Flag the top third (at least one) of ``items``; every other flag is cleared."""
    if not items:
        return items
    ranked = rank_by_score(items, scorer)
    top = max(1, math.ceil(len(items) / PREMIUM_SHARE))
    for item in items:
        item.is_premium_stats = False
    for position in ranked["position"].head(top):
        items[int(position)].is_premium_stats = True
    return items


def determine_premium_matches(matches: List[MatchStat]) -> List[MatchStat]:
    """A match is premium above its absolute threshold or inside the top 20% by score."""
    if not matches:
        return matches
    ranked = rank_by_score(matches, score_match)
    top = max(1, math.ceil(len(matches) * TOP_MATCH_SHARE))
    for rank, row in enumerate(ranked.itertuples(index=False)):
        match = matches[int(row.position)]
        threshold = (
            RANKED_MATCH_THRESHOLD
            if match.stats.general.is_ranked
            else UNRANKED_MATCH_THRESHOLD
        )
        match.is_premium_stats = bool(row.score >= threshold or rank < top)
    return matches


def apply_premium(bundle: PlayerStatsBundle) -> PlayerStatsBundle:
    determine_premium(bundle.agent_stats, score_agent)
    determine_premium(bundle.map_stats, score_map)
    determine_premium(bundle.weapon_stats, score_weapon)
    determine_premium(bundle.season_stats, score_season)
    determine_premium_matches(bundle.match_stats)
    logger.info(
        f"Premium flags: {sum(a.is_premium_stats for a in bundle.agent_stats)} agents, "
        f"{sum(m.is_premium_stats for m in bundle.map_stats)} maps, "
        f"{sum(w.is_premium_stats for w in bundle.weapon_stats)} weapons, "
        f"{sum(s.is_premium_stats for s in bundle.season_stats)} seasons, "
        f"{sum(m.is_premium_stats for m in bundle.match_stats)} matches"
    )
    return bundle
