"""Combine persisted stat lists with freshly generated ones.

The engine never deduplicates matches: feeding the same match through
generation twice doubles its counters. Callers keep track of processed
match ids (see ``valstats.pipeline``).
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, List, Optional, Set, TypeVar

from pydantic import BaseModel

from valstats.models import (
    AbilityImpact,
    AgentMapStat,
    AgentSeasonPerformance,
    AgentSideStats,
    AgentStat,
    MapSeasonPerformance,
    MapSideStats,
    MapStat,
    MatchStat,
    PlayerStatsBundle,
    SeasonRef,
    SeasonStat,
    WeaponSeasonPerformance,
    WeaponStat,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")


class Merger(Generic[T]):
    def __init__(
        self,
        name: str,
        get_id: Callable[[T], str],
        merge_item: Callable[[T, T], T],
    ) -> None:
        self.name = name
        self.get_id = get_id
        self.merge_item = merge_item

    def __call__(self, old: Optional[List[T]], new: Optional[List[T]]) -> List[T]:
        return self.merge(old, new)

    def merge(self, old: Optional[List[T]], new: Optional[List[T]]) -> List[T]:
        if not old:
            return list(new or [])
        if not new:
            return list(old)
        try:
            old_by_id: Dict[str, T] = {self.get_id(item): item for item in old}
            merged: List[T] = []
            seen: Set[str] = set()
            for item in new:
                item_id = self.get_id(item)
                counterpart = old_by_id.get(item_id)
                merged.append(self.merge_item(counterpart, item) if counterpart is not None else item)
                seen.add(item_id)
            merged.extend(item for item in old if self.get_id(item) not in seen)
            return merged
        except Exception as exc:
            logger.error(
                f"Error merging {self.name} ({len(old)} old, {len(new)} new): {exc}; "
                f"keeping newly generated records"
            )
            return list(new)


def create_merger(
    name: str, get_id: Callable[[T], str], merge_item: Callable[[T, T], T]
) -> Merger[T]:
    return Merger(name, get_id, merge_item)


# Numeric helpers ------------------------------------------------------------------


def add_numeric_fields(
    target: BaseModel, source: BaseModel, skip: tuple = ()
) -> None:
    """Add every int/float field of ``source`` onto ``target`` in place."""
    for name in type(target).model_fields:
        if name in skip:
            continue
        value = getattr(source, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        setattr(target, name, getattr(target, name) + value)


def merge_season_ref(old: SeasonRef, new: SeasonRef) -> SeasonRef:
    return SeasonRef(
        id=new.id,
        name=new.name or old.name,
        is_active=new.is_active or old.is_active,
    )


def merge_season_lists(
    old: List[P], new: List[P], merge_performance: Callable[[P, P], P]
) -> List[P]:
    """Union by season id; seasons present on both sides are combined."""
    new_by_id = {performance.season.id: performance for performance in new}
    merged: List[P] = []
    for performance in old:
        counterpart = new_by_id.pop(performance.season.id, None)
        if counterpart is None:
            merged.append(performance.model_copy(deep=True))
        else:
            merged.append(merge_performance(performance, counterpart))
    merged.extend(performance.model_copy(deep=True) for performance in new_by_id.values())
    return merged


def _merge_keyed(old: List[P], new: List[P], combine: Callable[[P, P], None]) -> List[P]:
    merged = [item.model_copy(deep=True) for item in old]
    index = {item.id: item for item in merged}
    for item in new:
        existing = index.get(item.id)
        if existing is None:
            copy = item.model_copy(deep=True)
            merged.append(copy)
            index[copy.id] = copy
        else:
            combine(existing, item)
    return merged


# Agents ---------------------------------------------------------------------------


def _combine_agent_map(target: AgentMapStat, source: AgentMapStat) -> None:
    target.wins += source.wins
    target.losses += source.losses
    target.name = target.name or source.name
    target.location = target.location or source.location
    target.image = target.image or source.image


def _combine_ability(target: AbilityImpact, source: AbilityImpact) -> None:
    target.count += source.count
    target.kills += source.kills
    target.damage += source.damage


def _merge_agent_side(old: AgentSideStats, new: AgentSideStats) -> AgentSideStats:
    merged = old.model_copy(deep=True)
    add_numeric_fields(merged, new)
    add_numeric_fields(merged.clutch_stats, new.clutch_stats)
    return merged


def merge_agent_performance(
    old: AgentSeasonPerformance, new: AgentSeasonPerformance
) -> AgentSeasonPerformance:
    stats = old.stats.model_copy()
    add_numeric_fields(stats, new.stats)
    return AgentSeasonPerformance(
        season=merge_season_ref(old.season, new.season),
        stats=stats,
        map_stats=_merge_keyed(old.map_stats, new.map_stats, _combine_agent_map),
        attack_stats=_merge_agent_side(old.attack_stats, new.attack_stats),
        defense_stats=_merge_agent_side(old.defense_stats, new.defense_stats),
        ability_and_ultimate_impact=_merge_keyed(
            old.ability_and_ultimate_impact, new.ability_and_ultimate_impact, _combine_ability
        ),
    )


def merge_agent_stat(old: AgentStat, new: AgentStat) -> AgentStat:
    agent = new.agent if new.agent.name else old.agent
    return AgentStat(
        id=new.id,
        puuid=new.puuid,
        agent=agent.model_copy(deep=True),
        performance_by_season=merge_season_lists(
            old.performance_by_season, new.performance_by_season, merge_agent_performance
        ),
        is_premium_stats=new.is_premium_stats,
    )


# Maps -----------------------------------------------------------------------------


def _merge_map_side(old: MapSideStats, new: MapSideStats) -> MapSideStats:
    merged = old.model_copy(deep=True)
    add_numeric_fields(merged, new)
    # Heatmaps are concatenated as-is, without dedup or cap.
    merged.heatmap_location.kills_location.extend(
        point.model_copy() for point in new.heatmap_location.kills_location
    )
    merged.heatmap_location.death_location.extend(
        point.model_copy() for point in new.heatmap_location.death_location
    )
    return merged


def merge_map_performance(
    old: MapSeasonPerformance, new: MapSeasonPerformance
) -> MapSeasonPerformance:
    stats = old.stats.model_copy()
    add_numeric_fields(stats, new.stats)
    return MapSeasonPerformance(
        season=merge_season_ref(old.season, new.season),
        stats=stats,
        attack_stats=_merge_map_side(old.attack_stats, new.attack_stats),
        defense_stats=_merge_map_side(old.defense_stats, new.defense_stats),
    )


def merge_map_stat(old: MapStat, new: MapStat) -> MapStat:
    map_info = new.map if new.map.name else old.map
    return MapStat(
        id=new.id,
        puuid=new.puuid,
        map=map_info.model_copy(deep=True),
        performance_by_season=merge_season_lists(
            old.performance_by_season, new.performance_by_season, merge_map_performance
        ),
        is_premium_stats=new.is_premium_stats,
    )


# Weapons --------------------------------------------------------------------------


def merge_weapon_performance(
    old: WeaponSeasonPerformance, new: WeaponSeasonPerformance
) -> WeaponSeasonPerformance:
    stats = old.stats.model_copy()
    add_numeric_fields(stats, new.stats, skip=("avg_kills_per_round", "avg_damage_per_round"))
    stats.recompute_averages()
    return WeaponSeasonPerformance(season=merge_season_ref(old.season, new.season), stats=stats)


def merge_weapon_stat(old: WeaponStat, new: WeaponStat) -> WeaponStat:
    weapon = new.weapon if new.weapon.name else old.weapon
    return WeaponStat(
        id=new.id,
        puuid=new.puuid,
        weapon=weapon.model_copy(deep=True),
        performance_by_season=merge_season_lists(
            old.performance_by_season, new.performance_by_season, merge_weapon_performance
        ),
        is_premium_stats=new.is_premium_stats,
    )


# Seasons and matches --------------------------------------------------------------


def merge_season_stat(old: SeasonStat, new: SeasonStat) -> SeasonStat:
    """Season totals accumulate; the best rank seen is kept."""
    stats = old.stats.model_copy()
    add_numeric_fields(stats, new.stats, skip=("highest_rank",))
    stats.highest_rank = max(old.stats.highest_rank, new.stats.highest_rank)
    return SeasonStat(
        id=new.id or old.id,
        puuid=new.puuid or old.puuid,
        season=merge_season_ref(old.season, new.season),
        stats=stats,
        is_premium_stats=new.is_premium_stats,
    )


def replace_with_newer(old: T, new: T) -> T:
    return new


merge_agent_stats = create_merger("agent stats", lambda item: item.id, merge_agent_stat)
merge_map_stats = create_merger("map stats", lambda item: item.id, merge_map_stat)
merge_weapon_stats = create_merger("weapon stats", lambda item: item.id, merge_weapon_stat)
merge_season_stats = create_merger("season stats", lambda item: item.id, merge_season_stat)
merge_match_stats = create_merger("match stats", lambda item: item.id, replace_with_newer)


def merge_bundles(old: PlayerStatsBundle, new: PlayerStatsBundle) -> PlayerStatsBundle:
    """Merge every list; if anything outside the per-type mergers fails, keep ``old``."""
    try:
        return PlayerStatsBundle(
            agent_stats=merge_agent_stats(old.agent_stats, new.agent_stats),
            map_stats=merge_map_stats(old.map_stats, new.map_stats),
            weapon_stats=merge_weapon_stats(old.weapon_stats, new.weapon_stats),
            season_stats=merge_season_stats(old.season_stats, new.season_stats),
            match_stats=merge_match_stats(old.match_stats, new.match_stats),
        )
    except Exception:
        logger.exception("Error merging stat bundles; keeping previous data")
        return old


def combine_generated(first: PlayerStatsBundle, second: PlayerStatsBundle) -> PlayerStatsBundle:
    """Combine bundles generated from disjoint match sets (e.g. by separate workers)."""
    return merge_bundles(first, second)
