"""Season-keyed running totals for agents, maps, weapons and seasons.

Each aggregator owns a mapping from entity id to its stat container and is
meant to live for exactly one generation pass. ``add_match`` folds one
validated match into the totals; ``results`` flattens the mapping in first-seen
order with composite ``{puuid}_{entityId}`` ids.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, TypeVar

from valstats.callouts import is_attacking
from valstats.context import MatchContext
from valstats.models import (
    AbilityImpact,
    AgentInfo,
    AgentMapStat,
    AgentSeasonPerformance,
    AgentSideStats,
    AgentStat,
    Coordinate,
    EntityTotals,
    MapInfo,
    MapSeasonPerformance,
    MapSideStats,
    MapStat,
    SeasonRef,
    SeasonStat,
    SeasonTotals,
    WeaponInfo,
    WeaponSeasonPerformance,
    WeaponStat,
)
from valstats.merge import merge_agent_stat, merge_map_stat, merge_season_stat, merge_weapon_stat
from valstats.rounds import AbilitySlot, ability_of_kill, detect_clutch
from valstats.telemetry import Location, PlayerRoundStats, RoundRecord

logger = logging.getLogger(__name__)

ACE_KILLS = 5

P = TypeVar("P")


def composite_id(puuid: str, entity_id: str) -> str:
    return f"{puuid}_{entity_id}"


def season_entry(performances: List[P], season_id: str, factory) -> P:
    """Find the performance for ``season_id`` or append a fresh one."""
    for performance in performances:
        if performance.season.id == season_id:
            return performance
    performance = factory(season_id)
    performances.append(performance)
    return performance


def player_rounds(context: MatchContext) -> Iterable[Tuple[RoundRecord, PlayerRoundStats]]:
    for round_record in context.match.round_results:
        stats = round_record.stats_for(context.puuid)
        if stats is not None:
            yield round_record, stats


def _coordinate(location: Optional[Location]) -> Optional[Coordinate]:
    if location is None:
        return None
    return Coordinate(x=location.x, y=location.y)


def add_base_totals(totals: EntityTotals, context: MatchContext) -> None:
    """Match-level and per-round counters shared by agent and map totals."""
    player_totals = context.player.stats
    totals.kills += player_totals.kills
    totals.deaths += player_totals.deaths
    totals.rounds_won += context.rounds_won
    totals.rounds_lost += context.rounds_lost
    totals.total_rounds += player_totals.rounds_played
    totals.playtime_millis += player_totals.playtime_millis
    if context.match_won:
        totals.matches_won += 1
    else:
        totals.matches_lost += 1

    for round_record in context.match.round_results:
        if round_record.bomb_planter == context.puuid:
            totals.plants += 1
        if round_record.bomb_defuser == context.puuid:
            totals.defuses += 1

    for _, stats in player_rounds(context):
        # Any kill in the round counts; this is not first-blood detection.
        if stats.kills:
            totals.first_kills += 1
        if len(stats.kills) >= ACE_KILLS:
            totals.aces += 1


class Accumulator:
    """Entity id -> stat container, combined with the additive merge rules."""

    merge_item = staticmethod(lambda old, new: new)

    def __init__(self) -> None:
        self._stats: Dict[str, Any] = {}

    def results(self) -> List[Any]:
        return list(self._stats.values())

    def absorb(self, other: "Accumulator") -> None:
        for key, stat in other._stats.items():
            existing = self._stats.get(key)
            self._stats[key] = stat if existing is None else self.merge_item(existing, stat)


class AgentAggregator(Accumulator):
    merge_item = staticmethod(merge_agent_stat)

    def add_match(self, context: MatchContext) -> None:
        agent_id = context.player.character_id
        agent_stat = self._stats.get(agent_id)
        if agent_stat is None:
            agent_stat = AgentStat(
                id=composite_id(context.puuid, agent_id),
                puuid=context.puuid,
                agent=AgentInfo(id=agent_id),
            )
            self._stats[agent_id] = agent_stat

        performance = season_entry(
            agent_stat.performance_by_season,
            context.season_id,
            lambda season_id: AgentSeasonPerformance(season=SeasonRef(id=season_id)),
        )
        add_base_totals(performance.stats, context)
        self._add_ability_impact(performance, context)
        self._add_map_result(performance, context)
        self._add_side_stats(performance, context)

    @staticmethod
    def _add_ability_impact(performance: AgentSeasonPerformance, context: MatchContext) -> None:
        casts = context.player.stats.ability_casts
        impacts: Dict[AbilitySlot, AbilityImpact] = {}
        for slot in AbilitySlot:
            impact = next(
                (item for item in performance.ability_and_ultimate_impact if item.id == slot.slot_id),
                None,
            )
            if impact is None:
                impact = AbilityImpact(id=slot.slot_id, type=slot.display_type)
                performance.ability_and_ultimate_impact.append(impact)
            impact.count += getattr(casts, slot.cast_field)
            impacts[slot] = impact

        for _, stats in player_rounds(context):
            round_ability_kills: Dict[AbilitySlot, int] = {}
            for kill in stats.kills:
                slot = ability_of_kill(kill)
                if slot is not None:
                    round_ability_kills[slot] = round_ability_kills.get(slot, 0) + 1
            total_kills = max(1, len(stats.kills))
            for slot, kills in round_ability_kills.items():
                impact = impacts[slot]
                impact.kills += kills
                # Damage is apportioned by the share of this round's kills made with the ability.
                for entry in stats.damage:
                    impact.damage += int(entry.damage * kills / total_kills)

    @staticmethod
    def _add_map_result(performance: AgentSeasonPerformance, context: MatchContext) -> None:
        map_stat = next((item for item in performance.map_stats if item.id == context.map_id), None)
        if map_stat is None:
            map_stat = AgentMapStat(id=context.map_id)
            performance.map_stats.append(map_stat)
        if context.match_won:
            map_stat.wins += 1
        else:
            map_stat.losses += 1

    @staticmethod
    def _add_side_stats(performance: AgentSeasonPerformance, context: MatchContext) -> None:
        for round_record in context.match.round_results:
            stats = round_record.stats_for(context.puuid)
            side: AgentSideStats = (
                performance.attack_stats
                if is_attacking(round_record.round_num, context.team_id)
                else performance.defense_stats
            )
            if stats is not None:
                side.kills += len(stats.kills)
            if any(kill.victim == context.puuid for kill in round_record.all_kills()):
                side.deaths += 1
            if round_record.winning_team == context.team_id:
                side.rounds_won += 1
            else:
                side.rounds_lost += 1

            clutch = detect_clutch(context.match, round_record, context.puuid)
            if clutch is not None and clutch.won:
                side.clutch_stats.record(clutch.opponents)


class MapAggregator(Accumulator):
    merge_item = staticmethod(merge_map_stat)

    def add_match(self, context: MatchContext) -> None:
        map_id = context.map_id
        map_stat = self._stats.get(map_id)
        if map_stat is None:
            map_stat = MapStat(
                id=composite_id(context.puuid, map_id),
                puuid=context.puuid,
                map=MapInfo(id=map_id),
            )
            self._stats[map_id] = map_stat

        performance = season_entry(
            map_stat.performance_by_season,
            context.season_id,
            lambda season_id: MapSeasonPerformance(season=SeasonRef(id=season_id)),
        )
        add_base_totals(performance.stats, context)
        self._add_side_stats(performance, context)

    @staticmethod
    def _add_side_stats(performance: MapSeasonPerformance, context: MatchContext) -> None:
        for round_record in context.match.round_results:
            side: MapSideStats = (
                performance.attack_stats
                if is_attacking(round_record.round_num, context.team_id)
                else performance.defense_stats
            )
            stats = round_record.stats_for(context.puuid)
            if stats is not None:
                side.kills += len(stats.kills)
                for kill in stats.kills:
                    point = _coordinate(kill.victim_location)
                    if point is not None:
                        side.heatmap_location.kills_location.append(point)

            for kill in round_record.all_kills():
                if kill.victim != context.puuid:
                    continue
                side.deaths += 1
                point = _coordinate(kill.victim_location)
                if point is not None:
                    side.heatmap_location.death_location.append(point)

            if round_record.winning_team == context.team_id:
                side.rounds_won += 1
            else:
                side.rounds_lost += 1


class WeaponAggregator(Accumulator):
    merge_item = staticmethod(merge_weapon_stat)

    @staticmethod
    def weapons_used(context: MatchContext) -> List[str]:
        """Every weapon id referenced by the player's economy or kills, in first-seen order."""
        seen: Dict[str, None] = {}
        for _, stats in player_rounds(context):
            if stats.economy.weapon:
                seen.setdefault(stats.economy.weapon, None)
            for kill in stats.kills:
                item = kill.finishing_damage.damage_item
                if item:
                    seen.setdefault(item, None)
        return list(seen)

    def add_match(self, context: MatchContext) -> None:
        for weapon_id in self.weapons_used(context):
            weapon_stat = self._stats.get(weapon_id)
            if weapon_stat is None:
                weapon_stat = WeaponStat(
                    id=composite_id(context.puuid, weapon_id),
                    puuid=context.puuid,
                    weapon=WeaponInfo(id=weapon_id),
                )
                self._stats[weapon_id] = weapon_stat
            performance = season_entry(
                weapon_stat.performance_by_season,
                context.season_id,
                lambda season_id: WeaponSeasonPerformance(season=SeasonRef(id=season_id)),
            )
            self._add_weapon_rounds(performance, context, weapon_id)

    @staticmethod
    def _add_weapon_rounds(
        performance: WeaponSeasonPerformance, context: MatchContext, weapon_id: str
    ) -> None:
        totals = performance.stats
        for _, stats in player_rounds(context):
            weapon_kills = [
                (index, kill)
                for index, kill in enumerate(stats.kills)
                if kill.finishing_damage.damage_item == weapon_id
            ]
            used = stats.economy.weapon == weapon_id or bool(weapon_kills)
            if not used:
                continue

            totals.rounds_played += 1
            totals.kills += len(weapon_kills)
            if any(index == 0 for index, _ in weapon_kills):
                totals.first_kills += 1
            if len(weapon_kills) >= ACE_KILLS:
                totals.aces += 1
            for entry in stats.damage:
                totals.damage += entry.damage
                totals.headshots += entry.headshots
                totals.bodyshots += entry.bodyshots
                totals.legshots += entry.legshots
        totals.recompute_averages()


class SeasonAggregator(Accumulator):
    merge_item = staticmethod(merge_season_stat)

    def add_match(self, context: MatchContext) -> None:
        season_id = context.season_id
        season_stat = self._stats.get(season_id)
        if season_stat is None:
            season_stat = SeasonStat(
                id=composite_id(context.puuid, season_id),
                puuid=context.puuid,
                season=SeasonRef(id=season_id),
            )
            self._stats[season_id] = season_stat

        totals: SeasonTotals = season_stat.stats
        player = context.player
        totals.kills += player.stats.kills
        totals.deaths += player.stats.deaths
        totals.rounds_won += context.rounds_won
        totals.rounds_lost += context.rounds_lost
        totals.total_rounds += player.stats.rounds_played
        totals.playtime_millis += player.stats.playtime_millis
        totals.matches_played += 1
        if context.match_won:
            totals.matches_won += 1
        else:
            totals.matches_lost += 1
        totals.highest_rank = max(totals.highest_rank, player.competitive_tier)

        for round_record in context.match.round_results:
            if round_record.bomb_planter == context.puuid:
                totals.plants += 1
            if round_record.bomb_defuser == context.puuid:
                totals.defuses += 1
        for _, stats in player_rounds(context):
            totals.damage += sum(entry.damage for entry in stats.damage)
            if stats.kills:
                totals.first_kill += 1
            if len(stats.kills) >= ACE_KILLS:
                totals.aces += 1

        if context.match_won and self._is_team_mvp(context):
            totals.mvps += 1

    @staticmethod
    def _is_team_mvp(context: MatchContext) -> bool:
        best = context.player.stats.score
        for other in context.match.teammates_of(context.puuid):
            if other.stats.score > best:
                return False
        return True
