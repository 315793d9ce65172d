"""Match-level report for the tracked player: general info, duels, team stats, rounds."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from valstats.aggregators import ACE_KILLS, composite_id
from valstats.callouts import Callout
from valstats.context import MatchContext
from valstats.impact import build_round_performances
from valstats.models import (
    AgentInfo,
    ClutchEvent,
    Coordinate,
    GeneralInfo,
    KillEvent,
    MapData,
    MapInfo,
    MatchStat,
    MatchStatBody,
    PlayerSummary,
    PlayerSummaryStats,
    PlayerVsPlayerStat,
    SeasonRef,
    TeamStat,
)
from valstats.rounds import detect_clutch, first_kill
from valstats.telemetry import MatchPlayer, MatchRecord, RoundRecord

logger = logging.getLogger(__name__)

THRIFTY_RATIO = 0.6


def _rounds_of(match: MatchRecord, puuid: str):
    for round_record in match.round_results:
        stats = round_record.stats_for(puuid)
        if stats is not None:
            yield round_record, stats


def match_headshot_percentage(match: MatchRecord, puuid: str) -> float:
    headshots = 0
    total = 0
    for _, stats in _rounds_of(match, puuid):
        for entry in stats.damage:
            headshots += entry.headshots
            total += entry.total_shots
    return headshots / total * 100 if total else 0.0


def damage_per_round(match: MatchRecord, puuid: str) -> float:
    rounds = 0
    damage = 0
    for _, stats in _rounds_of(match, puuid):
        rounds += 1
        damage += sum(entry.damage for entry in stats.damage)
    return damage / rounds if rounds else 0.0


def count_aces(match: MatchRecord, puuid: str) -> int:
    return sum(1 for _, stats in _rounds_of(match, puuid) if len(stats.kills) >= ACE_KILLS)


def count_first_bloods(match: MatchRecord, puuid: str) -> int:
    count = 0
    for round_record in match.round_results:
        kill = first_kill(round_record)
        if kill is not None and kill.killer == puuid:
            count += 1
    return count


def player_summary(match: MatchRecord, player: MatchPlayer) -> PlayerSummary:
    team = match.team(player.team_id)
    rounds_won = team.rounds_won if team else 0
    clutches = [
        clutch
        for clutch in (detect_clutch(match, r, player.puuid) for r in match.round_results)
        if clutch is not None
    ]
    totals = player.stats
    return PlayerSummary(
        id=player.puuid,
        team_id=player.team_id,
        name=player.display_name,
        stats=PlayerSummaryStats(
            name=player.display_name,
            kills=totals.kills,
            deaths=totals.deaths,
            assists=totals.assists or 0,
            first_bloods=count_first_bloods(match, player.puuid),
            clutches_won=sum(1 for clutch in clutches if clutch.won),
            clutch_attempts=len(clutches),
            headshot_percentage=match_headshot_percentage(match, player.puuid),
            damage_per_round=damage_per_round(match, player.puuid),
            kd_ratio=totals.kills / max(1, totals.deaths),
            combat_score=totals.score,
            aces=count_aces(match, player.puuid),
            playtime_millis=match.match_info.game_length_millis,
            rounds_played=totals.rounds_played,
            rounds_won=rounds_won,
            rounds_lost=(totals.rounds_played or 0) - rounds_won,
        ),
    )


def _landed_headshot(round_record: RoundRecord, killer: str, victim: str) -> bool:
    stats = round_record.stats_for(killer)
    if stats is None:
        return False
    return any(entry.receiver == victim and entry.headshots > 0 for entry in stats.damage)


def kill_events(match: MatchRecord, puuid: str) -> List[KillEvent]:
    events: List[KillEvent] = []
    for round_record in match.round_results:
        for kill in sorted(round_record.all_kills(), key=lambda k: k.time_since_round_start_millis):
            if puuid not in (kill.killer, kill.victim):
                continue
            events.append(
                KillEvent(
                    killer=kill.killer,
                    victim=kill.victim,
                    weapon=kill.finishing_damage.damage_item,
                    headshot=_landed_headshot(round_record, kill.killer, kill.victim),
                    timestamp=kill.time_since_round_start_millis,
                    round=round_record.round_num,
                )
            )
    return events


def clutch_events(match: MatchRecord, puuid: str) -> List[ClutchEvent]:
    events: List[ClutchEvent] = []
    for round_record in match.round_results:
        clutch = detect_clutch(match, round_record, puuid)
        if clutch is None:
            continue
        events.append(
            ClutchEvent(
                player=puuid,
                situation=clutch.label,
                round=clutch.round_num,
                won=clutch.won,
            )
        )
    return events


def map_data(match: MatchRecord) -> MapData:
    data = MapData()
    for round_record in match.round_results:
        for kill in round_record.all_kills():
            if kill.victim_location is None:
                continue
            point = Coordinate(x=kill.victim_location.x, y=kill.victim_location.y)
            data.kills.setdefault(kill.killer, []).append(point)
            data.deaths.setdefault(kill.victim, []).append(point)
    return data


def player_vs_player(context: MatchContext) -> PlayerVsPlayerStat:
    match = context.match
    return PlayerVsPlayerStat(
        user=player_summary(match, context.player),
        teammates=[player_summary(match, mate) for mate in match.teammates_of(context.puuid)],
        enemies=[player_summary(match, enemy) for enemy in context.enemies],
        kill_events=kill_events(match, context.puuid),
        clutch_events=clutch_events(match, context.puuid),
        map_data=map_data(match),
    )


def team_loadout(match: MatchRecord, round_record: RoundRecord, team_id: str) -> int:
    total = 0
    for player in match.players:
        if player.team_id != team_id:
            continue
        stats = round_record.stats_for(player.puuid)
        if stats is not None:
            total += stats.economy.loadout_value
    return total


def _team_survivors(match: MatchRecord, round_record: RoundRecord, team_id: str) -> int:
    victims = {kill.victim for kill in round_record.all_kills()}
    return sum(
        1
        for player in match.players
        if player.team_id == team_id
        and round_record.stats_for(player.puuid) is not None
        and player.puuid not in victims
    )


def team_stats(context: MatchContext) -> List[TeamStat]:
    match = context.match
    own_id = context.team_id
    enemy_id = context.enemy_team.team_id if context.enemy_team else ""
    own = TeamStat(team="Your Team", team_id=own_id)
    enemy = TeamStat(team="Enemy Team", team_id=enemy_id)
    by_team: Dict[str, TeamStat] = {own_id: own, enemy_id: enemy}
    teams = {player.puuid: player.team_id for player in match.players}

    for round_record in match.round_results:
        kill = first_kill(round_record)
        if kill is not None:
            stat = by_team.get(teams.get(kill.killer, ""))
            if stat is not None:
                stat.first_kills += 1

        own_value = team_loadout(match, round_record, own_id)
        enemy_value = team_loadout(match, round_record, enemy_id)
        if round_record.winning_team == own_id and own_value < enemy_value * THRIFTY_RATIO:
            own.thrifties += 1
        elif round_record.winning_team == enemy_id and enemy_value < own_value * THRIFTY_RATIO:
            enemy.thrifties += 1

        if round_record.bomb_planter:
            planter_team = teams.get(round_record.bomb_planter)
            stat = by_team.get(planter_team or "")
            if stat is not None:
                if round_record.winning_team == planter_team:
                    stat.post_plants_won += 1
                else:
                    stat.post_plants_lost += 1

        winner = by_team.get(round_record.winning_team)
        if winner is not None and _team_survivors(match, round_record, winner.team_id) == 1:
            winner.clutches_won += 1

    return [own, enemy]


def build_match_stat(context: MatchContext, callouts: List[Callout]) -> Optional[MatchStat]:
    if context.enemy_team is None:
        logger.warning(f"Enemy team not found in match {context.match_id}; no match report")
        return None
    match = context.match
    info = match.match_info
    winning_team = context.team_id if context.match_won else context.enemy_team.team_id
    general = GeneralInfo(
        match_id=info.match_id,
        map_id=info.map_id,
        season_id=context.season_id,
        queue_id=info.queue_id,
        game_start_millis=info.game_start_millis,
        game_length_millis=info.game_length_millis,
        is_ranked=info.is_ranked,
        winning_team=winning_team,
        rounds_played=sum(team.rounds_played for team in match.teams) / 2,
        agent=AgentInfo(id=context.player.character_id),
        map=MapInfo(id=info.map_id),
        season=SeasonRef(id=context.season_id),
    )
    return MatchStat(
        id=composite_id(context.puuid, info.match_id),
        puuid=context.puuid,
        stats=MatchStatBody(
            general=general,
            player_vs_player_stat=player_vs_player(context),
            team_stats=team_stats(context),
            round_performance=build_round_performances(context, callouts),
        ),
    )
