"""Heuristic premium scores for each stat type.

Scores are only compared within one entity type, so the scales differ freely
between rubrics. Entity scores add up every season (boosted when the season is
active) plus a consistency bonus when more than one season exists.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from valstats.models import (
    AgentSeasonPerformance,
    AgentStat,
    MapSeasonPerformance,
    MapStat,
    MatchStat,
    SeasonStat,
    WeaponSeasonPerformance,
    WeaponStat,
    WeaponTotals,
)

Tiers = Sequence[Tuple[float, float]]


def tier_score(value: float, tiers: Tiers, inclusive: bool = False) -> float:
    """Score of the first ``(threshold, score)`` tier that ``value`` beats."""
    for threshold, score in tiers:
        if value > threshold or (inclusive and value >= threshold):
            return score
    return 0


def kd_ratio(kills: int, deaths: int) -> float:
    return kills / max(1, deaths)


def win_rate(wins: int, losses: int) -> float:
    total = wins + losses
    return wins / total if total else 0.0


def _consistency(shares: Sequence[float], scores: Sequence[Tuple[float, float]]) -> float:
    bonus = 0.0
    for share, (excellent, good) in zip(shares, scores):
        bonus += tier_score(share, ((0.7, excellent), (0.5, good)))
    return bonus


# Agents ---------------------------------------------------------------------------

AGENT_KD_TIERS = ((1.5, 10), (1.2, 5), (1.0, 2))
AGENT_WIN_RATE_TIERS = ((0.6, 10), (0.5, 5))
AGENT_ABILITY_KILL_TIERS = ((20, 10), (10, 5))
AGENT_ABILITY_DAMAGE_TIERS = ((2000, 10), (1000, 5))
AGENT_CLUTCH_CAP = 20
GOOD_MAP_WIN_RATE = 0.6
GOOD_MAP_SCORE = 2
AGENT_ACTIVE_MULTIPLIER = 1.5

CONSISTENCY_KD = 1.2
CONSISTENCY_WIN_RATE = 0.55


def _score_win_rate(wins: int, losses: int) -> float:
    if wins + losses == 0:
        return 0
    return tier_score(win_rate(wins, losses), AGENT_WIN_RATE_TIERS)


def score_agent_season(performance: AgentSeasonPerformance) -> float:
    stats = performance.stats
    score = tier_score(kd_ratio(stats.kills, stats.deaths), AGENT_KD_TIERS)
    score += _score_win_rate(stats.matches_won, stats.matches_lost)

    clutch = (
        performance.attack_stats.clutch_stats.weighted_total()
        + performance.defense_stats.clutch_stats.weighted_total()
    )
    score += min(AGENT_CLUTCH_CAP, clutch)

    abilities = performance.ability_and_ultimate_impact
    score += tier_score(sum(item.kills for item in abilities), AGENT_ABILITY_KILL_TIERS)
    score += tier_score(sum(item.damage for item in abilities), AGENT_ABILITY_DAMAGE_TIERS)

    good_maps = sum(
        1
        for item in performance.map_stats
        if item.wins + item.losses > 0 and win_rate(item.wins, item.losses) > GOOD_MAP_WIN_RATE
    )
    score += good_maps * GOOD_MAP_SCORE

    if performance.season.is_active:
        score *= AGENT_ACTIVE_MULTIPLIER
    return score


def _season_consistency(performances) -> float:
    count = len(performances)
    good_kd = sum(
        1 for p in performances if kd_ratio(p.stats.kills, p.stats.deaths) > CONSISTENCY_KD
    )
    good_wins = sum(
        1
        for p in performances
        if p.stats.matches_won + p.stats.matches_lost > 0
        and win_rate(p.stats.matches_won, p.stats.matches_lost) > CONSISTENCY_WIN_RATE
    )
    return _consistency((good_kd / count, good_wins / count), ((15, 10), (15, 10)))


def score_agent(stat: AgentStat) -> float:
    seasons = stat.performance_by_season
    score = sum(score_agent_season(performance) for performance in seasons)
    if len(seasons) > 1:
        score += _season_consistency(seasons)
    return score


# Maps -----------------------------------------------------------------------------

MAP_SIDE_BALANCE = 0.55
MAP_SIDE_BALANCE_SCORE = 15
MAP_DIVERSITY_CAP = 10
MAP_HEATMAP_SIDE_CAP = 15
MAP_ACTIVE_MULTIPLIER = 1.5


def side_balance(performance: MapSeasonPerformance) -> float:
    attack = performance.attack_stats
    defense = performance.defense_stats
    attack_total = attack.rounds_won + attack.rounds_lost
    defense_total = defense.rounds_won + defense.rounds_lost
    if attack_total == 0 or defense_total == 0:
        return 0.0
    rates = (attack.rounds_won / attack_total, defense.rounds_won / defense_total)
    if max(rates) == 0:
        return 0.0
    return min(rates) / max(rates)


def score_map_season(performance: MapSeasonPerformance) -> float:
    stats = performance.stats
    score = tier_score(kd_ratio(stats.kills, stats.deaths), AGENT_KD_TIERS)
    score += _score_win_rate(stats.matches_won, stats.matches_lost)
    if side_balance(performance) > MAP_SIDE_BALANCE:
        score += MAP_SIDE_BALANCE_SCORE

    spread = min(
        len(performance.attack_stats.heatmap_location.kills_location), MAP_HEATMAP_SIDE_CAP
    ) + min(len(performance.defense_stats.heatmap_location.kills_location), MAP_HEATMAP_SIDE_CAP)
    score += min(math.ceil(spread / 5), MAP_DIVERSITY_CAP)

    if performance.season.is_active:
        score *= MAP_ACTIVE_MULTIPLIER
    return score


def score_map(stat: MapStat) -> float:
    seasons = stat.performance_by_season
    score = sum(score_map_season(performance) for performance in seasons)
    if len(seasons) > 1:
        score += _season_consistency(seasons)
    return score


# Seasons --------------------------------------------------------------------------

SEASON_KD_TIERS = ((1.8, 20), (1.5, 15), (1.2, 10), (1.0, 5))
SEASON_WIN_RATE_TIERS = ((0.65, 25), (0.55, 15), (0.5, 8))
SEASON_ROUND_WIN_TIERS = ((0.55, 15), (0.5, 7))
SEASON_MVP_TIERS = ((0.3, 20), (0.2, 15), (0.1, 8))
SEASON_FIRST_KILL_TIERS = ((0.5, 15), (0.3, 10), (0.2, 5))
SEASON_ACE_TIERS = ((0.1, 15), (0.05, 10))
SEASON_DAMAGE_TIERS = ((150, 15), (130, 10), (100, 5))
SEASON_OBJECTIVE_TIERS = ((1.0, 15), (0.7, 10), (0.5, 5))
SEASON_RANK_TIERS = ((24, 25), (21, 20), (18, 15), (15, 10), (12, 5))
SEASON_PLAYTIME_TIERS = ((100, 10), (50, 5), (20, 2))
SEASON_ACTIVE_MULTIPLIER = 1.15
MILLIS_PER_HOUR = 1000 * 60 * 60


def score_season(stat: SeasonStat) -> float:
    stats = stat.stats
    matches = max(1, stats.matches_played)
    score = tier_score(kd_ratio(stats.kills, stats.deaths), SEASON_KD_TIERS)
    score += tier_score(stats.matches_won / matches, SEASON_WIN_RATE_TIERS)
    score += tier_score(stats.rounds_won / max(1, stats.total_rounds), SEASON_ROUND_WIN_TIERS)
    score += tier_score(stats.mvps / matches, SEASON_MVP_TIERS)
    score += tier_score(stats.first_kill / matches, SEASON_FIRST_KILL_TIERS)
    if stats.aces:
        score += tier_score(stats.aces / matches, SEASON_ACE_TIERS) or 5
    score += tier_score(stats.damage / max(1, stats.total_rounds), SEASON_DAMAGE_TIERS)
    score += tier_score((stats.plants + stats.defuses) / matches, SEASON_OBJECTIVE_TIERS)
    score += tier_score(stats.highest_rank, SEASON_RANK_TIERS)
    score += tier_score(stats.playtime_millis / MILLIS_PER_HOUR, SEASON_PLAYTIME_TIERS)
    if stat.season.is_active:
        score *= SEASON_ACTIVE_MULTIPLIER
    return score


# Weapons --------------------------------------------------------------------------

HEADSHOT_THRESHOLDS = {
    "sniper": (60, 40),
    "shotgun": (15, 8),
    "smg": (25, 15),
    "rifle": (30, 20),
}
DEFAULT_HEADSHOT_THRESHOLDS = (30, 20)
PISTOL_NAMES = {"pistol", "classic", "sheriff", "ghost"}
PISTOL_BASE_ROUNDS = 30
DEFAULT_BASE_ROUNDS = 50
WEAPON_KILL_TIERS = ((0.5, 20), (0.3, 12), (0.15, 6))
WEAPON_DAMAGE_TIERS = ((140, 15), (100, 10), (70, 5))
WEAPON_FIRST_KILL_TIERS = ((0.2, 20), (0.1, 12), (0.05, 5))
WEAPON_ACE_TIERS = ((3, 15), (1, 10), (0, 5))
WEAPON_ACTIVE_MULTIPLIER = 1.2


def weapon_headshot_percentage(stats: WeaponTotals) -> float:
    total = stats.headshots + stats.bodyshots + stats.legshots
    return stats.headshots / total * 100 if total else 0.0


def _score_weapon_headshots(stats: WeaponTotals, weapon_type: str) -> float:
    if stats.headshots + stats.bodyshots + stats.legshots == 0:
        return 0
    high, medium = HEADSHOT_THRESHOLDS.get(weapon_type, DEFAULT_HEADSHOT_THRESHOLDS)
    return tier_score(weapon_headshot_percentage(stats), ((high, 25), (medium, 15), (10, 5)))


def _score_volume(rounds_played: int, weapon_name: str) -> float:
    base = PISTOL_BASE_ROUNDS if weapon_name.lower() in PISTOL_NAMES else DEFAULT_BASE_ROUNDS
    return tier_score(rounds_played, ((base * 3, 15), (base * 2, 10), (base, 5)))


def _score_shot_distribution(stats: WeaponTotals, weapon_type: str) -> float:
    total = stats.headshots + stats.bodyshots + stats.legshots
    if total == 0:
        return 0
    if weapon_type == "sniper":
        return min(20, stats.headshots / 5) - min(10, stats.legshots / 10)
    if weapon_type == "shotgun":
        return min(15, stats.bodyshots / 20)
    if weapon_type in ("smg", "rifle"):
        balance = 1 - abs(stats.headshots / total * 2 - 0.5)
        return math.floor(balance * 10 + 0.5)
    if stats.headshots > stats.legshots * 2:
        return 10
    if stats.headshots > stats.legshots:
        return 5
    return 0


def score_weapon_season(
    performance: WeaponSeasonPerformance, weapon_type: str, weapon_name: str
) -> float:
    stats = performance.stats
    score = _score_weapon_headshots(stats, weapon_type)
    score += tier_score(stats.avg_kills_per_round, WEAPON_KILL_TIERS)
    score += tier_score(stats.avg_damage_per_round, WEAPON_DAMAGE_TIERS)
    score += tier_score(stats.first_kills / max(1, stats.rounds_played), WEAPON_FIRST_KILL_TIERS)
    score += _score_volume(stats.rounds_played, weapon_name)
    score += tier_score(stats.aces, WEAPON_ACE_TIERS)
    score += _score_shot_distribution(stats, weapon_type)
    if performance.season.is_active:
        score *= WEAPON_ACTIVE_MULTIPLIER
    return score


def _weapon_consistency(performances: List[WeaponSeasonPerformance]) -> float:
    count = len(performances)
    efficient = sum(1 for p in performances if p.stats.avg_kills_per_round > 0.25)
    accurate = sum(1 for p in performances if weapon_headshot_percentage(p.stats) > 25)
    used = sum(1 for p in performances if p.stats.rounds_played > 40)
    return _consistency(
        (efficient / count, accurate / count, used / count),
        ((15, 8), (18, 10), (10, 5)),
    )


def score_weapon(stat: WeaponStat) -> float:
    weapon_type = (stat.weapon.type or "").lower()
    seasons = stat.performance_by_season
    score = sum(
        score_weapon_season(performance, weapon_type, stat.weapon.name or "")
        for performance in seasons
    )
    if len(seasons) > 1:
        score += _weapon_consistency(seasons)
    return score


# Matches --------------------------------------------------------------------------

MATCH_KD_TIERS = ((3.0, 15), (2.0, 12), (1.5, 8), (1.0, 5))
MATCH_HEADSHOT_TIERS = ((40, 10), (30, 7), (20, 4))
MATCH_KILL_SHARE_TIERS = ((30, 10), (25, 7), (20, 4))
ACS_REFERENCE = 300
ACS_CAP = 15
# Round impact is on a 0-100 scale.
HIGH_IMPACT_ROUND = 80
CONSISTENT_IMPACT_ROUND = 60
CLUTCH_POINTS = 3
CLUTCH_CAP = 10
MULTIKILL_CAP = 10
RANKED_MULTIPLIER = 1.2


def score_match(stat: MatchStat) -> float:
    body = stat.stats
    general = body.general
    user = body.player_vs_player_stat.user.stats
    rounds_played = max(1, general.rounds_played)

    score = tier_score(user.kd_ratio, MATCH_KD_TIERS, inclusive=True)
    score += tier_score(user.headshot_percentage, MATCH_HEADSHOT_TIERS, inclusive=True)
    acs = user.combat_score / rounds_played
    score += min(ACS_CAP, acs / ACS_REFERENCE * ACS_CAP)

    rounds = body.round_performance
    if rounds:
        high = sum(1 for r in rounds if r.impact_score >= HIGH_IMPACT_ROUND)
        steady = sum(1 for r in rounds if r.impact_score >= CONSISTENT_IMPACT_ROUND)
        score += min(15, high / rounds_played * 30)
        score += min(15, steady / rounds_played * 20)

        score += min(CLUTCH_CAP, user.clutches_won * CLUTCH_POINTS)
        multikills = 0
        for performance in rounds:
            if performance.combat.kills >= 4:
                multikills += 3
            elif performance.combat.kills >= 3:
                multikills += 2
        score += min(MULTIKILL_CAP, multikills)

    team_kills = user.kills + sum(mate.stats.kills for mate in body.player_vs_player_stat.teammates)
    if user.kills and team_kills:
        share = user.kills / team_kills * 100
        score += tier_score(share, MATCH_KILL_SHARE_TIERS, inclusive=True)

    if general.is_ranked:
        score *= RANKED_MULTIPLIER
    return max(0.0, min(100.0, score))
