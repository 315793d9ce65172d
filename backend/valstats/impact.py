"""Round impact scoring, improvement tips and the per-match round report."""

from __future__ import annotations

import logging
import math
from typing import List

from valstats.callouts import Callout
from valstats.context import MatchContext
from valstats.models import (
    CombatStats,
    EconomyStats,
    PositioningStats,
    RoundPerformance,
    UtilityStats,
)
from valstats.rounds import RoundFacts, round_facts

logger = logging.getLogger(__name__)

WEIGHTS = {
    "combat": 40,
    "economy": 20,
    "position": 25,
    "utility": 15,
}

KILL_MULTIPLIERS = {"Entry": 15, "Anchor": 20, "Lurk": 25, "Aggressive": 18}
DEATH_PENALTIES = {"Entry": 10, "Anchor": 15, "Lurk": 10, "Aggressive": 12}
DEFAULT_KILL_MULTIPLIER = 10
DEFAULT_DEATH_PENALTY = 10

EXCELLENT_UTILITY_DAMAGE = 300


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def combat_score(combat: CombatStats) -> float:
    score = min(50, combat.kills * 25)
    score -= min(score, combat.deaths * 15)
    score += min(20, combat.assists * 10)
    score += (combat.headshot_percentage / 100) * 20
    if combat.trade_kill:
        score += 5
    if combat.traded_kill:
        score -= 5
    return _clamp(score)


def economy_score(combat: CombatStats, economy: EconomyStats) -> float:
    score = 100.0
    ratio = economy.loadout_value / max(1, economy.enemy_loadout_value)
    score *= min(1, ratio + 0.3)
    damage_per_credit = combat.damage_dealt / max(1, economy.loadout_value)
    score += min(30, damage_per_credit * 50)
    return _clamp(score)


def position_score(combat: CombatStats, positioning: PositioningStats) -> float:
    score = 50.0
    if positioning.first_contact:
        if combat.kills > 0 and combat.deaths == 0:
            score += 30
        elif combat.deaths > 0:
            score -= 20
    kill_mult = KILL_MULTIPLIERS.get(positioning.position_type, DEFAULT_KILL_MULTIPLIER)
    death_penalty = DEATH_PENALTIES.get(positioning.position_type, DEFAULT_DEATH_PENALTY)
    score += combat.kills * kill_mult - combat.deaths * death_penalty
    return _clamp(score)


def utility_score(utility: UtilityStats) -> float:
    usage_ratio = utility.abilities_used / max(1, utility.total_abilities)
    score = usage_ratio * 60
    score += min(40, utility.utility_damage / EXCELLENT_UTILITY_DAMAGE * 40)
    return _clamp(score)


def impact_score(facts: RoundFacts, round_won: bool) -> int:
    """Weighted 0-100 blend of the four sub-scores, adjusted for the round outcome."""
    combat = facts.combat
    blended = (
        combat_score(combat) * WEIGHTS["combat"]
        + economy_score(combat, facts.economy) * WEIGHTS["economy"]
        + position_score(combat, facts.positioning) * WEIGHTS["position"]
        + utility_score(facts.utility) * WEIGHTS["utility"]
    ) / sum(WEIGHTS.values())

    if round_won:
        blended *= 1.15
    elif combat.kills >= 2:
        blended *= 1.05
    if combat.kills >= 3 and combat.deaths == 0:
        blended = min(100, blended * 1.2)
    return _round_half_up(_clamp(blended))


def improvement_suggestions(facts: RoundFacts, outcome: str) -> List[str]:
    combat = facts.combat
    economy = facts.economy
    positioning = facts.positioning
    utility = facts.utility
    tips: List[str] = []

    if combat.kills == 0 and combat.deaths > 0:
        tips.append("Work on crosshair placement and positioning to secure kills")
    if combat.headshot_percentage < 15:
        tips.append("Practice aim to improve headshot accuracy")
    if combat.deaths > combat.kills + 1:
        tips.append("Focus on staying alive - playing for trades and using cover")
    if not combat.traded_kill and combat.deaths > 0:
        tips.append("When taking duels, position closer to teammates for trade potential")

    if economy.loadout_value < economy.enemy_loadout_value * 0.7:
        tips.append("Improve economy management to match enemy loadout values")
    if economy.credit_spent > economy.loadout_value * 1.2:
        tips.append("Avoid overbuying - save credits for future rounds")

    position_type = positioning.position_type
    if position_type == "Entry" and combat.deaths > 0 and combat.kills == 0:
        tips.append(
            "As an entry player, focus on trading opportunities and use utility before engaging"
        )
    elif position_type == "Aggressive" and combat.deaths > 0:
        tips.append(
            "Consider playing more passively or using utility to secure aggressive positions"
        )
    elif position_type == "Anchor" and combat.deaths > 0:
        tips.append("Focus on delaying enemies and using utility to hold your position")
    elif position_type == "Lurk" and outcome == "Lost":
        tips.append("Coordinate lurks with team pushes to maximize effectiveness")

    if positioning.site in ("A", "B") and positioning.first_contact and combat.deaths > 0:
        tips.append(
            f"When holding {positioning.site} site, use defensive angles to survive first contact"
        )
    if positioning.first_contact and combat.kills == 0:
        tips.append("When taking first contact, ensure you have escape routes or teammate support")

    usage_ratio = utility.abilities_used / max(1, utility.total_abilities)
    if usage_ratio < 0.5:
        tips.append("Use abilities more effectively to support your team")
    if utility.utility_damage == 0 and utility.abilities_used > 0:
        tips.append("Focus on using utility for damage or area denial")

    return tips


def analyze_round(facts: RoundFacts, round_number: int, round_won: bool) -> RoundPerformance:
    outcome = "Won" if round_won else "Lost"
    return RoundPerformance(
        round_number=round_number,
        outcome=outcome,
        impact_score=impact_score(facts, round_won),
        combat=facts.combat,
        economy=facts.economy,
        positioning=facts.positioning,
        utility=facts.utility,
        improvement=improvement_suggestions(facts, outcome),
    )


def build_round_performances(
    context: MatchContext, callouts: List[Callout]
) -> List[RoundPerformance]:
    """One RoundPerformance per round the player has stats for, in round order."""
    performances: List[RoundPerformance] = []
    rounds = sorted(context.match.round_results, key=lambda record: record.round_num)
    for index, round_record in enumerate(rounds):
        stats = round_record.stats_for(context.puuid)
        if stats is None:
            logger.warning(
                f"No stats for player {context.puuid} in round {round_record.round_num} "
                f"of match {context.match_id}"
            )
            continue
        facts = round_facts(context.match, round_record, stats, context.team_id, callouts)
        round_won = round_record.winning_team == context.team_id
        performances.append(analyze_round(facts, index + 1, round_won))
    return performances
