"""Per-round facts about the tracked player.

Everything here is a pure function of one ``RoundRecord`` plus match context.
The trade, first-contact and utility estimators are deliberate approximations:
premium scoring is tuned against them, so they are kept as they are.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, List, Optional

import numpy as np

from valstats.callouts import Callout, classify_position
from valstats.models import CombatStats, EconomyStats, PositioningStats, UtilityStats
from valstats.telemetry import Kill, Location, MatchRecord, PlayerRoundStats, RoundRecord

logger = logging.getLogger(__name__)

TOTAL_ABILITIES = 4
# Utility damage estimate: flat credit per ability kill plus a share of chip damage.
UTILITY_KILL_DAMAGE = 50
CHIP_DAMAGE_THRESHOLD = 50
CHIP_DAMAGE_SHARE = 0.2


class AbilitySlot(Enum):
    GRENADE = ("grenade", "Grenade", "grenade_casts")
    ABILITY1 = ("ability1", "Basic", "ability1_casts")
    ABILITY2 = ("ability2", "Signature", "ability2_casts")
    ULTIMATE = ("ultimate", "Ultimate", "ultimate_casts")

    def __init__(self, slot_id: str, display_type: str, cast_field: str) -> None:
        self.slot_id = slot_id
        self.display_type = display_type
        self.cast_field = cast_field

    @classmethod
    def from_finishing_damage(
        cls, damage_type: Optional[str], damage_item: Optional[str]
    ) -> Optional["AbilitySlot"]:
        item = (damage_item or "").strip().lower()
        slot = _ITEM_CODES.get(item)
        if slot is not None:
            return slot
        # Older payloads only carry free-form strings.
        haystack = f"{damage_type or ''} {damage_item or ''}".lower()
        for marker, candidate in _SUBSTRING_MARKERS:
            if marker in haystack:
                return candidate
        return None


_ITEM_CODES: Dict[str, AbilitySlot] = {
    "grenadeability": AbilitySlot.GRENADE,
    "ability1": AbilitySlot.ABILITY1,
    "ability2": AbilitySlot.ABILITY2,
    "ultimate": AbilitySlot.ULTIMATE,
}

_SUBSTRING_MARKERS = (
    ("grenade", AbilitySlot.GRENADE),
    ("ability_c", AbilitySlot.GRENADE),
    ("ability_q", AbilitySlot.ABILITY1),
    ("ability1", AbilitySlot.ABILITY1),
    ("ability_e", AbilitySlot.ABILITY2),
    ("ability2", AbilitySlot.ABILITY2),
    ("ultimate", AbilitySlot.ULTIMATE),
    ("ability_x", AbilitySlot.ULTIMATE),
)


def ability_of_kill(kill: Kill) -> Optional[AbilitySlot]:
    damage = kill.finishing_damage
    return AbilitySlot.from_finishing_damage(damage.damage_type, damage.damage_item)


def is_utility_kill(kill: Kill) -> bool:
    if kill.finishing_damage.damage_type.strip().lower() == "ability":
        return True
    return ability_of_kill(kill) is not None


@dataclass(frozen=True)
class ClutchSituation:
    player: str
    round_num: int
    opponents: int
    won: bool

    @property
    def label(self) -> str:
        return f"1v{self.opponents}"


@dataclass(frozen=True)
class RoundFacts:
    combat: CombatStats
    economy: EconomyStats
    positioning: PositioningStats
    utility: UtilityStats


# Combat -------------------------------------------------------------------------


def death_of(round_record: RoundRecord, puuid: str) -> Optional[Kill]:
    for kill in round_record.all_kills():
        if kill.victim == puuid:
            return kill
    return None


def was_killed(round_record: RoundRecord, puuid: str) -> int:
    return 1 if death_of(round_record, puuid) is not None else 0


def headshot_percentage(stats: PlayerRoundStats) -> float:
    total = sum(entry.total_shots for entry in stats.damage)
    if total == 0:
        return 0.0
    headshots = sum(entry.headshots for entry in stats.damage)
    return headshots / total * 100


def was_traded(round_record: RoundRecord, puuid: str) -> bool:
    """The player died and whoever killed them died later in the same round."""
    death = death_of(round_record, puuid)
    if death is None or not death.killer:
        return False
    for kill in round_record.all_kills():
        if kill.victim == death.killer and (
            kill.time_since_round_start_millis >= death.time_since_round_start_millis
        ):
            return True
    return False


def made_trade_kill(stats: PlayerRoundStats) -> bool:
    # Any kill in the round counts as a potential trade; no timing window is applied.
    return len(stats.kills) > 0


def combat_stats(round_record: RoundRecord, stats: PlayerRoundStats) -> CombatStats:
    return CombatStats(
        kills=len(stats.kills),
        deaths=was_killed(round_record, stats.puuid),
        assists=stats.assists or 0,
        damage_dealt=sum(entry.damage for entry in stats.damage),
        headshot_percentage=headshot_percentage(stats),
        traded_kill=was_traded(round_record, stats.puuid),
        trade_kill=made_trade_kill(stats),
    )


# Economy ------------------------------------------------------------------------


def enemy_loadout_value(match: MatchRecord, round_record: RoundRecord, team_id: str) -> float:
    teams = {player.puuid: player.team_id for player in match.players}
    values = [
        entry.economy.loadout_value
        for entry in round_record.player_stats
        if entry.puuid in teams and teams[entry.puuid] != team_id
    ]
    if not values:
        return 0.0
    return float(np.mean(values))


def economy_stats(
    match: MatchRecord, round_record: RoundRecord, stats: PlayerRoundStats, team_id: str
) -> EconomyStats:
    economy = stats.economy
    return EconomyStats(
        weapon_id=economy.weapon,
        armor_id=economy.armor,
        # Display types are filled in by enrichment when metadata is available.
        weapon_type=economy.weapon,
        armor_type=economy.armor,
        credit_spent=economy.spent,
        loadout_value=economy.loadout_value,
        enemy_loadout_value=enemy_loadout_value(match, round_record, team_id),
    )


# Positioning --------------------------------------------------------------------


def player_location(round_record: RoundRecord, puuid: str) -> Optional[Location]:
    for entry in round_record.player_stats:
        for kill in entry.kills:
            if entry.puuid == puuid:
                location = kill.location_of(puuid)
                if location is not None:
                    return location
            if kill.victim == puuid:
                return kill.victim_location
    return None


def first_kill(round_record: RoundRecord) -> Optional[Kill]:
    earliest: Optional[Kill] = None
    for kill in round_record.all_kills():
        if earliest is None or kill.time_since_round_start_millis < earliest.time_since_round_start_millis:
            earliest = kill
    return earliest


def was_first_contact(round_record: RoundRecord, puuid: str) -> bool:
    kill = first_kill(round_record)
    if kill is None:
        return False
    return kill.killer == puuid or kill.victim == puuid


def time_to_first_contact(stats: PlayerRoundStats) -> int:
    if not stats.kills:
        return 0
    return min(kill.time_since_round_start_millis for kill in stats.kills)


def positioning_stats(
    round_record: RoundRecord,
    stats: PlayerRoundStats,
    team_id: str,
    callouts: List[Callout],
) -> PositioningStats:
    location = player_location(round_record, stats.puuid)
    site, position_type = classify_position(location, callouts, round_record.round_num, team_id)
    return PositioningStats(
        site=site,
        position_type=position_type,
        first_contact=was_first_contact(round_record, stats.puuid),
        time_to_first_contact=time_to_first_contact(stats),
    )


# Utility ------------------------------------------------------------------------


def abilities_used(stats: PlayerRoundStats) -> int:
    if stats.ability is not None:
        return stats.ability.used_count()
    utility_kills = sum(1 for kill in stats.kills if is_utility_kill(kill))
    return max(1, utility_kills)


def utility_damage(stats: PlayerRoundStats) -> int:
    utility_kills = sum(1 for kill in stats.kills if is_utility_kill(kill))
    chip = sum(
        entry.damage
        for entry in stats.damage
        if 0 < entry.damage < CHIP_DAMAGE_THRESHOLD
    )
    return int(utility_kills * UTILITY_KILL_DAMAGE + chip * CHIP_DAMAGE_SHARE)


def utility_stats(stats: PlayerRoundStats) -> UtilityStats:
    return UtilityStats(
        abilities_used=abilities_used(stats),
        total_abilities=TOTAL_ABILITIES,
        utility_damage=utility_damage(stats),
    )


# Clutches -----------------------------------------------------------------------


def detect_clutch(
    match: MatchRecord, round_record: RoundRecord, puuid: str
) -> Optional[ClutchSituation]:
    """Detect a 1vN for ``puuid``: every teammate in the round died, the player did not."""
    team_id = match.team_of(puuid)
    if team_id is None:
        return None
    present = {entry.puuid for entry in round_record.player_stats}
    teammates = [p.puuid for p in match.teammates_of(puuid) if p.puuid in present]
    if not teammates:
        return None

    kills = round_record.all_kills()
    victims = {kill.victim for kill in kills}
    if puuid in victims:
        return None
    if any(mate not in victims for mate in teammates):
        return None

    opponents = {p.puuid for p in match.opponents_of(puuid)}
    killed_by_teammates = {
        kill.victim for kill in kills if kill.killer in teammates and kill.victim in opponents
    }
    remaining = len(opponents - killed_by_teammates)
    if remaining < 1:
        return None
    return ClutchSituation(
        player=puuid,
        round_num=round_record.round_num,
        opponents=min(remaining, 5),
        won=round_record.winning_team == team_id,
    )


# Assembly -----------------------------------------------------------------------


def round_facts(
    match: MatchRecord,
    round_record: RoundRecord,
    stats: PlayerRoundStats,
    team_id: str,
    callouts: List[Callout],
) -> RoundFacts:
    return RoundFacts(
        combat=combat_stats(round_record, stats),
        economy=economy_stats(match, round_record, stats, team_id),
        positioning=positioning_stats(round_record, stats, team_id, callouts),
        utility=utility_stats(stats),
    )
