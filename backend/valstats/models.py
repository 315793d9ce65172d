from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StatsModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=False,
    )

    def to_record(self) -> Dict:
        return self.model_dump(by_alias=True, mode="json")


class Coordinate(StatsModel):
    x: float = 0.0
    y: float = 0.0


# Round level ------------------------------------------------------------------


class CombatStats(StatsModel):
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage_dealt: int = 0
    headshot_percentage: float = 0.0
    traded_kill: bool = False
    trade_kill: bool = False


class EconomyStats(StatsModel):
    weapon_id: str = ""
    armor_id: str = ""
    weapon_type: str = ""
    armor_type: str = ""
    credit_spent: int = 0
    loadout_value: int = 0
    enemy_loadout_value: float = 0.0


class PositioningStats(StatsModel):
    site: str = "Unknown"
    position_type: str = "Balanced"
    first_contact: bool = False
    time_to_first_contact: int = 0


class UtilityStats(StatsModel):
    abilities_used: int = 0
    total_abilities: int = 4
    utility_damage: int = 0


class RoundPerformance(StatsModel):
    round_number: int
    outcome: str
    impact_score: int = 0
    combat: CombatStats = Field(default_factory=CombatStats)
    economy: EconomyStats = Field(default_factory=EconomyStats)
    positioning: PositioningStats = Field(default_factory=PositioningStats)
    utility: UtilityStats = Field(default_factory=UtilityStats)
    improvement: List[str] = Field(default_factory=list)


# Shared entity pieces -----------------------------------------------------------


class SeasonRef(StatsModel):
    id: str
    name: str = ""
    is_active: bool = False


class EntityTotals(StatsModel):
    kills: int = 0
    deaths: int = 0
    rounds_won: int = 0
    rounds_lost: int = 0
    total_rounds: int = 0
    plants: int = 0
    defuses: int = 0
    playtime_millis: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    aces: int = 0
    first_kills: int = 0


class ClutchStats(StatsModel):
    one_v1_wins: int = Field(0, alias="1v1Wins")
    one_v2_wins: int = Field(0, alias="1v2Wins")
    one_v3_wins: int = Field(0, alias="1v3Wins")
    one_v4_wins: int = Field(0, alias="1v4Wins")
    one_v5_wins: int = Field(0, alias="1v5Wins")

    def record(self, opponents: int) -> None:
        bucket = max(1, min(5, opponents))
        field = f"one_v{bucket}_wins"
        setattr(self, field, getattr(self, field) + 1)

    def weighted_total(self) -> int:
        return (
            self.one_v1_wins
            + self.one_v2_wins * 2
            + self.one_v3_wins * 3
            + self.one_v4_wins * 4
            + self.one_v5_wins * 5
        )


class SideStats(StatsModel):
    deaths: int = 0
    kills: int = 0
    rounds_lost: int = 0
    rounds_won: int = 0


# Agents -------------------------------------------------------------------------


class AgentAbility(StatsModel):
    id: str
    name: str = ""
    image: str = ""
    type: str = ""
    cost: int = 0


class AgentInfo(StatsModel):
    id: str
    name: str = ""
    role: str = ""
    image: str = ""
    icon: str = ""
    abilities: List[AgentAbility] = Field(default_factory=list)


class AgentMapStat(StatsModel):
    id: str
    name: str = ""
    location: str = ""
    image: str = ""
    wins: int = 0
    losses: int = 0


class AgentSideStats(SideStats):
    clutch_stats: ClutchStats = Field(default_factory=ClutchStats)


class AbilityImpact(StatsModel):
    id: str
    type: str
    count: int = 0
    kills: int = 0
    damage: int = 0


class AgentSeasonPerformance(StatsModel):
    season: SeasonRef
    stats: EntityTotals = Field(default_factory=EntityTotals)
    map_stats: List[AgentMapStat] = Field(default_factory=list)
    attack_stats: AgentSideStats = Field(default_factory=AgentSideStats)
    defense_stats: AgentSideStats = Field(default_factory=AgentSideStats)
    ability_and_ultimate_impact: List[AbilityImpact] = Field(default_factory=list)


class AgentStat(StatsModel):
    id: str
    puuid: str
    agent: AgentInfo
    performance_by_season: List[AgentSeasonPerformance] = Field(default_factory=list)
    is_premium_stats: bool = False


# Maps ---------------------------------------------------------------------------


class HeatmapLocation(StatsModel):
    kills_location: List[Coordinate] = Field(default_factory=list)
    death_location: List[Coordinate] = Field(default_factory=list)


class MapSideStats(SideStats):
    heatmap_location: HeatmapLocation = Field(
        default_factory=HeatmapLocation, alias="HeatmapLocation"
    )


class MapCoordinates(StatsModel):
    x_multiplier: float = 1.0
    y_multiplier: float = 1.0
    x_scalar_to_add: float = 0.0
    y_scalar_to_add: float = 0.0


class MapInfo(StatsModel):
    id: str
    name: str = ""
    location: str = ""
    image: str = ""
    map_coordinates: MapCoordinates = Field(default_factory=MapCoordinates)


class MapSeasonPerformance(StatsModel):
    season: SeasonRef
    stats: EntityTotals = Field(default_factory=EntityTotals)
    attack_stats: MapSideStats = Field(default_factory=MapSideStats)
    defense_stats: MapSideStats = Field(default_factory=MapSideStats)


class MapStat(StatsModel):
    id: str
    puuid: str
    map: MapInfo
    performance_by_season: List[MapSeasonPerformance] = Field(default_factory=list)
    is_premium_stats: bool = False


# Weapons ------------------------------------------------------------------------


class WeaponTotals(StatsModel):
    kills: int = 0
    damage: int = 0
    aces: int = 0
    first_kills: int = 0
    rounds_played: int = 0
    avg_kills_per_round: float = 0.0
    avg_damage_per_round: float = 0.0
    legshots: int = 0
    headshots: int = 0
    bodyshots: int = 0

    def recompute_averages(self) -> None:
        if self.rounds_played > 0:
            self.avg_kills_per_round = self.kills / self.rounds_played
            self.avg_damage_per_round = self.damage / self.rounds_played
        else:
            self.avg_kills_per_round = 0.0
            self.avg_damage_per_round = 0.0


class WeaponInfo(StatsModel):
    id: str
    name: str = ""
    image: str = ""
    type: str = ""


class WeaponSeasonPerformance(StatsModel):
    season: SeasonRef
    stats: WeaponTotals = Field(default_factory=WeaponTotals)


class WeaponStat(StatsModel):
    id: str
    puuid: str
    weapon: WeaponInfo
    performance_by_season: List[WeaponSeasonPerformance] = Field(default_factory=list)
    is_premium_stats: bool = False


# Seasons ------------------------------------------------------------------------


class SeasonTotals(StatsModel):
    kills: int = 0
    deaths: int = 0
    rounds_won: int = 0
    rounds_lost: int = 0
    total_rounds: int = 0
    plants: int = 0
    defuses: int = 0
    playtime_millis: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    matches_played: int = 0
    damage: int = 0
    first_kill: int = 0
    highest_rank: int = 0
    aces: int = 0
    mvps: int = 0


class SeasonStat(StatsModel):
    id: str
    puuid: str
    season: SeasonRef
    stats: SeasonTotals = Field(default_factory=SeasonTotals)
    is_premium_stats: bool = False


# Matches ------------------------------------------------------------------------


class GeneralInfo(StatsModel):
    match_id: str
    map_id: str = ""
    season_id: str = ""
    queue_id: str = ""
    game_start_millis: int = 0
    game_length_millis: int = 0
    is_ranked: bool = False
    winning_team: str = ""
    rounds_played: float = 0
    agent: AgentInfo
    map: MapInfo
    season: SeasonRef


class PlayerSummaryStats(StatsModel):
    name: str = ""
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    first_bloods: int = 0
    clutches_won: int = 0
    clutch_attempts: int = 0
    headshot_percentage: float = 0.0
    damage_per_round: float = 0.0
    kd_ratio: float = 0.0
    combat_score: int = 0
    aces: int = 0
    playtime_millis: int = 0
    rounds_played: int = 0
    rounds_won: int = 0
    rounds_lost: int = 0


class PlayerSummary(StatsModel):
    id: str
    team_id: str = ""
    name: str = ""
    stats: PlayerSummaryStats = Field(default_factory=PlayerSummaryStats)


class KillEvent(StatsModel):
    killer: str
    victim: str
    weapon: str = ""
    headshot: bool = False
    timestamp: int = 0
    round: int = 0


class ClutchEvent(StatsModel):
    player: str
    situation: str
    round: int
    won: bool


class MapData(StatsModel):
    kills: Dict[str, List[Coordinate]] = Field(default_factory=dict)
    deaths: Dict[str, List[Coordinate]] = Field(default_factory=dict)


class PlayerVsPlayerStat(StatsModel):
    user: PlayerSummary
    teammates: List[PlayerSummary] = Field(default_factory=list)
    enemies: List[PlayerSummary] = Field(default_factory=list)
    kill_events: List[KillEvent] = Field(default_factory=list)
    clutch_events: List[ClutchEvent] = Field(default_factory=list)
    map_data: MapData = Field(default_factory=MapData)
    map_coordinates: MapCoordinates = Field(default_factory=MapCoordinates)


class TeamStat(StatsModel):
    team: str
    team_id: str
    first_kills: int = 0
    thrifties: int = 0
    post_plants_won: int = 0
    post_plants_lost: int = 0
    clutches_won: int = 0


class MatchStatBody(StatsModel):
    general: GeneralInfo
    player_vs_player_stat: PlayerVsPlayerStat
    team_stats: List[TeamStat] = Field(default_factory=list)
    round_performance: List[RoundPerformance] = Field(default_factory=list)


class MatchStat(StatsModel):
    id: str
    puuid: str
    stats: MatchStatBody
    is_premium_stats: bool = False


# Bundles ------------------------------------------------------------------------


class PlayerStatsBundle(StatsModel):
    agent_stats: List[AgentStat] = Field(default_factory=list)
    map_stats: List[MapStat] = Field(default_factory=list)
    weapon_stats: List[WeaponStat] = Field(default_factory=list)
    season_stats: List[SeasonStat] = Field(default_factory=list)
    match_stats: List[MatchStat] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (
                self.agent_stats,
                self.map_stats,
                self.weapon_stats,
                self.season_stats,
                self.match_stats,
            )
        )


class UpdateStatsRequest(BaseModel):
    matches: List[Dict] = Field(default_factory=list)


class UpdateStatsResponse(BaseModel):
    puuid: str
    matches_received: int
    matches_processed: int
    stats: Dict
