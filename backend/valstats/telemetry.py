"""Typed views over the raw match telemetry handed to us by the match API client.

Raw matches arrive as loosely shaped JSON. ``parse_match`` turns one into a
``MatchRecord`` so that the rest of the pipeline never probes dictionaries
for optional keys.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from valstats.errors import MatchRejected


class TelemetryModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Explicit nulls fall back to field defaults.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Location(TelemetryModel):
    x: float = 0.0
    y: float = 0.0


class PlayerLocation(TelemetryModel):
    puuid: str = ""
    view_radians: float = 0.0
    location: Optional[Location] = None


class FinishingDamage(TelemetryModel):
    damage_type: str = ""
    damage_item: str = ""
    is_secondary_fire_mode: bool = False


class Kill(TelemetryModel):
    killer: str = ""
    victim: str = ""
    time_since_round_start_millis: int = 0
    time_since_game_start_millis: int = 0
    victim_location: Optional[Location] = None
    player_locations: List[PlayerLocation] = Field(default_factory=list)
    finishing_damage: FinishingDamage = Field(default_factory=FinishingDamage)
    assistants: List[str] = Field(default_factory=list)

    def location_of(self, puuid: str) -> Optional[Location]:
        for entry in self.player_locations:
            if entry.puuid == puuid and entry.location is not None:
                return entry.location
        return None


class DamageEntry(TelemetryModel):
    receiver: str = ""
    damage: int = 0
    legshots: int = 0
    bodyshots: int = 0
    headshots: int = 0

    @property
    def total_shots(self) -> int:
        return self.legshots + self.bodyshots + self.headshots


class Economy(TelemetryModel):
    loadout_value: int = 0
    weapon: str = ""
    armor: str = ""
    remaining: int = 0
    spent: int = 0


class AbilityEffects(TelemetryModel):
    grenade_effects: Optional[Any] = None
    ability1_effects: Optional[Any] = None
    ability2_effects: Optional[Any] = None
    ultimate_effects: Optional[Any] = None

    def used_count(self) -> int:
        flags = (
            self.grenade_effects,
            self.ability1_effects,
            self.ability2_effects,
            self.ultimate_effects,
        )
        return sum(1 for flag in flags if flag)


class PlayerRoundStats(TelemetryModel):
    puuid: str = ""
    kills: List[Kill] = Field(default_factory=list)
    damage: List[DamageEntry] = Field(default_factory=list)
    score: int = 0
    assists: int = 0
    economy: Economy = Field(default_factory=Economy)
    ability: Optional[AbilityEffects] = None
    was_afk: bool = False
    was_penalized: bool = False

    @model_validator(mode="before")
    @classmethod
    def _attach_killer(cls, data: Any) -> Any:
        # Upstream kill entries sometimes omit the killer; it is the owner of the entry.
        if not isinstance(data, dict):
            return data
        owner = data.get("puuid")
        kills = data.get("kills")
        if owner and isinstance(kills, list):
            patched = []
            for kill in kills:
                if isinstance(kill, dict) and not kill.get("killer"):
                    kill = {**kill, "killer": owner}
                patched.append(kill)
            data = {**data, "kills": patched}
        return data


class RoundRecord(TelemetryModel):
    round_num: int = 0
    round_result: str = ""
    winning_team: str = ""
    bomb_planter: Optional[str] = None
    bomb_defuser: Optional[str] = None
    plant_site: Optional[str] = None
    player_stats: List[PlayerRoundStats] = Field(default_factory=list)

    def stats_for(self, puuid: str) -> Optional[PlayerRoundStats]:
        for entry in self.player_stats:
            if entry.puuid == puuid:
                return entry
        return None

    def all_kills(self) -> List[Kill]:
        return [kill for entry in self.player_stats for kill in entry.kills]


class AbilityCasts(TelemetryModel):
    grenade_casts: int = 0
    ability1_casts: int = 0
    ability2_casts: int = 0
    ultimate_casts: int = 0


class PlayerMatchTotals(TelemetryModel):
    score: int = 0
    rounds_played: int = 0
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    playtime_millis: int = 0
    ability_casts: AbilityCasts = Field(default_factory=AbilityCasts)


class MatchPlayer(TelemetryModel):
    puuid: str
    game_name: str = ""
    tag_line: str = ""
    team_id: str = ""
    party_id: str = ""
    character_id: str = ""
    competitive_tier: int = 0
    stats: PlayerMatchTotals = Field(default_factory=PlayerMatchTotals)

    @property
    def display_name(self) -> str:
        return f"{self.game_name}#{self.tag_line}"


class Team(TelemetryModel):
    team_id: str
    won: bool = False
    rounds_played: int = 0
    rounds_won: int = 0
    num_points: int = 0


class MatchInfo(TelemetryModel):
    match_id: str = ""
    map_id: str = ""
    game_length_millis: int = 0
    game_start_millis: int = 0
    season_id: str = "unknown"
    queue_id: str = ""
    is_ranked: bool = False
    game_mode: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_season(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("seasonId"):
            data = {**data, "seasonId": "unknown"}
        return data


class MatchRecord(TelemetryModel):
    match_info: MatchInfo
    players: List[MatchPlayer]
    teams: List[Team]
    round_results: List[RoundRecord] = Field(default_factory=list)

    @property
    def match_id(self) -> str:
        return self.match_info.match_id

    def player(self, puuid: str) -> Optional[MatchPlayer]:
        for player in self.players:
            if player.puuid == puuid:
                return player
        return None

    def team(self, team_id: str) -> Optional[Team]:
        for team in self.teams:
            if team.team_id == team_id:
                return team
        return None

    def team_of(self, puuid: str) -> Optional[str]:
        player = self.player(puuid)
        return player.team_id if player else None

    def teammates_of(self, puuid: str) -> List[MatchPlayer]:
        team_id = self.team_of(puuid)
        return [p for p in self.players if p.team_id == team_id and p.puuid != puuid]

    def opponents_of(self, puuid: str) -> List[MatchPlayer]:
        team_id = self.team_of(puuid)
        return [p for p in self.players if p.team_id != team_id]


def _match_id_of(raw: Any) -> Optional[str]:
    if not isinstance(raw, dict):
        return None
    info = raw.get("matchInfo")
    if isinstance(info, dict):
        value = info.get("matchId")
        return str(value) if value else None
    return None


def parse_match(raw: Any) -> MatchRecord:
    """Decode one raw match, raising ``MatchRejected`` when its shape is unusable."""
    if isinstance(raw, MatchRecord):
        return raw
    match_id = _match_id_of(raw)
    if not isinstance(raw, dict):
        raise MatchRejected("match record is not an object", match_id)
    if not isinstance(raw.get("matchInfo"), dict):
        raise MatchRejected("missing matchInfo", match_id)
    if not isinstance(raw.get("players"), list):
        raise MatchRejected("missing players list", match_id)
    if not isinstance(raw.get("teams"), list):
        raise MatchRejected("missing teams list", match_id)
    try:
        return MatchRecord.model_validate(raw)
    except ValidationError as exc:
        raise MatchRejected(f"malformed match record ({exc.error_count()} errors)", match_id) from exc


def raw_match_id(raw: Dict[str, Any]) -> Optional[str]:
    return _match_id_of(raw)
