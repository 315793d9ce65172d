from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, List, Optional

from valstats.errors import MatchRejected
from valstats.telemetry import MatchPlayer, MatchRecord, Team, parse_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchContext:
    """A validated match seen from the tracked player's seat."""

    match: MatchRecord
    player: MatchPlayer
    player_team: Team
    enemy_team: Optional[Team]

    @property
    def puuid(self) -> str:
        return self.player.puuid

    @property
    def team_id(self) -> str:
        return self.player.team_id

    @property
    def match_id(self) -> str:
        return self.match.match_info.match_id

    @property
    def map_id(self) -> str:
        return self.match.match_info.map_id

    @property
    def season_id(self) -> str:
        return self.match.match_info.season_id or "unknown"

    @property
    def match_won(self) -> bool:
        return self.player_team.won

    @property
    def rounds_won(self) -> int:
        return self.player_team.rounds_won

    @property
    def rounds_lost(self) -> int:
        return self.player_team.rounds_played - self.player_team.rounds_won

    @property
    def enemies(self) -> List[MatchPlayer]:
        return [p for p in self.match.players if p.team_id != self.team_id]


def extract_match_context(raw: Any, puuid: str) -> MatchContext:
    """Validate ``raw`` and resolve the tracked player, their team and the opponents.

    Raises ``MatchRejected`` with a reason when the match is unusable for ``puuid``.
    """
    match = parse_match(raw)
    match_id = match.match_info.match_id
    player = match.player(puuid)
    if player is None:
        raise MatchRejected(f"player {puuid} not found", match_id)
    player_team = match.team(player.team_id)
    if player_team is None:
        raise MatchRejected(f"player's team {player.team_id} not found", match_id)
    enemy_team = next((team for team in match.teams if team.team_id != player.team_id), None)
    return MatchContext(
        match=match,
        player=player,
        player_team=player_team,
        enemy_team=enemy_team,
    )


def try_extract_match_context(raw: Any, puuid: str) -> Optional[MatchContext]:
    try:
        return extract_match_context(raw, puuid)
    except MatchRejected as exc:
        logger.warning(f"Skipping match: {exc}")
        return None
