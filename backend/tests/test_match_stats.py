from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from builders import ENEMY_1, ENEMY_2, MATE, PUUID, SEASON_ID, build_two_round_match
from valstats.context import extract_match_context
from valstats.match_stats import build_match_stat


def _match_stat():
    context = extract_match_context(build_two_round_match("m-1"), PUUID)
    return build_match_stat(context, [])


def test_general_info() -> None:
    stat = _match_stat()

    assert stat.id == f"{PUUID}_m-1"
    general = stat.stats.general
    assert general.match_id == "m-1"
    assert general.season_id == SEASON_ID
    assert general.winning_team == "Red"
    assert general.rounds_played == 2
    assert general.is_ranked is True
    assert general.agent.id == "jett-id"


def test_player_summaries() -> None:
    pvp = _match_stat().stats.player_vs_player_stat

    user = pvp.user.stats
    assert pvp.user.name == "Player-1#NA1"
    assert user.kills == 3
    assert user.deaths == 1
    assert user.kd_ratio == 3.0
    assert user.first_bloods == 2
    assert user.headshot_percentage == pytest.approx(200 / 7)
    assert user.damage_per_round == 220.0
    assert user.combat_score == 600
    assert [p.id for p in pvp.teammates] == [MATE]
    assert {p.id for p in pvp.enemies} == {ENEMY_1, ENEMY_2}


def test_kill_events_cover_player_kills_and_deaths() -> None:
    events = _match_stat().stats.player_vs_player_stat.kill_events

    assert [(e.killer, e.victim, e.round) for e in events] == [
        (PUUID, ENEMY_1, 0),
        (PUUID, ENEMY_2, 0),
        (PUUID, ENEMY_1, 1),
        (ENEMY_2, PUUID, 1),
    ]
    assert [e.headshot for e in events] == [True, True, False, False]


def test_team_stats() -> None:
    own, enemy = _match_stat().stats.team_stats

    assert own.team == "Your Team"
    assert own.first_kills == 2
    assert own.post_plants_won == 1
    assert own.thrifties == 0
    assert enemy.first_kills == 0
    # Blue wins round 1 with a single survivor.
    assert enemy.clutches_won == 1
    assert own.clutches_won == 0


def test_map_data_collects_coordinates() -> None:
    data = _match_stat().stats.player_vs_player_stat.map_data
    assert len(data.kills[PUUID]) == 3
    assert len(data.deaths[PUUID]) == 1


def test_round_report_is_attached() -> None:
    rounds = _match_stat().stats.round_performance
    assert [r.outcome for r in rounds] == ["Won", "Lost"]
    record = _match_stat().to_record()
    assert record["stats"]["general"]["isRanked"] is True
    assert record["isPremiumStats"] is False
