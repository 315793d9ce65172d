from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from builders import PUUID, build_two_round_match
from valstats import premium as premium_module
from valstats.generator import StatsGenerator
from valstats.models import (
    AgentInfo,
    AgentMapStat,
    AgentSeasonPerformance,
    AgentStat,
    ClutchStats,
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
    WeaponTotals,
)
from valstats.premium import apply_premium, determine_premium, determine_premium_matches
from valstats.scoring import (
    score_agent,
    score_match,
    score_season,
    score_weapon,
    side_balance,
    tier_score,
)


def _build_agent(agent_id: str, is_premium: bool = False) -> AgentStat:
    return AgentStat(
        id=f"{PUUID}_{agent_id}",
        puuid=PUUID,
        agent=AgentInfo(id=agent_id),
        is_premium_stats=is_premium,
    )


def _build_agent_performance(is_active: bool) -> AgentSeasonPerformance:
    performance = AgentSeasonPerformance(
        season=SeasonRef(id="season-1", is_active=is_active),
        stats=EntityTotals(kills=30, deaths=10, matches_won=7, matches_lost=3),
        map_stats=[AgentMapStat(id="ascent", wins=3, losses=1)],
    )
    performance.attack_stats.clutch_stats = ClutchStats(one_v2_wins=1)
    return performance


def test_top_third_of_three_agents_is_premium() -> None:
    agents = [_build_agent("sage"), _build_agent("jett"), _build_agent("omen", is_premium=True)]
    scores = {"sage": 20, "jett": 30, "omen": 10}

    determine_premium(agents, lambda stat: scores[stat.agent.id])

    assert [a.is_premium_stats for a in agents] == [False, True, False]


def test_premium_ties_keep_input_order() -> None:
    agents = [_build_agent(name) for name in ("a", "b", "c", "d")]
    determine_premium(agents, lambda stat: 10)
    assert [a.is_premium_stats for a in agents] == [True, True, False, False]


def test_single_item_is_always_premium() -> None:
    agents = [_build_agent("sage")]
    determine_premium(agents, lambda stat: 0)
    assert agents[0].is_premium_stats is True
    assert determine_premium([], lambda stat: 0) == []


def test_agent_rubric() -> None:
    agent = _build_agent("jett")
    agent.performance_by_season = [_build_agent_performance(is_active=False)]
    # kd 3.0 -> 10, win rate 0.7 -> 10, clutch 1v2 -> 2, one good map -> 2
    assert score_agent(agent) == 24

    agent.performance_by_season = [_build_agent_performance(is_active=True)]
    assert score_agent(agent) == pytest.approx(36)


def test_agent_consistency_bonus_across_seasons() -> None:
    agent = _build_agent("jett")
    second = _build_agent_performance(is_active=False)
    second.season = SeasonRef(id="season-2")
    agent.performance_by_season = [_build_agent_performance(is_active=False), second]
    # Both seasons have kd > 1.2 and win rate > 0.55: 15 + 15 bonus.
    assert score_agent(agent) == 24 * 2 + 30


def test_season_rubric() -> None:
    season = SeasonStat(
        id=f"{PUUID}_season-1",
        puuid=PUUID,
        season=SeasonRef(id="season-1"),
        stats=SeasonTotals(
            kills=20,
            deaths=10,
            matches_played=2,
            matches_won=2,
            rounds_won=20,
            total_rounds=30,
            mvps=1,
            first_kill=2,
            aces=1,
            damage=4800,
            plants=2,
            defuses=1,
            highest_rank=25,
        ),
    )
    assert score_season(season) == 165
    season.season.is_active = True
    assert score_season(season) == pytest.approx(165 * 1.15)


def test_weapon_without_shots_scores_zero() -> None:
    weapon = WeaponStat(
        id=f"{PUUID}_vandal",
        puuid=PUUID,
        weapon=WeaponInfo(id="vandal", name="Vandal", type="rifle"),
        performance_by_season=[WeaponSeasonPerformance(season=SeasonRef(id="season-1"))],
    )
    assert score_weapon(weapon) == 0


def test_weapon_rubric_rewards_accuracy_and_volume() -> None:
    totals = WeaponTotals(
        kills=60, damage=15000, rounds_played=110, first_kills=25, headshots=40, bodyshots=50, legshots=10
    )
    totals.recompute_averages()
    weapon = WeaponStat(
        id=f"{PUUID}_vandal",
        puuid=PUUID,
        weapon=WeaponInfo(id="vandal", name="Vandal", type="rifle"),
        performance_by_season=[WeaponSeasonPerformance(season=SeasonRef(id="season-1"), stats=totals)],
    )
    # hs 40% -> 25, kpr 0.55 -> 20, dpr 136 -> 10, fk rate 0.23 -> 20, 110 rounds -> 10,
    # no aces, rifle balance round((1 - |0.8 - 0.5|) * 10) = 7
    assert score_weapon(weapon) == 92


def test_map_side_balance() -> None:
    performance = MapSeasonPerformance(
        season=SeasonRef(id="season-1"),
        attack_stats=MapSideStats(rounds_won=6, rounds_lost=4),
        defense_stats=MapSideStats(rounds_won=3, rounds_lost=7),
    )
    assert side_balance(performance) == pytest.approx(0.5)
    performance.defense_stats = MapSideStats()
    assert side_balance(performance) == 0.0


def test_tier_score_inclusive_bounds() -> None:
    tiers = ((3.0, 15), (2.0, 12))
    assert tier_score(3.0, tiers) == 12
    assert tier_score(3.0, tiers, inclusive=True) == 15
    assert tier_score(1.0, tiers) == 0


def test_match_score_is_clamped() -> None:
    bundle = StatsGenerator().generate([build_two_round_match()], PUUID)
    score = score_match(bundle.match_stats[0])
    assert 0 <= score <= 100


def test_match_premium_uses_threshold_or_top_share(monkeypatch: pytest.MonkeyPatch) -> None:
    template = StatsGenerator().generate([build_two_round_match()], PUUID).match_stats[0]
    setups = [("m1", False, 90), ("m2", True, 80), ("m3", False, 80), ("m4", True, 10), ("m5", True, 5)]
    matches = []
    scores = {}
    for match_id, ranked, score in setups:
        match = template.model_copy(deep=True)
        match.id = match_id
        match.stats.general.is_ranked = ranked
        matches.append(match)
        scores[match_id] = score
    monkeypatch.setattr(premium_module, "score_match", lambda stat: scores[stat.id])

    determine_premium_matches(matches)

    assert [m.is_premium_stats for m in matches] == [True, True, False, False, False]


def test_apply_premium_flags_every_list() -> None:
    bundle = StatsGenerator().generate(
        [build_two_round_match("m-1"), build_two_round_match("m-2")], PUUID
    )
    apply_premium(bundle)

    assert bundle.agent_stats[0].is_premium_stats is True
    assert bundle.map_stats[0].is_premium_stats is True
    assert bundle.season_stats[0].is_premium_stats is True
    assert any(m.is_premium_stats for m in bundle.match_stats)
    assert sum(w.is_premium_stats for w in bundle.weapon_stats) == 1
