from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from builders import (
    ENEMY_1,
    ENEMY_2,
    MAP_ID,
    PHANTOM,
    PUUID,
    SEASON_ID,
    VANDAL,
    build_damage,
    build_kill,
    build_match,
    build_player,
    build_player_round,
    build_round,
    build_two_round_match,
)
from valstats import generator as generator_module
from valstats.generator import StatsGenerator
from valstats.merge import combine_generated


def _weapon_match() -> dict:
    rounds = [
        build_round(
            0,
            "Red",
            [build_player_round(PUUID, weapon=VANDAL, kills=[build_kill(PUUID, ENEMY_1, time=1500)])],
        ),
        build_round(
            1,
            "Red",
            [
                build_player_round(
                    PUUID,
                    weapon=VANDAL,
                    kills=[build_kill(PUUID, ENEMY_1, time=1000), build_kill(PUUID, ENEMY_2, time=2500)],
                    damage=[build_damage(ENEMY_1, damage=150), build_damage(ENEMY_2, damage=160)],
                )
            ],
        ),
        build_round(2, "Blue", [build_player_round(PUUID, weapon=PHANTOM)]),
    ]
    return build_match("m-weapons", rounds)


def test_season_totals_scenario() -> None:
    bundle = StatsGenerator().generate([build_two_round_match()], PUUID)

    assert len(bundle.season_stats) == 1
    season = bundle.season_stats[0]
    assert season.id == f"{PUUID}_{SEASON_ID}"
    assert season.stats.kills == 3
    assert season.stats.deaths == 1
    assert season.stats.matches_won == 1
    assert season.stats.matches_lost == 0
    assert season.stats.rounds_won == 1
    assert season.stats.rounds_lost == 1
    assert season.stats.total_rounds == 2
    assert season.stats.plants == 1
    assert season.stats.damage == 440
    assert season.stats.highest_rank == 18
    assert season.stats.mvps == 1


def test_lost_match_counts_as_loss() -> None:
    bundle = StatsGenerator().generate([build_two_round_match(won=False)], PUUID)
    season = bundle.season_stats[0].stats
    assert season.matches_won == 0
    assert season.matches_lost == 1
    assert season.mvps == 0


def test_season_kills_sum_across_matches() -> None:
    matches = [build_two_round_match("m-1"), build_two_round_match("m-2")]
    bundle = StatsGenerator().generate(matches, PUUID)

    season = bundle.season_stats[0].stats
    assert season.kills == 6
    assert season.matches_played == 2
    assert [m.id for m in bundle.match_stats] == [f"{PUUID}_m-1", f"{PUUID}_m-2"]


def test_weapon_rounds_only_count_when_used() -> None:
    bundle = StatsGenerator().generate([_weapon_match()], PUUID)

    by_weapon = {stat.weapon.id: stat for stat in bundle.weapon_stats}
    assert list(by_weapon) == [VANDAL, PHANTOM]
    vandal = by_weapon[VANDAL].performance_by_season[0].stats
    assert vandal.kills == 3
    assert vandal.rounds_played == 2
    assert vandal.avg_kills_per_round == pytest.approx(1.5)
    assert vandal.damage == 310
    assert vandal.first_kills == 2
    phantom = by_weapon[PHANTOM].performance_by_season[0].stats
    assert phantom.rounds_played == 1
    assert phantom.kills == 0


def test_agent_stats_split_by_side_and_map() -> None:
    bundle = StatsGenerator().generate([build_two_round_match()], PUUID)

    agent = bundle.agent_stats[0]
    assert agent.id == f"{PUUID}_jett-id"
    performance = agent.performance_by_season[0]
    assert performance.stats.kills == 3
    assert performance.attack_stats.kills == 3
    assert performance.attack_stats.deaths == 1
    assert performance.attack_stats.rounds_won == 1
    assert performance.attack_stats.rounds_lost == 1
    assert performance.defense_stats.kills == 0
    assert [(m.id, m.wins, m.losses) for m in performance.map_stats] == [(MAP_ID, 1, 0)]


def test_ability_impact_attributes_kills_and_damage() -> None:
    rounds = [
        build_round(
            0,
            "Red",
            [
                build_player_round(
                    PUUID,
                    kills=[
                        build_kill(PUUID, ENEMY_1, item="GrenadeAbility", damage_type="Ability"),
                        build_kill(PUUID, ENEMY_2, time=3000),
                    ],
                    damage=[build_damage(ENEMY_1, damage=100), build_damage(ENEMY_2, damage=50)],
                )
            ],
        )
    ]
    players = [
        build_player(PUUID, "Red", kills=2, rounds_played=1, casts={"grenadeCasts": 2, "ultimateCasts": 1}),
        build_player(ENEMY_1, "Blue"),
        build_player(ENEMY_2, "Blue"),
    ]
    bundle = StatsGenerator().generate([build_match("m-1", rounds, players=players)], PUUID)

    impacts = {
        item.id: item for item in bundle.agent_stats[0].performance_by_season[0].ability_and_ultimate_impact
    }
    assert impacts["grenade"].count == 2
    assert impacts["grenade"].kills == 1
    assert impacts["grenade"].damage == 75
    assert impacts["ultimate"].count == 1
    assert impacts["ultimate"].kills == 0


def test_clutch_wins_are_bucketed_on_side_stats() -> None:
    round_raw = build_round(
        0,
        "Red",
        [
            build_player_round(PUUID, kills=[build_kill(PUUID, ENEMY_1, time=9000)]),
            build_player_round("mate-1", kills=[build_kill("mate-1", ENEMY_2, time=2000)]),
            build_player_round(ENEMY_1, kills=[build_kill(ENEMY_1, "mate-1", time=4000)]),
            build_player_round(ENEMY_2),
        ],
    )
    bundle = StatsGenerator().generate([build_match("m-1", [round_raw])], PUUID)
    clutches = bundle.agent_stats[0].performance_by_season[0].attack_stats.clutch_stats
    assert clutches.one_v1_wins == 1
    assert clutches.to_record()["1v1Wins"] == 1


def test_map_heatmaps_collect_kill_and_death_locations() -> None:
    bundle = StatsGenerator().generate([build_two_round_match()], PUUID)

    map_stat = bundle.map_stats[0]
    assert map_stat.id == f"{PUUID}_{MAP_ID}"
    attack = map_stat.performance_by_season[0].attack_stats
    assert len(attack.heatmap_location.kills_location) == 3
    assert len(attack.heatmap_location.death_location) == 1
    assert "HeatmapLocation" in attack.to_record()


def test_invalid_matches_are_skipped() -> None:
    matches = [{"bogus": True}, build_two_round_match("m-1"), build_two_round_match("m-2")]
    matches[2]["players"] = [p for p in matches[2]["players"] if p["puuid"] != PUUID]

    bundle = StatsGenerator().generate(matches, PUUID)
    assert bundle.season_stats[0].stats.matches_played == 1
    assert len(bundle.match_stats) == 1


def test_failing_match_does_not_touch_other_totals(monkeypatch: pytest.MonkeyPatch) -> None:
    real_build = generator_module.build_match_stat

    def flaky(context, callouts):
        if context.match_id == "m-bad":
            raise RuntimeError("boom")
        return real_build(context, callouts)

    monkeypatch.setattr(generator_module, "build_match_stat", flaky)
    bundle = StatsGenerator().generate(
        [build_two_round_match("m-good"), build_two_round_match("m-bad")], PUUID
    )

    assert bundle.season_stats[0].stats.kills == 3
    assert [m.id for m in bundle.match_stats] == [f"{PUUID}_m-good"]


def test_match_without_enemy_team_still_aggregates() -> None:
    raw = build_two_round_match()
    raw["teams"] = [team for team in raw["teams"] if team["teamId"] == "Red"]
    bundle = StatsGenerator().generate([raw], PUUID)
    assert bundle.season_stats[0].stats.kills == 3
    assert bundle.match_stats == []


def test_combined_worker_bundles_match_single_pass() -> None:
    generator = StatsGenerator()
    first = generator.generate([build_two_round_match("m-1")], PUUID)
    second = generator.generate([_weapon_match()], PUUID)
    combined = combine_generated(first, second)
    single = generator.generate([build_two_round_match("m-1"), _weapon_match()], PUUID)

    assert combined.season_stats[0].stats.kills == single.season_stats[0].stats.kills
    assert combined.agent_stats[0].performance_by_season[0].stats.kills == 3 + 0
    assert {m.id for m in combined.match_stats} == {m.id for m in single.match_stats}
