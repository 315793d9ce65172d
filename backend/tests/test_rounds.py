from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from builders import (
    ENEMY_1,
    ENEMY_2,
    MATE,
    PUUID,
    build_damage,
    build_kill,
    build_match,
    build_player_round,
    build_round,
    build_two_round_match,
)
from valstats.callouts import classify_position, is_attacking, parse_callouts
from valstats.context import extract_match_context
from valstats.impact import build_round_performances, impact_score, improvement_suggestions
from valstats.match_stats import clutch_events
from valstats.models import CombatStats, EconomyStats, PositioningStats, UtilityStats
from valstats.rounds import (
    AbilitySlot,
    RoundFacts,
    abilities_used,
    combat_stats,
    detect_clutch,
    enemy_loadout_value,
    utility_damage,
    was_first_contact,
)
from valstats.telemetry import Location, PlayerRoundStats, RoundRecord, parse_match

CALLOUTS = parse_callouts(
    [
        {"regionName": "Site", "superRegionName": "A", "location": {"x": 100.0, "y": 200.0}},
        {"regionName": "Main", "superRegionName": "B", "location": {"x": 5000.0, "y": 5000.0}},
        {"regionName": "Courtyard", "superRegionName": "Mid", "location": {"x": -3000.0, "y": 0.0}},
    ]
)


def _clutch_round(winning_team: str = "Red") -> dict:
    # Mate trades one enemy and dies; the player is left alone against ENEMY_1.
    return build_round(
        3,
        winning_team,
        [
            build_player_round(PUUID, kills=[build_kill(PUUID, ENEMY_1, time=9000)]),
            build_player_round(MATE, kills=[build_kill(MATE, ENEMY_2, time=2000)]),
            build_player_round(ENEMY_1, kills=[build_kill(ENEMY_1, MATE, time=4000)]),
            build_player_round(ENEMY_2),
        ],
    )


def test_round_outcome_follows_winning_team() -> None:
    context = extract_match_context(build_two_round_match(), PUUID)
    performances = build_round_performances(context, CALLOUTS)

    assert [p.round_number for p in performances] == [1, 2]
    assert [p.outcome for p in performances] == ["Won", "Lost"]


def test_impact_scores_stay_in_range() -> None:
    context = extract_match_context(build_two_round_match(), PUUID)
    for performance in build_round_performances(context, CALLOUTS):
        assert 0 <= performance.impact_score <= 100


def test_combat_stats_for_each_round() -> None:
    match = parse_match(build_two_round_match())
    first, second = match.round_results

    combat = combat_stats(first, first.stats_for(PUUID))
    assert combat.kills == 2
    assert combat.deaths == 0
    assert combat.damage_dealt == 300
    assert combat.headshot_percentage == 50.0
    assert combat.trade_kill is True
    assert combat.traded_kill is False

    combat = combat_stats(second, second.stats_for(PUUID))
    assert combat.kills == 1
    assert combat.deaths == 1
    assert combat.headshot_percentage == 0.0


def test_traded_kill_requires_killer_to_die_later() -> None:
    round_record = parse_match(
        build_match(
            "m-1",
            [
                build_round(
                    0,
                    "Red",
                    [
                        build_player_round(PUUID),
                        build_player_round(MATE, kills=[build_kill(MATE, ENEMY_2, time=5000)]),
                        build_player_round(ENEMY_2, kills=[build_kill(ENEMY_2, PUUID, time=4000)]),
                    ],
                )
            ],
        )
    ).round_results[0]
    assert combat_stats(round_record, round_record.stats_for(PUUID)).traded_kill is True


def test_positioning_uses_nearest_callout_and_side() -> None:
    context = extract_match_context(build_two_round_match(), PUUID)
    first, second = build_round_performances(context, CALLOUTS)

    # No recorded location in round 0: sentinel values.
    assert first.positioning.site == "Unknown"
    assert first.positioning.position_type == "Balanced"
    # Death location is next to the A site callout, Red attacks in the first half.
    assert second.positioning.site == "A"
    assert second.positioning.position_type == "Aggressive"
    assert first.positioning.first_contact is True


def test_classify_position_for_defenders() -> None:
    location = Location(x=110.0, y=190.0)
    assert classify_position(location, CALLOUTS, 0, "Blue") == ("A", "Anchor")
    assert classify_position(location, CALLOUTS, 13, "Red") == ("A", "Anchor")
    assert classify_position(Location(x=4900.0, y=5100.0), CALLOUTS, 13, "Red") == ("B", "Forward")
    assert classify_position(None, CALLOUTS, 0, "Red") == ("Unknown", "Balanced")
    assert classify_position(location, [], 0, "Red") == ("Unknown", "Balanced")


def test_side_rule_switches_at_round_twelve() -> None:
    assert is_attacking(0, "Red") is True
    assert is_attacking(11, "Blue") is False
    assert is_attacking(12, "Blue") is True
    assert is_attacking(12, "Red") is False


def test_enemy_loadout_is_mean_of_opponents() -> None:
    match = parse_match(
        build_match(
            "m-1",
            [
                build_round(
                    0,
                    "Red",
                    [
                        build_player_round(PUUID, loadout=4000),
                        build_player_round(ENEMY_1, loadout=1000),
                        build_player_round(ENEMY_2, loadout=3000),
                    ],
                )
            ],
        )
    )
    assert enemy_loadout_value(match, match.round_results[0], "Red") == 2000.0


def test_one_v_one_clutch_is_detected_once() -> None:
    match_raw = build_match("m-clutch", [_clutch_round()])
    events = clutch_events(parse_match(match_raw), PUUID)

    assert len(events) == 1
    assert events[0].situation == "1v1"
    assert events[0].won is True


def test_no_clutch_when_player_dies() -> None:
    round_raw = _clutch_round()
    round_raw["playerStats"][3]["kills"] = [build_kill(ENEMY_2, PUUID, time=9500)]
    match = parse_match(build_match("m-1", [round_raw]))
    assert detect_clutch(match, match.round_results[0], PUUID) is None


def test_lost_clutch_is_reported_as_lost() -> None:
    match = parse_match(build_match("m-1", [_clutch_round(winning_team="Blue")]))
    clutch = detect_clutch(match, match.round_results[0], PUUID)
    assert clutch is not None
    assert clutch.won is False


def test_first_contact_is_earliest_kill() -> None:
    match = parse_match(build_match("m-1", [_clutch_round()]))
    round_record = match.round_results[0]
    assert was_first_contact(round_record, MATE) is True
    assert was_first_contact(round_record, PUUID) is False


def test_ability_slot_prefers_item_codes() -> None:
    assert AbilitySlot.from_finishing_damage("Ability", "GrenadeAbility") is AbilitySlot.GRENADE
    assert AbilitySlot.from_finishing_damage("Ability", "Ability2") is AbilitySlot.ABILITY2
    assert AbilitySlot.from_finishing_damage("Ability", "Ultimate") is AbilitySlot.ULTIMATE
    assert AbilitySlot.from_finishing_damage("", "TX_Ability_Q_Sova") is AbilitySlot.ABILITY1
    assert AbilitySlot.from_finishing_damage("Weapon", "9c82e19d-vandal") is None


def test_utility_estimates() -> None:
    stats = PlayerRoundStats.model_validate(
        build_player_round(
            PUUID,
            kills=[build_kill(PUUID, ENEMY_1, item="Ability1", damage_type="Ability")],
            damage=[build_damage(ENEMY_1, damage=30), build_damage(ENEMY_2, damage=150)],
        )
    )
    assert utility_damage(stats) == 56
    assert abilities_used(stats) == 1

    with_effects = PlayerRoundStats.model_validate(
        build_player_round(
            PUUID,
            ability={"grenadeEffects": {"count": 1}, "ability1Effects": None, "ultimateEffects": {"count": 1}},
        )
    )
    assert abilities_used(with_effects) == 2


def test_round_without_player_stats_is_skipped() -> None:
    raw = build_two_round_match()
    raw["roundResults"][1]["playerStats"] = [
        entry for entry in raw["roundResults"][1]["playerStats"] if entry["puuid"] != PUUID
    ]
    context = extract_match_context(raw, PUUID)
    performances = build_round_performances(context, [])
    assert [p.round_number for p in performances] == [1]


def test_round_record_defaults() -> None:
    record = RoundRecord.model_validate({"roundNum": 4})
    assert record.player_stats == []
    assert record.stats_for(PUUID) is None


def _facts(
    kills: int = 1,
    deaths: int = 0,
    assists: int = 0,
    headshot_percentage: float = 50.0,
    trade_kill: bool = False,
    loadout: int = 4000,
    enemy_loadout: float = 4000.0,
    credit_spent: int = 3900,
    position_type: str = "Balanced",
    first_contact: bool = False,
    abilities_used: int = 2,
    utility_damage: int = 50,
) -> RoundFacts:
    return RoundFacts(
        combat=CombatStats(
            kills=kills,
            deaths=deaths,
            assists=assists,
            damage_dealt=150,
            headshot_percentage=headshot_percentage,
            trade_kill=trade_kill,
        ),
        economy=EconomyStats(
            loadout_value=loadout, enemy_loadout_value=enemy_loadout, credit_spent=credit_spent
        ),
        positioning=PositioningStats(
            site="A", position_type=position_type, first_contact=first_contact
        ),
        utility=UtilityStats(
            abilities_used=abilities_used, total_abilities=4, utility_damage=utility_damage
        ),
    )


def test_impact_blends_sub_scores_by_weight() -> None:
    # combat 35, economy 100, position 60, utility 30: blended 53.5
    facts = _facts(utility_damage=0)
    assert impact_score(facts, round_won=False) == 54
    assert impact_score(facts, round_won=True) == 62


def test_impact_rewards_multi_kill_losses_less_than_wins() -> None:
    # combat 60, economy 100, position 70, utility 30: blended 66
    facts = _facts(kills=2, utility_damage=0)
    assert impact_score(facts, round_won=False) == 69
    assert impact_score(facts, round_won=True) == 76


def test_impact_bonus_for_three_kills_without_dying() -> None:
    # combat 60, economy 100, position 80, utility 30: blended 68.5
    facts = _facts(kills=3, utility_damage=0)
    assert impact_score(facts, round_won=True) == 95
    assert impact_score(facts, round_won=False) == 86
    assert impact_score(_facts(kills=3, deaths=1, utility_damage=0), round_won=False) < 86


def test_impact_is_capped_at_one_hundred() -> None:
    facts = _facts(
        kills=4,
        assists=2,
        headshot_percentage=100.0,
        trade_kill=True,
        first_contact=True,
        abilities_used=4,
        utility_damage=300,
    )
    assert impact_score(facts, round_won=True) == 100


def test_clean_round_has_no_suggestions() -> None:
    assert improvement_suggestions(_facts(kills=2), "Won") == []


def test_suggestions_for_combat_and_economy() -> None:
    tips = improvement_suggestions(_facts(kills=0, deaths=1, headshot_percentage=10.0), "Lost")
    assert any("crosshair placement" in tip for tip in tips)
    assert any("headshot accuracy" in tip for tip in tips)

    assert any(
        "economy management" in tip
        for tip in improvement_suggestions(_facts(loadout=2000), "Won")
    )
    assert not any(
        "economy management" in tip
        for tip in improvement_suggestions(_facts(loadout=3000, credit_spent=3000), "Won")
    )


def test_one_suggestion_per_position_type() -> None:
    cases = {
        "Entry": (_facts(kills=0, deaths=1, position_type="Entry"), "As an entry player"),
        "Aggressive": (_facts(deaths=1, position_type="Aggressive"), "playing more passively"),
        "Anchor": (_facts(deaths=1, position_type="Anchor"), "delaying enemies"),
        "Lurk": (_facts(position_type="Lurk"), "Coordinate lurks"),
    }
    for position_type, (facts, expected) in cases.items():
        tips = improvement_suggestions(facts, "Lost")
        assert sum(expected in tip for tip in tips) == 1, position_type

    assert not any(
        "Coordinate lurks" in tip
        for tip in improvement_suggestions(_facts(position_type="Lurk"), "Won")
    )


def test_utility_suggestion_below_half_usage() -> None:
    tips = improvement_suggestions(_facts(abilities_used=1), "Won")
    assert "Use abilities more effectively to support your team" in tips
    assert "Use abilities more effectively to support your team" not in improvement_suggestions(
        _facts(abilities_used=2), "Won"
    )
