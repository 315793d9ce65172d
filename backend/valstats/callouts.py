"""Map landmarks ("callouts") and the positional classification built on them."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from pydantic import Field

from valstats.telemetry import Location, TelemetryModel

logger = logging.getLogger(__name__)

UNKNOWN_SITE = "Unknown"
BALANCED = "Balanced"

ATTACKING_FIRST_HALF = "Red"
ATTACKING_SECOND_HALF = "Blue"
HALF_LENGTH = 12

ENTRY_REGIONS = {"Main", "Window", "Garden"}
BOMB_SITES = {"A", "B"}


class Callout(TelemetryModel):
    region_name: str = ""
    super_region_name: str = ""
    location: Optional[Location] = None


def parse_callouts(raw: Iterable[Dict]) -> List[Callout]:
    callouts: List[Callout] = []
    for entry in raw or []:
        if isinstance(entry, Callout):
            callouts.append(entry)
        elif isinstance(entry, dict):
            callouts.append(Callout.model_validate(entry))
    return callouts


def is_attacking(round_num: int, team_id: str) -> bool:
    """Fixed half convention: Red attacks rounds 0-11, Blue attacks from round 12."""
    if round_num < HALF_LENGTH:
        return team_id == ATTACKING_FIRST_HALF
    return team_id == ATTACKING_SECOND_HALF


def nearest_callout(
    position: Optional[Location], callouts: List[Callout]
) -> Optional[Callout]:
    if position is None or not callouts:
        return None
    located = [c for c in callouts if c.location is not None]
    if not located:
        return None
    points = np.array([[c.location.x, c.location.y] for c in located], dtype=float)
    deltas = points - np.array([position.x, position.y], dtype=float)
    distances = np.einsum("ij,ij->i", deltas, deltas)
    # argmin keeps the first landmark on ties
    return located[int(np.argmin(distances))]


def attacker_position_type(super_region: str, region: str) -> str:
    if super_region in BOMB_SITES:
        if region == "Site":
            return "Aggressive"
        if region in ENTRY_REGIONS:
            return "Entry"
    if super_region == "Mid":
        return "Control"
    if super_region == "Defender Side":
        return "Lurk"
    return BALANCED


def defender_position_type(super_region: str, region: str) -> str:
    if super_region == "Attacker Side":
        return "Aggressive"
    if super_region == "Mid":
        return "Control"
    if super_region in BOMB_SITES and region != "Site":
        return "Forward"
    if region == "Site":
        return "Anchor"
    return BALANCED


def classify_position(
    position: Optional[Location],
    callouts: List[Callout],
    round_num: int,
    team_id: str,
) -> Tuple[str, str]:
    """Return ``(site, position_type)`` for a player location in a round."""
    closest = nearest_callout(position, callouts)
    if closest is None:
        return UNKNOWN_SITE, BALANCED
    site = closest.super_region_name or UNKNOWN_SITE
    if is_attacking(round_num, team_id):
        position_type = attacker_position_type(closest.super_region_name, closest.region_name)
    else:
        position_type = defender_position_type(closest.super_region_name, closest.region_name)
    return site, position_type
