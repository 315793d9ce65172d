"""Fill display metadata (names, images, roles, season flags) into generated stats.

Aggregators only know entity ids. Enrichment looks each id up once through the
metadata source and copies the display fields into every stub that is still
blank. A lookup failure leaves that entity's stub as it is.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from valstats.lookup import CachedMetadata, MetadataSource
from valstats.models import (
    AgentAbility,
    AgentInfo,
    AgentMapStat,
    MapCoordinates,
    MapInfo,
    PlayerStatsBundle,
    SeasonRef,
    WeaponInfo,
)

logger = logging.getLogger(__name__)


class Enricher:
    def __init__(self, metadata: MetadataSource) -> None:
        self.metadata = metadata if isinstance(metadata, CachedMetadata) else CachedMetadata(metadata)
        self.failures = 0

    def _fetch(self, kind: str, key: str) -> Optional[Dict[str, Any]]:
        getter = getattr(self.metadata, f"get_{kind}")
        try:
            return getter(key) or {}
        except Exception as exc:
            self.failures += 1
            logger.warning(f"Could not enrich {kind} {key}: {exc}")
            return None

    def agent(self, info: AgentInfo) -> None:
        if info.name:
            return
        data = self._fetch("agent", info.id)
        if data is None:
            return
        info.name = data.get("name") or info.name
        info.role = data.get("role") or info.role
        info.image = data.get("image") or info.image
        info.icon = data.get("icon") or info.icon
        if not info.abilities:
            info.abilities = [AgentAbility(**ability) for ability in data.get("abilities") or []]

    def map(self, info: MapInfo) -> None:
        if info.name:
            return
        data = self._fetch("map", info.id)
        if data is None:
            return
        info.name = data.get("name") or info.name
        info.location = data.get("location") or info.location
        info.image = data.get("image") or info.image
        if data.get("mapCoordinates"):
            info.map_coordinates = MapCoordinates.model_validate(data["mapCoordinates"])

    def agent_map(self, entry: AgentMapStat) -> None:
        if entry.name:
            return
        data = self._fetch("map", entry.id)
        if data is None:
            return
        entry.name = data.get("name") or entry.name
        entry.location = data.get("location") or entry.location
        entry.image = data.get("image") or entry.image

    def weapon(self, info: WeaponInfo) -> None:
        if info.name:
            return
        data = self._fetch("weapon", info.id)
        if data is None:
            return
        info.name = data.get("name") or info.name
        info.image = data.get("image") or info.image
        info.type = data.get("type") or info.type

    def season(self, ref: SeasonRef) -> None:
        if ref.name:
            return
        data = self._fetch("season", ref.id)
        if data is None:
            return
        ref.name = data.get("name") or ref.name
        ref.is_active = bool(data.get("isActive", ref.is_active))

    def bundle(self, bundle: PlayerStatsBundle) -> PlayerStatsBundle:
        for agent_stat in bundle.agent_stats:
            self.agent(agent_stat.agent)
            for performance in agent_stat.performance_by_season:
                self.season(performance.season)
                for entry in performance.map_stats:
                    self.agent_map(entry)
        for map_stat in bundle.map_stats:
            self.map(map_stat.map)
            for performance in map_stat.performance_by_season:
                self.season(performance.season)
        for weapon_stat in bundle.weapon_stats:
            self.weapon(weapon_stat.weapon)
            for performance in weapon_stat.performance_by_season:
                self.season(performance.season)
        for season_stat in bundle.season_stats:
            self.season(season_stat.season)
        for match_stat in bundle.match_stats:
            general = match_stat.stats.general
            self.agent(general.agent)
            self.map(general.map)
            self.season(general.season)
        return bundle


def enrich_stats(bundle: PlayerStatsBundle, metadata: MetadataSource) -> PlayerStatsBundle:
    """Fill blank display fields of ``bundle`` in place and return it."""
    enricher = Enricher(metadata)
    enricher.bundle(bundle)
    if enricher.failures:
        logger.warning(f"Enrichment finished with {enricher.failures} lookup failures")
    return bundle
