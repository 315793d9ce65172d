from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from valstats.aggregators import (
    AgentAggregator,
    MapAggregator,
    SeasonAggregator,
    WeaponAggregator,
)
from valstats.callouts import Callout
from valstats.context import MatchContext, try_extract_match_context
from valstats.lookup import CachedMetadata, MetadataSource, StaticMetadataSource
from valstats.match_stats import build_match_stat
from valstats.models import MatchStat, PlayerStatsBundle

logger = logging.getLogger(__name__)


@dataclass
class GenerationContext:
    """State scoped to one generation pass."""

    metadata: CachedMetadata
    callouts: Dict[str, List[Callout]] = field(default_factory=dict)

    def callouts_for(self, map_id: str) -> List[Callout]:
        if map_id not in self.callouts:
            self.callouts[map_id] = self.metadata.get_callouts(map_id)
        return self.callouts[map_id]


class StatsGenerator:
    """Turns a batch of raw matches into the five stat lists for one player."""

    def __init__(self, metadata: Optional[MetadataSource] = None) -> None:
        self.metadata = metadata or StaticMetadataSource()

    def new_context(self) -> GenerationContext:
        return GenerationContext(metadata=CachedMetadata(self.metadata))

    def generate(
        self,
        matches: Iterable[Any],
        puuid: str,
        context: Optional[GenerationContext] = None,
    ) -> PlayerStatsBundle:
        start = time.perf_counter()
        generation = context or self.new_context()

        contexts: List[MatchContext] = []
        for raw in matches or []:
            match_context = try_extract_match_context(raw, puuid)
            if match_context is not None:
                contexts.append(match_context)

        for map_id in {c.map_id for c in contexts}:
            generation.callouts_for(map_id)

        agents = AgentAggregator()
        maps = MapAggregator()
        weapons = WeaponAggregator()
        seasons = SeasonAggregator()
        match_stats: List[MatchStat] = []

        for match_context in contexts:
            try:
                self._fold_match(match_context, generation, agents, maps, weapons, seasons, match_stats)
            except Exception as exc:
                logger.error(f"Error processing match {match_context.match_id}: {exc}")

        bundle = PlayerStatsBundle(
            agent_stats=agents.results(),
            map_stats=maps.results(),
            weapon_stats=weapons.results(),
            season_stats=seasons.results(),
            match_stats=match_stats,
        )
        logger.info(
            f"[GENERATOR TIMING] {len(contexts)} matches for {puuid} in "
            f"{time.perf_counter() - start:.3f}s"
        )
        return bundle

    @staticmethod
    def _fold_match(
        match_context: MatchContext,
        generation: GenerationContext,
        agents: AgentAggregator,
        maps: MapAggregator,
        weapons: WeaponAggregator,
        seasons: SeasonAggregator,
        match_stats: List[MatchStat],
    ) -> None:
        # Build every contribution before touching shared totals, so a failure
        # in this match leaves the other matches' aggregates untouched.
        staged = [AgentAggregator(), MapAggregator(), WeaponAggregator(), SeasonAggregator()]
        for aggregator in staged:
            aggregator.add_match(match_context)
        match_stat = build_match_stat(match_context, generation.callouts_for(match_context.map_id))

        for target, partial in zip((agents, maps, weapons, seasons), staged):
            target.absorb(partial)
        if match_stat is not None:
            match_stats.append(match_stat)
