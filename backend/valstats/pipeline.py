"""End-to-end update of one player's persisted stats from a batch of raw matches."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, List, Optional, Set, Tuple

from valstats.enrichment import enrich_stats
from valstats.generator import StatsGenerator
from valstats.lookup import CachedMetadata, MetadataSource, StaticMetadataSource, ValorantApiClient
from valstats.merge import merge_bundles
from valstats.models import PlayerStatsBundle
from valstats.premium import apply_premium
from valstats.settings import Settings
from valstats.store import StatsStore
from valstats.telemetry import raw_match_id

logger = logging.getLogger(__name__)


def build_metadata_source(settings: Settings, offline: bool = False) -> MetadataSource:
    if offline:
        return StaticMetadataSource()
    return ValorantApiClient(
        base_url=settings.lookup_api_url,
        language=settings.lookup_language,
        timeout=settings.lookup_timeout_seconds,
        active_season_ids=settings.active_season_ids,
    )


def select_new_matches(
    matches: Iterable[Any], processed_ids: Set[str]
) -> Tuple[List[Any], List[str]]:
    """Matches not yet folded in, first occurrence only, with their ids.

    Matches without an id are passed through; context extraction rejects them.
    """
    selected: List[Any] = []
    new_ids: List[str] = []
    seen: Set[str] = set(processed_ids)
    for raw in matches or []:
        match_id = raw_match_id(raw)
        if match_id is not None:
            if match_id in seen:
                logger.info(f"Skipping already processed match {match_id}")
                continue
            seen.add(match_id)
            new_ids.append(match_id)
        selected.append(raw)
    return selected, new_ids


def update_player_stats(
    puuid: str,
    matches: Iterable[Any],
    store: StatsStore,
    metadata: Optional[MetadataSource] = None,
    settings: Optional[Settings] = None,
) -> PlayerStatsBundle:
    """Generate, enrich, merge, flag and save; on failure return the stored bundle unchanged."""
    settings = settings or Settings.from_env()
    total_start = time.perf_counter()

    old = store.load(puuid)
    processed_ids = store.load_processed_match_ids(puuid)
    fresh, new_ids = select_new_matches(matches, processed_ids)
    if not fresh:
        logger.info(f"No new matches for {puuid}; stored stats unchanged")
        return old

    try:
        cached = CachedMetadata(metadata or StaticMetadataSource())
        generator = StatsGenerator(cached)

        stage_start = time.perf_counter()
        generated = generator.generate(fresh, puuid)
        logger.info(f"[PIPELINE TIMING] generate: {time.perf_counter() - stage_start:.3f}s")

        if settings.enrich_metadata:
            stage_start = time.perf_counter()
            enrich_stats(generated, cached)
            logger.info(f"[PIPELINE TIMING] enrich: {time.perf_counter() - stage_start:.3f}s")

        stage_start = time.perf_counter()
        merged = merge_bundles(old, generated)
        apply_premium(merged)
        logger.info(f"[PIPELINE TIMING] merge+premium: {time.perf_counter() - stage_start:.3f}s")

        store.save(puuid, merged, processed_ids | set(new_ids))
    except Exception:
        logger.exception(f"Stats update failed for {puuid}; keeping stored stats")
        return old

    logger.info(
        f"[PIPELINE TIMING] TOTAL: {time.perf_counter() - total_start:.3f}s "
        f"({len(fresh)} new matches for {puuid})"
    )
    return merged
