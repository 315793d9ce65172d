from __future__ import annotations

from functools import lru_cache
import logging
import time
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from valstats.context import extract_match_context
from valstats.env import load_env
from valstats.errors import MatchRejected, StoreError
from valstats.impact import build_round_performances
from valstats.lookup import CachedMetadata, MetadataSource
from valstats.models import UpdateStatsRequest, UpdateStatsResponse
from valstats.pipeline import build_metadata_source, update_player_stats
from valstats.settings import Settings
from valstats.store import JsonStatsStore, StatsStore

load_env()

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Valstats API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_store() -> StatsStore:
    return JsonStatsStore(settings.store_dir)


@lru_cache
def get_metadata() -> MetadataSource:
    return build_metadata_source(settings)


@app.get("/health")
async def health_check() -> dict:
    return {
        "status": "healthy",
        "debug_mode": settings.debug_mode,
        "lookup_api_url": settings.lookup_api_url,
        "store_dir": str(settings.store_dir),
        "enrich_metadata": settings.enrich_metadata,
    }


@app.post("/players/{puuid}/stats", response_model=UpdateStatsResponse)
async def update_stats(puuid: str, request: UpdateStatsRequest) -> UpdateStatsResponse:
    start = time.perf_counter()
    store = get_store()
    try:
        before = await run_in_threadpool(store.load_processed_match_ids, puuid)
        bundle = await run_in_threadpool(
            update_player_stats, puuid, request.matches, store, get_metadata(), settings
        )
        after = await run_in_threadpool(store.load_processed_match_ids, puuid)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    logger.info(f"[TIMING] update {puuid}: {time.perf_counter() - start:.2f}s")
    return UpdateStatsResponse(
        puuid=puuid,
        matches_received=len(request.matches),
        matches_processed=len(after - before),
        stats=bundle.to_record(),
    )


@app.get("/players/{puuid}/stats")
async def get_stats(puuid: str) -> dict:
    try:
        bundle = await run_in_threadpool(get_store().load, puuid)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    if bundle.is_empty():
        raise HTTPException(status_code=404, detail=f"No stats stored for {puuid}")
    return bundle.to_record()


def _round_report(puuid: str, match: dict, metadata: MetadataSource) -> List[dict]:
    context = extract_match_context(match, puuid)
    callouts = CachedMetadata(metadata).get_callouts(context.map_id)
    return [performance.to_record() for performance in build_round_performances(context, callouts)]


@app.post("/players/{puuid}/round-performance")
async def round_performance(puuid: str, match: dict) -> List[dict]:
    """Round-by-round report of one raw match for ``puuid``."""
    try:
        return await run_in_threadpool(_round_report, puuid, match, get_metadata())
    except MatchRejected as exc:
        raise HTTPException(status_code=422, detail=exc.reason)
