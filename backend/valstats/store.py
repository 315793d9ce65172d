"""Persistence for per-player stat bundles and the ids of matches already folded in."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import re
from typing import Any, Dict, Iterable, List, Protocol, Set

from pydantic import ValidationError

from valstats.errors import StoreError
from valstats.models import PlayerStatsBundle

logger = logging.getLogger(__name__)


class StatsStore(Protocol):
    def load(self, puuid: str) -> PlayerStatsBundle: ...

    def load_processed_match_ids(self, puuid: str) -> Set[str]: ...

    def save(self, puuid: str, bundle: PlayerStatsBundle, match_ids: Iterable[str]) -> None:
        """Persist the bundle and the processed match ids together, in one write."""


def _safe_name(puuid: str) -> str:
    return re.sub(r"[^\w\-]", "_", puuid).strip("_") or "player"


class JsonStatsStore:
    """One JSON document per player: ``{"stats": {...}, "processedMatchIds": [...]}``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, puuid: str) -> Path:
        return self.root / f"{_safe_name(puuid)}.json"

    def _read(self, puuid: str) -> Dict[str, Any]:
        path = self.path_for(puuid)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read stats for {puuid} from {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StoreError(f"Stats document for {puuid} at {path} is not an object")
        return document

    def _write(self, puuid: str, document: Dict[str, Any]) -> None:
        path = self.path_for(puuid)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            tmp_path.replace(path)
        except OSError as exc:
            raise StoreError(f"Could not write stats for {puuid} to {path}: {exc}") from exc

    def load(self, puuid: str) -> PlayerStatsBundle:
        stats = self._read(puuid).get("stats") or {}
        try:
            return PlayerStatsBundle.model_validate(stats)
        except ValidationError as exc:
            raise StoreError(f"Stored stats for {puuid} are malformed: {exc}") from exc

    def load_processed_match_ids(self, puuid: str) -> Set[str]:
        return {str(match_id) for match_id in self._read(puuid).get("processedMatchIds") or []}

    def save(self, puuid: str, bundle: PlayerStatsBundle, match_ids: Iterable[str]) -> None:
        document = {
            "stats": bundle.to_record(),
            "processedMatchIds": sorted(set(match_ids)),
        }
        self._write(puuid, document)
        logger.info(f"Saved stats for {puuid} to {self.path_for(puuid)}")


class MemoryStatsStore:
    """In-process store, used by tests and dry runs."""

    def __init__(self) -> None:
        self.bundles: Dict[str, Dict[str, Any]] = {}
        self.processed: Dict[str, List[str]] = {}

    def load(self, puuid: str) -> PlayerStatsBundle:
        return PlayerStatsBundle.model_validate(self.bundles.get(puuid) or {})

    def load_processed_match_ids(self, puuid: str) -> Set[str]:
        return set(self.processed.get(puuid, []))

    def save(self, puuid: str, bundle: PlayerStatsBundle, match_ids: Iterable[str]) -> None:
        self.bundles[puuid] = bundle.to_record()
        self.processed[puuid] = sorted(set(match_ids))
