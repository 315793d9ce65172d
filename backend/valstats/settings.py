from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _list_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [value.strip() for value in raw.split(",") if value.strip()]


def _path_env(name: str) -> Optional[Path]:
    value = os.getenv(name)
    if not value:
        return None
    return Path(value)


DEFAULT_STORE_DIR = Path(__file__).resolve().parents[1] / "data" / "players"


@dataclass(frozen=True)
class Settings:
    lookup_api_url: str
    lookup_timeout_seconds: float
    lookup_language: str
    active_season_ids: List[str]
    store_dir: Path
    enrich_metadata: bool
    debug_mode: bool
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            lookup_api_url=os.getenv("VALSTATS_LOOKUP_API_URL", "https://valorant-api.com/v1"),
            lookup_timeout_seconds=float(os.getenv("VALSTATS_LOOKUP_TIMEOUT", "10")),
            lookup_language=os.getenv("VALSTATS_LOOKUP_LANGUAGE", "en-US"),
            active_season_ids=_list_env("VALSTATS_ACTIVE_SEASONS"),
            store_dir=_path_env("VALSTATS_STORE_DIR") or DEFAULT_STORE_DIR,
            enrich_metadata=_bool_env("VALSTATS_ENRICH", "true"),
            debug_mode=_bool_env("DEBUG_MODE"),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )
