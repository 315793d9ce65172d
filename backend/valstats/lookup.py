"""Display metadata and map callouts.

``ValorantApiClient`` talks to the public content API. ``CachedMetadata``
wraps any source for the duration of one generation pass; it is never shared
between passes.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

import requests

from valstats.callouts import Callout, parse_callouts
from valstats.errors import LookupAPIError

logger = logging.getLogger(__name__)

WEAPON_CATEGORY_TYPES = {
    "rifle": "rifle",
    "sniper": "sniper",
    "shotgun": "shotgun",
    "smg": "smg",
    "heavy": "heavy",
    "sidearm": "pistol",
    "melee": "melee",
}

ABILITY_SLOT_TYPES = {
    "grenade": ("grenade", "Grenade"),
    "ability1": ("ability1", "Basic"),
    "ability2": ("ability2", "Signature"),
    "ultimate": ("ultimate", "Ultimate"),
}


class MetadataSource(Protocol):
    def get_callouts(self, map_id: str) -> List[Callout]: ...

    def get_agent(self, agent_id: str) -> Dict[str, Any]: ...

    def get_map(self, map_id: str) -> Dict[str, Any]: ...

    def get_weapon(self, weapon_id: str) -> Dict[str, Any]: ...

    def get_season(self, season_id: str) -> Dict[str, Any]: ...


def _extract_error_detail(response: requests.Response) -> str:
    text = response.text.strip()
    try:
        payload = response.json()
    except ValueError:
        return text or "No response body"
    if isinstance(payload, dict):
        if "error" in payload:
            return str(payload["error"])
        if "message" in payload:
            return str(payload["message"])
        return json.dumps(payload)
    return text or "No response body"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def weapon_type_from_category(category: Optional[str]) -> str:
    # "EEquippableCategory::Rifle" -> "rifle"
    name = (category or "").split("::")[-1].strip().lower()
    return WEAPON_CATEGORY_TYPES.get(name, name)


class ValorantApiClient:
    def __init__(
        self,
        base_url: str = "https://valorant-api.com/v1",
        language: str = "en-US",
        timeout: float = 10.0,
        active_season_ids: Optional[Iterable[str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout
        self.active_season_ids = set(active_season_ids or [])
        self.session = session or requests.Session()

    def get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(
                url,
                params={"language": self.language},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise LookupAPIError(f"Lookup request failed for {url}: {exc}") from exc
        if response.status_code >= 400:
            detail = _extract_error_detail(response)
            raise LookupAPIError(f"Lookup API error: {response.status_code} - {detail}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise LookupAPIError(f"Non-JSON response from lookup API: {exc}") from exc
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    def _raw_map(self, map_id: str) -> Dict[str, Any]:
        # Match records reference maps by their game path, the API by uuid.
        # Fetched on every call; callers memoize through CachedMetadata.
        for entry in self.get("/maps") or []:
            if not isinstance(entry, dict):
                continue
            if map_id in (entry.get("uuid"), entry.get("mapUrl")):
                return entry
        raise LookupAPIError(f"Unknown map {map_id}")

    def get_callouts(self, map_id: str) -> List[Callout]:
        return parse_callouts(self._raw_map(map_id).get("callouts") or [])

    def get_map(self, map_id: str) -> Dict[str, Any]:
        entry = self._raw_map(map_id)
        return {
            "name": entry.get("displayName") or "",
            "location": entry.get("coordinates") or "",
            "image": entry.get("splash") or entry.get("displayIcon") or "",
            "mapCoordinates": {
                "xMultiplier": entry.get("xMultiplier") or 1.0,
                "yMultiplier": entry.get("yMultiplier") or 1.0,
                "xScalarToAdd": entry.get("xScalarToAdd") or 0.0,
                "yScalarToAdd": entry.get("yScalarToAdd") or 0.0,
            },
        }

    def get_agent(self, agent_id: str) -> Dict[str, Any]:
        entry = self.get(f"/agents/{agent_id}") or {}
        abilities = []
        for ability in entry.get("abilities") or []:
            slot = str(ability.get("slot") or "").lower()
            if slot not in ABILITY_SLOT_TYPES:
                continue
            ability_id, ability_type = ABILITY_SLOT_TYPES[slot]
            abilities.append(
                {
                    "id": ability_id,
                    "name": ability.get("displayName") or "",
                    "image": ability.get("displayIcon") or "",
                    "type": ability_type,
                }
            )
        return {
            "name": entry.get("displayName") or "",
            "role": (entry.get("role") or {}).get("displayName") or "",
            "image": entry.get("fullPortrait") or entry.get("displayIcon") or "",
            "icon": entry.get("displayIcon") or "",
            "abilities": abilities,
        }

    def get_weapon(self, weapon_id: str) -> Dict[str, Any]:
        entry = self.get(f"/weapons/{weapon_id}") or {}
        return {
            "name": entry.get("displayName") or "",
            "image": entry.get("displayIcon") or "",
            "type": weapon_type_from_category(entry.get("category")),
        }

    def get_season(self, season_id: str) -> Dict[str, Any]:
        entry = self.get(f"/seasons/{season_id}") or {}
        is_active = season_id in self.active_season_ids
        start = _parse_timestamp(entry.get("startTime"))
        end = _parse_timestamp(entry.get("endTime"))
        if start and end:
            now = datetime.now(timezone.utc)
            is_active = is_active or start <= now <= end
        return {"name": entry.get("displayName") or "", "isActive": is_active}


class StaticMetadataSource:
    """Metadata served from in-memory tables, for offline runs and tests."""

    def __init__(
        self,
        callouts: Optional[Dict[str, List[Any]]] = None,
        agents: Optional[Dict[str, Dict[str, Any]]] = None,
        maps: Optional[Dict[str, Dict[str, Any]]] = None,
        weapons: Optional[Dict[str, Dict[str, Any]]] = None,
        seasons: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self.callouts = callouts or {}
        self.agents = agents or {}
        self.maps = maps or {}
        self.weapons = weapons or {}
        self.seasons = seasons or {}

    @staticmethod
    def _lookup(table: Dict[str, Dict[str, Any]], kind: str, key: str) -> Dict[str, Any]:
        if key not in table:
            raise LookupAPIError(f"No {kind} metadata for {key}")
        return dict(table[key])

    def get_callouts(self, map_id: str) -> List[Callout]:
        return parse_callouts(self.callouts.get(map_id) or [])

    def get_agent(self, agent_id: str) -> Dict[str, Any]:
        return self._lookup(self.agents, "agent", agent_id)

    def get_map(self, map_id: str) -> Dict[str, Any]:
        return self._lookup(self.maps, "map", map_id)

    def get_weapon(self, weapon_id: str) -> Dict[str, Any]:
        return self._lookup(self.weapons, "weapon", weapon_id)

    def get_season(self, season_id: str) -> Dict[str, Any]:
        return self._lookup(self.seasons, "season", season_id)


class CachedMetadata:
    """Memoizes a ``MetadataSource`` for one generation pass, failures included."""

    def __init__(self, source: MetadataSource) -> None:
        self.source = source
        self._values: Dict[tuple, Any] = {}
        self._errors: Dict[tuple, Exception] = {}
        self.calls = 0

    def _cached(self, kind: str, key: str, fetch: Callable[[str], Any]) -> Any:
        cache_key = (kind, key)
        if cache_key in self._values:
            return self._values[cache_key]
        if cache_key in self._errors:
            raise self._errors[cache_key]
        self.calls += 1
        try:
            value = fetch(key)
        except Exception as exc:
            self._errors[cache_key] = exc
            raise
        self._values[cache_key] = value
        return value

    def get_callouts(self, map_id: str) -> List[Callout]:
        try:
            return self._cached("callouts", map_id, self.source.get_callouts)
        except Exception as exc:
            logger.warning(f"Callouts unavailable for map {map_id}: {exc}")
            return []

    def get_agent(self, agent_id: str) -> Dict[str, Any]:
        return self._cached("agent", agent_id, self.source.get_agent)

    def get_map(self, map_id: str) -> Dict[str, Any]:
        return self._cached("map", map_id, self.source.get_map)

    def get_weapon(self, weapon_id: str) -> Dict[str, Any]:
        return self._cached("weapon", weapon_id, self.source.get_weapon)

    def get_season(self, season_id: str) -> Dict[str, Any]:
        return self._cached("season", season_id, self.source.get_season)
