"""engine.persistence

Save / load / export for game state.

A snapshot is plain JSON so runs can be downloaded, shared and re-imported.
Older snapshots are upgraded through a small migration registry:

- v1: the browser game's export (camelCase, string locations, flat stuckDays)
- v2: v1 plus a "jail" block and "aiStats" counters
- v3: snake_case fields, locations as {name, kind}, explicit immobility
"""

from __future__ import annotations

import copy
import json
import logging
import math
import os
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from content.schemas import event_from_dict
from core.effects import clamp
from core.locations import BASE_LOCATIONS
from core.state import (
    CITY,
    DEFAULT_PARTY,
    FREE,
    HOSTILE,
    JAILED,
    STUCK,
    ApiStats,
    GameState,
    Immobility,
    Location,
    LogEntry,
    Member,
)

LOG = logging.getLogger(__name__)

SNAPSHOT_VERSION = 3
_NUM_LIMIT = 2**31 - 1

_CITY_NAMES = {loc.name for loc in BASE_LOCATIONS if loc.kind == CITY}


class SnapshotError(ValueError):
    """Raised when a snapshot cannot be read or upgraded."""


Migration = Callable[[Dict[str, Any]], Dict[str, Any]]


def _migrate_v1_to_v2(payload: Dict[str, Any]) -> Dict[str, Any]:
    upgraded = dict(payload)
    upgraded.setdefault("jail", {"isJailed": False, "daysInJail": 0})
    upgraded.setdefault("aiStats", {"promptsViaAI": 0, "promptsHardcoded": 0, "tokensPrompt": 0, "tokensCompletion": 0})
    meta = dict(upgraded.get("_meta") or {})
    meta["version"] = 2
    upgraded["_meta"] = meta
    return upgraded


def _location_v3(raw: Any) -> Dict[str, str]:
    if isinstance(raw, dict):
        name = str(raw.get("name") or "")
        kind = raw.get("kind") or raw.get("type")
    else:
        name, kind = str(raw), None
    if kind not in (CITY, HOSTILE):
        kind = CITY if name in _CITY_NAMES else HOSTILE
    return {"name": name, "kind": kind}


def _immobility_v3(payload: Dict[str, Any]) -> Dict[str, Any]:
    jail = payload.get("jail") if isinstance(payload.get("jail"), dict) else {}
    if jail.get("isJailed"):
        return {"status": JAILED, "days": jail.get("daysInJail", 0)}
    stuck = payload.get("stuckDays", 0)
    if isinstance(stuck, (int, float)) and not isinstance(stuck, bool) and stuck > 0:
        return {"status": STUCK, "days": stuck}
    return {"status": FREE, "days": 0}


def _api_stats_v3(payload: Dict[str, Any]) -> Dict[str, Any]:
    api = payload.get("apiStats") if isinstance(payload.get("apiStats"), dict) else {}
    ai = payload.get("aiStats") if isinstance(payload.get("aiStats"), dict) else {}
    return {
        "connected": api.get("connected", False),
        "total_calls": api.get("totalCalls", 0),
        "successful_calls": api.get("successfulCalls", 0),
        "failed_calls": api.get("failedCalls", 0),
        "prompts_via_ai": ai.get("promptsViaAI", 0),
        "prompts_hardcoded": ai.get("promptsHardcoded", 0),
        "tokens_prompt": ai.get("tokensPrompt", 0),
        "tokens_completion": ai.get("tokensCompletion", 0),
        "total_tokens_used": api.get("totalTokensUsed", 0),
        "last_call_time": api.get("lastCallTime"),
        "current_model": api.get("currentModel", ""),
        "last_error": api.get("lastError"),
    }


def _migrate_v2_to_v3(payload: Dict[str, Any]) -> Dict[str, Any]:
    meta = dict(payload.get("_meta") or {})
    meta["version"] = 3
    return {
        "_meta": meta,
        "day": payload.get("day"),
        "health": payload.get("health", 100),
        "morale": payload.get("morale", 75),
        "supplies": payload.get("supplies", 80),
        "money": payload.get("money", 500),
        "party": payload.get("party"),
        "locations": [_location_v3(x) for x in payload.get("locations", [])],
        "current_location_index": payload.get("currentLocationIndex", 0),
        "distance_to_next": payload.get("distanceToNext", 50),
        "total_distance": payload.get("totalDistance", 0),
        "immobility": _immobility_v3(payload),
        "current_event": payload.get("currentEvent"),
        "game_log": payload.get("gameLog", []),
        "api_stats": _api_stats_v3(payload),
        "selected_model": payload.get("selectedModel", ""),
        "last_error": payload.get("lastError"),
        "miles_per_day": payload.get("milesPerDay", 0),
        "difficulty": payload.get("difficulty", "normal"),
        "started_at": payload.get("startedAt", ""),
    }


MIGRATIONS: Dict[int, Migration] = {
    1: _migrate_v1_to_v2,
    2: _migrate_v2_to_v3,
}


def _snapshot_version(payload: Dict[str, Any]) -> int:
    meta = payload.get("_meta")
    if not isinstance(meta, dict):
        return 1
    version = meta.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise SnapshotError("Snapshot version missing or invalid.")
    return version


def migrate_snapshot(payload: Dict[str, Any], target_version: int = SNAPSHOT_VERSION) -> Dict[str, Any]:
    version = _snapshot_version(payload)
    if version > target_version:
        raise SnapshotError(f"Snapshot version {version} is newer than supported {target_version}.")
    current = copy.deepcopy(payload)
    while version < target_version:
        migrator = MIGRATIONS.get(version)
        if migrator is None:
            raise SnapshotError(f"No migration available for snapshot version {version}.")
        current = migrator(current)
        version = _snapshot_version(current)
    return current


# ---- export -----------------------------------------------------------------

def state_to_dict(state: GameState) -> Dict[str, Any]:
    d = asdict(state)
    d["current_event"] = state.current_event.to_dict() if state.current_event else None
    d.pop("is_loading", None)
    return d


def export_snapshot(state: GameState, *, now: Optional[datetime] = None) -> str:
    saved_at = (now or datetime.now(timezone.utc)).isoformat()
    d = state_to_dict(state)
    d["_meta"] = {"version": SNAPSHOT_VERSION, "saved_at": saved_at}
    return json.dumps(d, ensure_ascii=False, indent=2)


def snapshot_filename(state: GameState) -> str:
    kind = "victory" if state.is_win else "run"
    return f"modern_trail_{kind}_{state.day}days.json"


# ---- import -----------------------------------------------------------------

def _num(x: Any, default: int) -> int:
    if isinstance(x, bool):
        return default
    if isinstance(x, int):
        return clamp(x, -_NUM_LIMIT, _NUM_LIMIT)
    if isinstance(x, float) and math.isfinite(x):
        return clamp(int(round(x)), -_NUM_LIMIT, _NUM_LIMIT)
    return default


def _pct(x: Any, default: int) -> int:
    return clamp(_num(x, default), 0, 100)


def _members(raw: Any) -> tuple:
    out: List[Member] = []
    for m in raw if isinstance(raw, list) else []:
        if not isinstance(m, dict) or not m.get("name"):
            continue
        out.append(
            Member(
                name=str(m["name"]),
                profession=str(m.get("profession") or ""),
                health=_pct(m.get("health"), 100),
                morale=_pct(m.get("morale"), 75),
            )
        )
    return tuple(out)


def _log_entries(raw: Any) -> tuple:
    out: List[LogEntry] = []
    for e in raw if isinstance(raw, list) else []:
        if isinstance(e, dict):
            out.append(LogEntry(day=_num(e.get("day"), 1), event=str(e.get("event") or ""), result=str(e.get("result") or "")))
    return tuple(out)


def _immobility(raw: Any) -> Immobility:
    if not isinstance(raw, dict):
        return Immobility()
    status = raw.get("status")
    days = max(0, _num(raw.get("days"), 0))
    if status == JAILED:
        return Immobility(JAILED, days)
    if status == STUCK and days > 0:
        return Immobility(STUCK, days)
    return Immobility()


def _api_stats(raw: Any) -> ApiStats:
    if not isinstance(raw, dict):
        return ApiStats()
    defaults = asdict(ApiStats())
    values: Dict[str, Any] = {}
    for key, default in defaults.items():
        v = raw.get(key, default)
        if isinstance(default, bool):
            values[key] = bool(v)
        elif isinstance(default, int):
            values[key] = max(0, _num(v, default))
        else:
            values[key] = None if v is None else str(v)
    values["current_model"] = values["current_model"] or ""
    return ApiStats(**values)


def state_from_dict(d: Dict[str, Any]) -> GameState:
    locations = tuple(
        Location(name=str(x.get("name") or ""), kind=x.get("kind") if x.get("kind") in (CITY, HOSTILE) else HOSTILE)
        for x in d["locations"]
        if isinstance(x, dict)
    )
    if not locations:
        raise SnapshotError("Snapshot has no locations.")
    return GameState(
        locations=locations,
        day=max(1, _num(d.get("day"), 1)),
        health=_pct(d.get("health"), 100),
        morale=_pct(d.get("morale"), 75),
        supplies=_pct(d.get("supplies"), 80),
        money=max(0, _num(d.get("money"), 500)),
        party=DEFAULT_PARTY if d.get("party") is None else _members(d["party"]),
        current_location_index=clamp(_num(d.get("current_location_index"), 0), 0, len(locations) - 1),
        distance_to_next=max(0, _num(d.get("distance_to_next"), 50)),
        total_distance=max(0, _num(d.get("total_distance"), 0)),
        immobility=_immobility(d.get("immobility")),
        current_event=event_from_dict(d.get("current_event")) if d.get("current_event") else None,
        game_log=_log_entries(d.get("game_log")),
        api_stats=_api_stats(d.get("api_stats")),
        selected_model=str(d.get("selected_model") or ""),
        is_loading=False,
        last_error=d.get("last_error") if isinstance(d.get("last_error"), str) else None,
        difficulty=str(d.get("difficulty") or "normal"),
        miles_per_day=max(0, _num(d.get("miles_per_day"), 0)),
        started_at=str(d.get("started_at") or ""),
    )


def import_snapshot(blob: str) -> GameState:
    """Parse, validate and upgrade a snapshot. Raises SnapshotError."""
    try:
        payload = json.loads(blob)
    except (TypeError, ValueError, RecursionError) as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise SnapshotError("Snapshot root must be an object.")
    if not isinstance(payload.get("locations"), list):
        raise SnapshotError("Snapshot is missing the locations list.")
    day = payload.get("day")
    if isinstance(day, bool) or not isinstance(day, (int, float)):
        raise SnapshotError("Snapshot day must be a number.")
    try:
        return state_from_dict(migrate_snapshot(payload))
    except SnapshotError:
        raise
    except (TypeError, ValueError, OverflowError, RecursionError) as e:
        raise SnapshotError(f"Snapshot could not be upgraded: {e}") from e


# ---- local slot -------------------------------------------------------------

class LocalSaveStore:
    """Single save slot on disk."""

    def __init__(self, path: str):
        self.path = path

    def save(self, state: GameState) -> bool:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(export_snapshot(state))
        except OSError as e:
            LOG.warning("save failed (%s): %s", self.path, e)
            return False
        return True

    def has_save(self) -> bool:
        return os.path.isfile(self.path)

    def load(self) -> Optional[GameState]:
        if not self.has_save():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return import_snapshot(f.read())
        except (OSError, ValueError) as e:
            LOG.error("load failed (%s): %s", self.path, e)
            return None

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            LOG.warning("clear failed (%s): %s", self.path, e)
