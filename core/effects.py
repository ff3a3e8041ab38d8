"""
core.effects
Effect rules:
- the Effect value object (closed shape, bounded fields)
- sanitize(): the only way untrusted effect payloads enter the game
- clamped application of resource / party deltas
- human summary line for the journey log
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from .state import GameState


# (lo, hi) per numeric field
BOUNDS: Dict[str, Tuple[int, int]] = {
    "health": (-100, 100),
    "morale": (-100, 100),
    "supplies": (-100, 100),
    "money": (-1000, 2000),
    "party_health": (-100, 100),
    "party_morale": (-100, 100),
    "miles": (0, 150),
    "miles_back": (0, 150),
    "stuck_days": (0, 5),
}

FLAGS = ("send_to_jail", "party_member_loss")

END_GAME_VALUES = {"win", "lose"}

MESSAGE_MAX_LEN = 280

# model output uses the original camelCase names
_ALIASES: Dict[str, str] = {
    "partyHealth": "party_health",
    "partyMorale": "party_morale",
    "milesBack": "miles_back",
    "stuckDays": "stuck_days",
    "sendToJail": "send_to_jail",
    "partyMemberLoss": "party_member_loss",
    "endGame": "end_game",
}


@dataclass(frozen=True)
class Effect:
    health: int = 0
    morale: int = 0
    supplies: int = 0
    money: int = 0
    party_health: int = 0
    party_morale: int = 0
    miles: int = 0
    miles_back: int = 0
    stuck_days: int = 0
    send_to_jail: bool = False
    party_member_loss: bool = False
    end_game: Optional[str] = None  # win | lose | None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def clamp(x: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, x))


def _as_int(x: Any, default: int = 0) -> int:
    if isinstance(x, bool) or x is None:
        return default
    if isinstance(x, int):
        return x
    try:
        v = float(str(x).strip()) if isinstance(x, str) else float(x)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(v):
        return default
    return int(round(v))


def _as_flag(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, str):
        return x.strip().lower() in {"true", "yes", "1"}
    if isinstance(x, int):
        return x != 0
    if isinstance(x, float):
        return math.isfinite(x) and x != 0
    return False


def _as_end_game(x: Any) -> Optional[str]:
    if not isinstance(x, str):
        return None
    v = x.strip().lower()
    return v if v in END_GAME_VALUES else None


def _as_message(x: Any) -> str:
    if not isinstance(x, str):
        return ""
    return " ".join(x.split())[:MESSAGE_MAX_LEN]


def sanitize(raw: Any) -> Effect:
    """Normalize an untrusted effect payload into a bounded Effect. Never raises."""
    if isinstance(raw, Effect):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return Effect()

    d: Dict[str, Any] = {}
    for k, v in raw.items():
        key = _ALIASES.get(str(k), str(k))
        d[key] = v

    values: Dict[str, Any] = {}
    for name, (lo, hi) in BOUNDS.items():
        values[name] = clamp(_as_int(d.get(name)), lo, hi)
    for name in FLAGS:
        values[name] = _as_flag(d.get(name))
    values["end_game"] = _as_end_game(d.get("end_game"))
    values["message"] = _as_message(d.get("message"))
    return Effect(**values)


def apply_resource_deltas(state: "GameState", effect: Effect) -> "GameState":
    """Apply stat / money / party deltas with clamp rules (pure).

    end_game == "lose" zeroes health after the deltas, so a simultaneous
    positive health delta cannot cancel it.
    """
    party = tuple(
        replace(
            m,
            health=clamp(m.health + effect.party_health, 0, 100),
            morale=clamp(m.morale + effect.party_morale, 0, 100),
        )
        for m in state.party
    )
    health = clamp(state.health + effect.health, 0, 100)
    if effect.end_game == "lose":
        health = 0
    return replace(
        state,
        health=health,
        morale=clamp(state.morale + effect.morale, 0, 100),
        supplies=clamp(state.supplies + effect.supplies, 0, 100),
        money=max(0, state.money + effect.money),
        party=party,
    )


def _signed(v: int) -> str:
    return f"+{v}" if v > 0 else str(v)


def outcome_summary(effect: Effect) -> str:
    parts: List[str] = []
    if effect.health:
        parts.append(f"Health {_signed(effect.health)}%")
    if effect.morale:
        parts.append(f"Morale {_signed(effect.morale)}%")
    if effect.supplies:
        parts.append(f"Supplies {_signed(effect.supplies)}%")
    if effect.money:
        parts.append(f"Money {'+' if effect.money > 0 else '-'}${abs(effect.money)}")
    if effect.party_health:
        parts.append(f"Party health {_signed(effect.party_health)}%")
    if effect.party_morale:
        parts.append(f"Party morale {_signed(effect.party_morale)}%")
    if effect.miles:
        parts.append(f"Miles +{effect.miles}")
    if effect.miles_back:
        parts.append(f"Miles -{effect.miles_back}")
    if effect.stuck_days:
        parts.append(f"Stuck {effect.stuck_days} day(s)")
    if effect.send_to_jail:
        parts.append("Arrested")
    if effect.party_member_loss:
        parts.append("Lost a party member")
    return " • ".join(parts)
