"""
core.jail
Involuntary immobility: jail sentences and stuck days.

States (core.state.Immobility):
- free
- stuck(days remaining)
- jailed(days served)

Guarantees: no arrests on days 1..EARLY_JAIL_GUARD_DAYS, and jail always ends
within JAIL_MAX_DAYS continue ticks.
"""

from __future__ import annotations

import random
from typing import Tuple

from .effects import Effect
from .state import FREE, JAILED, STUCK, Immobility


EARLY_JAIL_GUARD_DAYS = 3
JAIL_MAX_DAYS = 5
JAIL_ESCAPE_BASE = 0.35
JAIL_ESCAPE_STEP = 0.10
JAIL_ESCAPE_CAP = 0.95

ARREST_BASE = 0.04
ARREST_GROWTH_PER_DAY = 0.01
ARREST_GROWTH_CAP = 0.08

FREE_STATE = Immobility(FREE, 0)


def arrest_allowed(day: int) -> bool:
    return day > EARLY_JAIL_GUARD_DAYS


def guard_effect(effect: Effect, day: int) -> Effect:
    """Drop an arrest that lands inside the early-game guard window."""
    if effect.send_to_jail and not arrest_allowed(day):
        return Effect(**{**effect.to_dict(), "send_to_jail": False})
    return effect


def arrest_chance(day: int) -> float:
    """Chance of a random checkpoint arrest on a travel day (0 inside the guard)."""
    if not arrest_allowed(day):
        return 0.0
    growth = min(ARREST_GROWTH_PER_DAY * (day - EARLY_JAIL_GUARD_DAYS), ARREST_GROWTH_CAP)
    return ARREST_BASE + growth


def escape_chance(days_served: int) -> float:
    """Escape chance on jail day days_served + 1."""
    return min(JAIL_ESCAPE_CAP, JAIL_ESCAPE_BASE + JAIL_ESCAPE_STEP * days_served)


def enter_jail() -> Immobility:
    return Immobility(JAILED, 0)


def apply_immobility_effect(current: Immobility, effect: Effect, day: int) -> Immobility:
    if current.status == JAILED:
        return current
    if effect.send_to_jail and arrest_allowed(day):
        return enter_jail()
    if effect.stuck_days > 0:
        if current.status == STUCK:
            return Immobility(STUCK, max(current.days, effect.stuck_days))
        return Immobility(STUCK, effect.stuck_days)
    return current


def resolve_jail_day(current: Immobility, rng: random.Random) -> Tuple[Immobility, bool]:
    """Serve one jail day. Returns (next state, released)."""
    if current.status != JAILED:
        return current, False
    served = current.days
    escaped = rng.random() < escape_chance(served)
    if escaped or served + 1 >= JAIL_MAX_DAYS:
        return FREE_STATE, True
    return Immobility(JAILED, served + 1), False


def tick_stuck(current: Immobility) -> Immobility:
    if current.status != STUCK:
        return current
    remaining = current.days - 1
    if remaining <= 0:
        return FREE_STATE
    return Immobility(STUCK, remaining)
