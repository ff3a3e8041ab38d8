"""
core.locations
The journey track: waypoint generation and movement along it.

Movement functions work on plain (index, distance_to_next, total_distance)
tuples so they can be tested without a full GameState.
"""

from __future__ import annotations

import random
from typing import List, Tuple

from .state import CITY, DESTINATION, HOSTILE, Location


BASE_LOCATIONS: Tuple[Location, ...] = (
    Location("Liberal Enclave of Portland", CITY),
    Location("The Censored City (formerly Seattle)", CITY),
    Location("Book Burning Fields of Idaho", HOSTILE),
    Location("Surveillance State of Montana", HOSTILE),
    Location("The Great Wall of North Dakota", HOSTILE),
    Location("Ministry of Truth (Minnesota)", HOSTILE),
    Location("Re-education Camps of Wisconsin", HOSTILE),
    Location("Thought Police Headquarters (Illinois)", HOSTILE),
    Location("Corporate Theocracy of Indiana", HOSTILE),
    Location("Bible Belt Checkpoint (Kentucky)", HOSTILE),
    Location("Coal Rolling Capital (West Virginia)", HOSTILE),
    Location("Confederate Memorial Highway (Virginia)", HOSTILE),
    Location("Freedom™ Processing Center (Maryland)", HOSTILE),
    Location("The Last Stand (Pennsylvania)", HOSTILE),
    Location(DESTINATION, CITY),
)

PROCEDURAL_SUFFIXES: Tuple[str, ...] = (
    "Checkpoint Alpha", "Detention Center", "Propaganda Station", "Truth Verification Point",
    "Loyalty Testing Facility", "Patriotism Academy", "Freedom™ Outpost", "Border Patrol Zone",
    "Corporate Compound", "Indoctrination Hub", "Surveillance Nexus", "Control Point",
    "Compliance Center", "Authority Station", "Regime Outpost", "Order Facility",
)

PROCEDURAL_PER_GAP = (1, 4)
INITIAL_LEG_RANGE = (30, 80)
LEG_RANGE = (40, 100)
AVERAGE_LEG_MILES = 70

Position = Tuple[int, int, int]  # (index, distance_to_next, total_distance)


def generate_locations(rng: random.Random) -> Tuple[Location, ...]:
    """Fixed waypoints with 1-4 procedural stops drawn into every gap.

    Not reproducible across games on purpose; only the structure is stable.
    """
    out: List[Location] = []
    lo, hi = PROCEDURAL_PER_GAP
    for i, base in enumerate(BASE_LOCATIONS[:-1]):
        out.append(base)
        for j in range(rng.randint(lo, hi)):
            suffix = rng.choice(PROCEDURAL_SUFFIXES)
            out.append(Location(f"{suffix} {chr(65 + i)}-{j + 1}", HOSTILE))
    out.append(BASE_LOCATIONS[-1])
    return tuple(out)


def initial_leg(rng: random.Random) -> int:
    return rng.randint(*INITIAL_LEG_RANGE)


def new_leg(rng: random.Random) -> int:
    return rng.randint(*LEG_RANGE)


def move_forward(pos: Position, miles: int, last_index: int, rng: random.Random) -> Position:
    """Advance at most one waypoint; a reached waypoint reseeds the next leg."""
    index, to_next, total = pos
    if miles <= 0:
        return pos
    to_next = max(0, to_next - miles)
    total += miles
    if to_next == 0 and index < last_index:
        index += 1
        to_next = new_leg(rng)
    return index, to_next, total


def move_backward(pos: Position, miles_back: int) -> Position:
    """Coarse reverse traversal.

    Walks back whole average legs rather than replaying forward history, so the
    index can drift from total_distance after repeated back-and-forth moves.
    """
    index, to_next, total = pos
    if miles_back <= 0:
        return pos
    to_next += miles_back
    total = max(0, total - miles_back)
    while to_next > AVERAGE_LEG_MILES and index > 0:
        index -= 1
        to_next -= AVERAGE_LEG_MILES
    return index, to_next, total


def force_arrival(pos: Position, last_index: int) -> Position:
    _, _, total = pos
    return last_index, 0, total
