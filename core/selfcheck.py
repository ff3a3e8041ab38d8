"""
core.selfcheck
Minimal "it runs" proof for the core rules.

Applies a few hundred random (often hostile) effect payloads to a fresh game
and asserts the state stays inside its bounds.

Run:
  python -m core.selfcheck
"""

from __future__ import annotations

import random
from dataclasses import replace

from .effects import apply_resource_deltas, sanitize
from .jail import apply_immobility_effect, resolve_jail_day, tick_stuck
from .locations import force_arrival, generate_locations, initial_leg, move_backward, move_forward
from .rng import rng_from
from .state import GameState

_JUNK = (None, "lots", float("nan"), float("inf"), True, "-12", 1e9, -1e9, 10**400, -(10**400), [], {})


def random_payload(rng: random.Random) -> dict:
    def num(lo: int, hi: int):
        return rng.choice(_JUNK) if rng.random() < 0.2 else rng.randint(lo, hi)

    return {
        "health": num(-300, 300),
        "morale": num(-300, 300),
        "supplies": num(-300, 300),
        "money": num(-5000, 5000),
        "partyHealth": num(-300, 300),
        "partyMorale": num(-300, 300),
        "miles": num(-50, 400),
        "milesBack": num(-50, 400),
        "stuckDays": num(-2, 9),
        "sendToJail": rng.choice(_JUNK) if rng.random() < 0.05 else rng.random() < 0.1,
        "partyMemberLoss": False,
        "endGame": rng.choice([None, None, None, "WIN", "lose", "draw"]),
        "message": "x" * rng.randint(0, 400),
    }


def run_random_effects_smoke(steps: int = 300, seed: int = 42) -> GameState:
    rng = rng_from("selfcheck", base_seed=seed)
    state = GameState(locations=generate_locations(rng), distance_to_next=initial_leg(rng))
    last = len(state.locations) - 1

    for _ in range(steps):
        effect = sanitize(random_payload(rng))
        assert sanitize(effect) == effect

        pos = (state.current_location_index, state.distance_to_next, state.total_distance)
        pos = move_backward(pos, effect.miles_back)
        pos = move_forward(pos, effect.miles, last, rng)
        if effect.end_game == "win":
            pos = force_arrival(pos, last)
        index, to_next, total = pos

        immobility = apply_immobility_effect(state.immobility, effect, state.day)
        immobility = tick_stuck(immobility)
        immobility, _ = resolve_jail_day(immobility, rng)

        state = apply_resource_deltas(state, effect)
        state = replace(
            state,
            current_location_index=index,
            distance_to_next=to_next,
            total_distance=total,
            immobility=immobility,
            day=state.day + 1,
        )

        # invariants
        assert 0 <= state.health <= 100
        assert 0 <= state.morale <= 100
        assert 0 <= state.supplies <= 100
        assert state.money >= 0
        assert 0 <= state.current_location_index <= last
        assert all(0 <= m.health <= 100 and 0 <= m.morale <= 100 for m in state.party)

        if state.is_terminal:
            state = GameState(locations=state.locations, distance_to_next=initial_leg(rng), day=state.day)

    return state


if __name__ == "__main__":
    final = run_random_effects_smoke()
    print("OK: random effect smoke test passed.")
    print(f"Final day {final.day}, location {final.current_location.name}, health {final.health}")
