"""core.rng

Seeding for trail sessions and the self check.

An unseeded session draws from system entropy. With TRAIL_SEED set, the
seed and a label go through SHA-256 rather than hash(), so a seeded run
replays the same checkpoints and legs on any machine.
"""

from __future__ import annotations

import hashlib
import json
import random
from typing import Any, Optional


def stable_int_seed(*parts: Any, salt: str = "modern-american-trail") -> int:
    """32-bit seed from the canonical JSON of `parts`, salted per game."""
    payload = json.dumps(parts, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)
    h = hashlib.sha256((salt + "|" + payload).encode("utf-8")).digest()
    return int.from_bytes(h[:4], "big", signed=False)


def rng_from(*parts: Any, base_seed: int) -> random.Random:
    """Random stream for one labelled consumer ('session', 'selfcheck')."""
    return random.Random(stable_int_seed(base_seed, *parts))


def session_rng(seed: Optional[int] = None, *parts: Any) -> random.Random:
    """Seeded when a seed is configured, otherwise unseeded."""
    if seed is None:
        return random.Random()
    return rng_from("session", *parts, base_seed=int(seed))
