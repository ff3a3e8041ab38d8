"""
core.modes
Difficulty specifications.

Kept in core so balancing lives in one place, but UI can still display labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ModeSpec:
    key: str
    desc: str
    temp: float
    attrition: float
    tone: str


DEFAULT_MODES: Dict[str, ModeSpec] = {
    "easy": ModeSpec(
        key="easy",
        desc="Gentler roads. Daily losses are lighter and events go easier on a weak party.",
        temp=0.7,
        attrition=0.75,
        tone="wry and forgiving; absurd bureaucracy over real danger",
    ),
    "normal": ModeSpec(
        key="normal",
        desc="The trail as intended.",
        temp=0.8,
        attrition=1.0,
        tone="sarcastic, darkly humorous satire of authoritarian excess",
    ),
    "hard": ModeSpec(
        key="hard",
        desc="Rations rot faster and the regime is paying attention.",
        temp=0.9,
        attrition=1.3,
        tone="bleak deadpan satire; consequences land hard but stay fair",
    ),
}


def get_mode_spec(mode_key: str) -> ModeSpec:
    return DEFAULT_MODES.get(mode_key, DEFAULT_MODES["normal"])


def scaled(amount: int, spec: ModeSpec) -> int:
    """Scale a daily loss by the mode's attrition factor."""
    return max(0, int(round(amount * spec.attrition)))
