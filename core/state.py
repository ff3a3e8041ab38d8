"""
core.state
Core domain data models (UI/LLM independent).

Everything here is a frozen dataclass. Transitions never mutate a state in
place; they build the next one with dataclasses.replace().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .effects import Effect


CITY = "city"
HOSTILE = "hostile"

DESTINATION = "Safe Haven of Vermont"

FREE = "free"
STUCK = "stuck"
JAILED = "jailed"


@dataclass(frozen=True)
class Member:
    name: str
    profession: str
    health: int = 100  # 0..100
    morale: int = 75   # 0..100


@dataclass(frozen=True)
class Location:
    name: str
    kind: str = HOSTILE  # city | hostile


@dataclass(frozen=True)
class Choice:
    text: str
    effect: Effect = field(default_factory=Effect)


@dataclass(frozen=True)
class Event:
    """A narrative prompt waiting for the player's decision."""

    title: str
    description: str
    choices: Tuple[Choice, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "choices": [{"text": c.text, "effect": c.effect.to_dict()} for c in self.choices],
        }


@dataclass(frozen=True)
class LogEntry:
    day: int
    event: str
    result: str


@dataclass(frozen=True)
class Immobility:
    """Explicit free / stuck / jailed state.

    - free: days is always 0
    - stuck: days = stuck days remaining (>= 1)
    - jailed: days = jail days already served (>= 0)
    """

    status: str = FREE
    days: int = 0

    @property
    def is_free(self) -> bool:
        return self.status == FREE


@dataclass(frozen=True)
class ApiStats:
    """Observability counters. Side channel only; never read by game rules."""

    connected: bool = False
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    prompts_via_ai: int = 0
    prompts_hardcoded: int = 0
    tokens_prompt: int = 0
    tokens_completion: int = 0
    total_tokens_used: int = 0
    last_call_time: Optional[str] = None
    current_model: str = ""
    last_error: Optional[str] = None

    @property
    def ai_ratio(self) -> float:
        denom = self.prompts_via_ai + self.prompts_hardcoded
        return 1.0 if denom == 0 else self.prompts_via_ai / denom


DEFAULT_PARTY: Tuple[Member, ...] = (
    Member(name="Alex", profession="Former Tech Worker"),
    Member(name="Jordan", profession="Banned Teacher"),
    Member(name="Sam", profession="Fact-Checker"),
)


@dataclass(frozen=True)
class GameState:
    locations: Tuple[Location, ...]
    day: int = 1
    health: int = 100         # 0..100
    morale: int = 75          # 0..100
    supplies: int = 80        # 0..100
    money: int = 500          # >= 0
    party: Tuple[Member, ...] = DEFAULT_PARTY
    current_location_index: int = 0
    distance_to_next: int = 50
    total_distance: int = 0
    immobility: Immobility = field(default_factory=Immobility)
    current_event: Optional[Event] = None
    game_log: Tuple[LogEntry, ...] = ()
    api_stats: ApiStats = field(default_factory=ApiStats)
    selected_model: str = ""
    is_loading: bool = False
    last_error: Optional[str] = None
    difficulty: str = "normal"
    miles_per_day: int = 0
    started_at: str = ""

    # flat views of the immobility machine
    @property
    def stuck_days(self) -> int:
        return self.immobility.days if self.immobility.status == STUCK else 0

    @property
    def jailed(self) -> bool:
        return self.immobility.status == JAILED

    @property
    def days_in_jail(self) -> int:
        return self.immobility.days if self.jailed else 0

    @property
    def current_location(self) -> Location:
        return self.locations[self.current_location_index]

    @property
    def destination(self) -> Location:
        return self.locations[-1]

    @property
    def at_destination(self) -> bool:
        return self.current_location_index == len(self.locations) - 1

    @property
    def progress_pct(self) -> int:
        if len(self.locations) <= 1:
            return 100
        return round(self.current_location_index / (len(self.locations) - 1) * 100)

    @property
    def is_loss(self) -> bool:
        return self.health <= 0 or all(m.health <= 0 for m in self.party)

    @property
    def is_win(self) -> bool:
        return self.at_destination and not self.is_loss

    @property
    def is_terminal(self) -> bool:
        return self.is_loss or self.is_win

    @property
    def outcome(self) -> Optional[str]:
        if self.is_loss:
            return "defeat"
        if self.is_win:
            return "victory"
        return None
