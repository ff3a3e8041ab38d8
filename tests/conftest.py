import random
from dataclasses import replace

import pytest

from core.effects import Effect, sanitize
from core.locations import BASE_LOCATIONS
from core.state import Choice, Event, GameState
from engine.config import OFFLINE, EngineConfig


class FixedRandom(random.Random):
    """random() always returns `value`; randint() picks the low or high end."""

    def __init__(self, value: float = 0.99, pick: str = "low"):
        super().__init__(0)
        self.value = value
        self.pick = pick

    def random(self) -> float:
        return self.value

    def randint(self, a: int, b: int) -> int:
        return a if self.pick == "low" else b


def make_state(**kwargs) -> GameState:
    kwargs.setdefault("locations", BASE_LOCATIONS)
    return GameState(**kwargs)


def make_event(effect: dict, text: str = "Go along with it", title: str = "Test Event") -> Event:
    return Event(
        title=title,
        description="Something happens.",
        choices=(Choice(text=text, effect=sanitize(effect)), Choice(text="Do nothing", effect=Effect())),
    )


def with_event(state: GameState, effect: dict, text: str = "Go along with it") -> GameState:
    return replace(state, current_event=make_event(effect, text))


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(provider=OFFLINE, seed=7)


@pytest.fixture
def state() -> GameState:
    return make_state()
