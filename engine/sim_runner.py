"""engine.sim_runner

Headless runner for quick sanity checks.

This keeps tests deterministic and CI-friendly by avoiding network calls.
It ships tiny scripted providers that speak the NarrativeProvider protocol.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from content.providers.base import ChatResult, ModelInfo, ProbeResult, ProviderError, ProviderStatus
from core.effects import sanitize
from core.state import Event, GameState

from .config import OFFLINE, EngineConfig
from .session import GameSession

LOG = logging.getLogger(__name__)

FAKE_MODEL = "fake/scripted-model:free"


def _fake_event(n: int) -> Dict[str, Any]:
    return {
        "title": f"Scripted Checkpoint #{n}",
        "description": "A bored official waves a clipboard at the party. The clipboard is also bored.",
        "choices": [
            {"text": "Show your papers", "effect": {"morale": -5, "money": -10, "message": "The papers are judged adequate."}},
            {"text": "Take the scenic detour", "effect": {"supplies": -5, "miles": 20, "message": "The scenery is mostly billboards."}},
        ],
    }


@dataclass
class FakeProvider:
    """Deterministic provider for tests (no LLM).

    Replies are taken from `script` in order (wrapped in a code fence, the way
    chatty models answer); once the script runs out a generic event is used.
    """

    script: List[str] = field(default_factory=list)
    model_ids: Sequence[str] = (FAKE_MODEL,)
    calls: List[str] = field(default_factory=list)

    def status(self) -> ProviderStatus:
        return ProviderStatus(True, "fake", self.model_ids[0] if self.model_ids else "")

    def chat(self, model: str, messages: Sequence[Dict[str, Any]], *, max_tokens: int = 900, temperature: float = 0.8) -> ChatResult:
        self.calls.append(model)
        if self.script:
            text = self.script.pop(0)
        else:
            text = "```json\n" + json.dumps(_fake_event(len(self.calls))) + "\n```"
        return ChatResult(text=text, usage={"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150})

    def list_models(self) -> List[ModelInfo]:
        return [ModelInfo(id=m, name=m) for m in self.model_ids]

    def probe(self, model: str) -> ProbeResult:
        self.calls.append(model)
        return ProbeResult(ok=True, model=model, reply="OK", tokens=5)


@dataclass
class FailingProvider:
    """Every call fails the way an unreachable upstream would."""

    error: str = "HTTP 503: upstream unavailable"
    calls: List[str] = field(default_factory=list)

    def status(self) -> ProviderStatus:
        return ProviderStatus(False, "failing", "", error=self.error)

    def chat(self, model: str, messages: Sequence[Dict[str, Any]], *, max_tokens: int = 900, temperature: float = 0.8) -> ChatResult:
        self.calls.append(model)
        raise ProviderError(self.error)

    def list_models(self) -> List[ModelInfo]:
        raise ProviderError(self.error)

    def probe(self, model: str) -> ProbeResult:
        self.calls.append(model)
        return ProbeResult(ok=False, model=model, error=self.error)


def _score(event: Event, index: int) -> float:
    e = sanitize(event.choices[index].effect)
    penalty = 100 if e.send_to_jail or e.party_member_loss or e.end_game == "lose" else 0
    return e.health + e.supplies + e.morale / 2 + e.money / 20 + e.miles / 5 - e.miles_back / 5 - 10 * e.stuck_days - penalty


def pick_choice(event: Event) -> int:
    """Simple greedy policy: the least harmful option."""
    return max(range(len(event.choices)), key=lambda i: _score(event, i))


def check_invariants(state: GameState) -> None:
    for v in (state.health, state.morale, state.supplies):
        assert 0 <= v <= 100, v
    assert state.money >= 0
    assert 0 <= state.current_location_index < len(state.locations)
    assert state.day >= 1
    assert not state.is_loading
    for m in state.party:
        assert 0 <= m.health <= 100 and 0 <= m.morale <= 100


def run_headless_sim(days: int = 30, provider: Any = None, seed: int = 123) -> Dict[str, Any]:
    """Play up to `days` Continue ticks and return a summary."""
    cfg = EngineConfig(provider=OFFLINE, seed=seed)
    session = GameSession(provider if provider is not None else FakeProvider(), cfg)
    session.refresh_models()
    state = session.new_game(difficulty="normal")

    choices = 0
    for _ in range(int(days)):
        if state.is_terminal:
            break
        if state.supplies < 30:
            state = session.buy("supplies")
        state = session.advance()
        check_invariants(state)
        while state.current_event is not None and not state.is_terminal:
            state = session.choose(pick_choice(state.current_event))
            choices += 1
            check_invariants(state)

    LOG.info("sim finished on day %d: %s", state.day, state.outcome or "in progress")
    return {
        "days": state.day - 1,
        "final": state,
        "choices": choices,
        "outcome": state.outcome,
        "log": list(state.game_log),
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    summary = run_headless_sim()
    final: Optional[GameState] = summary["final"]
    print(f"Day {final.day} | {final.current_location.name} | outcome={summary['outcome']} | choices={summary['choices']}")
