"""content.generator

EventGenerator: one bounded pass over candidate models, then the fallback pool.

Strategy:
1) Build the candidate list (selected model first when healthy, then the other
   healthy models, capped).
2) Per candidate: one chat call, permissive JSON parse, schema validation.
3) First success wins. If every candidate fails, pick a hardcoded event.

generate_event never raises; the caller always gets something playable.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.modes import get_mode_spec
from core.state import Event, GameState

from .fallback import FALLBACK_EVENTS, localize, pick_fallback
from .parsing import must_parse_json
from .prompts import build_event_prompt, build_messages, situation_for
from .providers.base import ModelInfo, NarrativeProvider
from .schemas import event_from_llm

LOG = logging.getLogger(__name__)

AI = "ai"
FALLBACK = "fallback"


@dataclass(frozen=True)
class GenerationResult:
    event: Event
    source: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    attempts: int = 0
    failures: int = 0
    error: str = ""
    finished_at: float = 0.0

    @property
    def via_ai(self) -> bool:
        return self.source == AI


def candidate_models(selected: str, models: Sequence[ModelInfo], limit: int = 3) -> List[str]:
    """Ordered, de-duplicated model ids to try.

    The selected model leads when the directory lists it as healthy, or when no
    directory is available at all.
    """
    limit = max(0, int(limit))
    out: List[str] = []
    healthy = [m.id for m in models if m.healthy and m.id]
    if selected and (not models or selected in healthy):
        out.append(selected)
    for mid in healthy:
        if mid not in out:
            out.append(mid)
    return out[:limit]


class EventGenerator:
    def __init__(
        self,
        provider: Optional[NarrativeProvider],
        *,
        max_tokens: int = 900,
        temperature: float = 0.8,
        max_candidates: int = 3,
        fallback_pool: Optional[Sequence[Event]] = None,
    ):
        self.provider = provider
        self.max_tokens = int(max_tokens)
        self.temperature = float(temperature)
        self.max_candidates = int(max_candidates)
        self.fallback_pool = tuple(fallback_pool) if fallback_pool else None

    def _fallback(self, state: GameState, situation: str, rng: random.Random) -> Event:
        here = state.current_location.name
        if self.fallback_pool:
            return localize(rng.choice(self.fallback_pool), here)
        return pick_fallback(situation, rng, here)

    def generate_event(
        self,
        state: GameState,
        models: Sequence[ModelInfo] = (),
        *,
        situation: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> GenerationResult:
        rng = rng or random.Random()
        situation = situation or situation_for(state)
        candidates = candidate_models(state.selected_model, models, self.max_candidates)
        if self.provider is None:
            candidates = []

        temperature = self.temperature * get_mode_spec(state.difficulty).temp / get_mode_spec("normal").temp
        messages = build_messages(build_event_prompt(state, situation))
        last_error = "No models available"
        failures = 0

        for model in candidates:
            try:
                res = self.provider.chat(model, messages, max_tokens=self.max_tokens, temperature=temperature)
                event = event_from_llm(must_parse_json(res.text))
            except Exception as e:  # any candidate failure moves on to the next
                failures += 1
                last_error = f"{model}: {type(e).__name__}: {e}"
                LOG.warning("event generation failed (%s)", last_error)
                continue
            return GenerationResult(
                event=event,
                source=AI,
                model=model,
                usage=dict(res.usage),
                attempts=failures + 1,
                failures=failures,
                finished_at=time.time(),
            )

        LOG.info("using fallback event after %d failed attempt(s): %s", failures, last_error)
        return GenerationResult(
            event=self._fallback(state, situation, rng),
            source=FALLBACK,
            attempts=failures,
            failures=failures,
            error=last_error,
            finished_at=time.time(),
        )


__all__ = ["AI", "FALLBACK", "FALLBACK_EVENTS", "EventGenerator", "GenerationResult", "candidate_models"]
