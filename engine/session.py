"""engine.session

GameSession: the one object the UI talks to.

It owns the current state (inside an undo/redo history), the model directory
and the event generator. UI actions go through the pure reducer; when the
resulting state is waiting for an event, the session runs the generator and
folds the result back in with EventResolved.
"""

from __future__ import annotations

import logging
import random
import time
from typing import List, Optional, Tuple

from content.fallback import pick_fallback
from content.generator import FALLBACK, EventGenerator, GenerationResult
from content.prompts import situation_for
from content.providers.base import (
    FALLBACK_FREE_MODELS,
    ModelInfo,
    NarrativeProvider,
    ProbeResult,
    ProviderError,
)
from content.providers.gemini import GeminiProvider
from content.providers.openrouter import OpenRouterProvider
from core.rng import session_rng
from core.state import GameState

from .config import GEMINI, OFFLINE, EngineConfig
from .history import HistoryStack
from .persistence import LocalSaveStore, export_snapshot, import_snapshot, snapshot_filename
from .reducer import (
    Action,
    BuyItem,
    ChooseOption,
    ConnectionTested,
    Continue,
    EventResolved,
    RequestEvent,
    StartNewGame,
    reduce,
)

LOG = logging.getLogger(__name__)


def make_provider(config: EngineConfig) -> Optional[NarrativeProvider]:
    if config.provider == OFFLINE or not config.api_key:
        return None
    if config.provider == GEMINI:
        return GeminiProvider.from_api_key_string(config.api_key, timeout_seconds=config.timeout_seconds)
    return OpenRouterProvider(
        config.api_key,
        base_url=config.base_url,
        site_url=config.site_url,
        timeout_seconds=config.timeout_seconds,
    )


class GameSession:
    def __init__(
        self,
        provider: Optional[NarrativeProvider],
        config: EngineConfig,
        store: Optional[LocalSaveStore] = None,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.config = config
        self.store = store
        self.rng = rng or session_rng(config.seed)
        self.generator = EventGenerator(
            provider,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            max_candidates=config.max_candidates,
        )
        self.models: List[ModelInfo] = []
        self.history: Optional[HistoryStack[GameState]] = None
        self._generating = False

    # ---- state ----

    @property
    def state(self) -> Optional[GameState]:
        return self.history.current if self.history else None

    def _require_state(self) -> GameState:
        if self.state is None:
            raise ValueError("No game in progress")
        return self.state

    def _push(self, action: Action) -> GameState:
        state = self._require_state()
        new = reduce(state, action, rng=self.rng, config=self.config)
        if new is state:
            return state
        return self.history.push(new)

    def _amend(self, action: Action) -> GameState:
        state = self._require_state()
        return self.history.replace_current(reduce(state, action, rng=self.rng, config=self.config))

    def default_model(self) -> str:
        if self.config.default_model:
            return self.config.default_model
        healthy = [m.id for m in self.models if m.healthy]
        if healthy:
            return healthy[0]
        return FALLBACK_FREE_MODELS[0]

    # ---- actions ----

    def new_game(self, model_id: str = "", difficulty: str = "normal") -> GameState:
        state = reduce(None, StartNewGame(model_id or self.default_model(), difficulty), rng=self.rng, config=self.config)
        if self.history is None:
            self.history = HistoryStack(state)
        else:
            self.history.reset(state)
        LOG.info("new game: %d locations, model=%s, difficulty=%s", len(state.locations), state.selected_model, state.difficulty)
        return state

    def advance(self) -> GameState:
        self._push(Continue())
        return self.run_pending_generation(traveled=True)

    def face_the_day(self) -> GameState:
        self._push(RequestEvent())
        return self.run_pending_generation(traveled=False)

    def choose(self, index: int) -> GameState:
        return self._push(ChooseOption(int(index)))

    def buy(self, item_id: str) -> GameState:
        return self._push(BuyItem(str(item_id)))

    def run_pending_generation(self, *, traveled: bool = True) -> GameState:
        state = self._require_state()
        if not state.is_loading:
            return state
        if self._generating:
            LOG.debug("generation already in flight; ignoring duplicate request")
            return state
        self._generating = True
        try:
            situation = situation_for(state, traveled=traveled)
            try:
                result = self.generator.generate_event(state, self.models, situation=situation, rng=self.rng)
            except Exception as e:  # never leave the state loading
                LOG.exception("event generator crashed")
                result = GenerationResult(
                    event=pick_fallback(situation, self.rng, state.current_location.name),
                    source=FALLBACK,
                    error=f"{type(e).__name__}: {e}",
                    finished_at=time.time(),
                )
            return self._amend(EventResolved(result))
        finally:
            self._generating = False

    # ---- model directory ----

    def refresh_models(self, *, probe: bool = False) -> List[ModelInfo]:
        if self.provider is None:
            self.models = []
            return self.models
        try:
            if probe and isinstance(self.provider, OpenRouterProvider):
                self.models = self.provider.list_candidate_models()
            else:
                self.models = self.provider.list_models()
        except ProviderError as e:
            LOG.warning("model directory unavailable, using the built-in list: %s", e)
            self.models = [ModelInfo(id=m, name=m) for m in FALLBACK_FREE_MODELS]
        return self.models

    def test_connection(self) -> ProbeResult:
        state = self.state
        model = state.selected_model if state else self.default_model()
        if self.provider is None:
            probe = ProbeResult(ok=False, model=model, error="No provider configured")
        else:
            probe = self.provider.probe(model)
        if state is not None:
            ids = tuple(m.id for m in self.models) or FALLBACK_FREE_MODELS
            self._amend(ConnectionTested(probe, ids))
        return probe

    # ---- history ----

    @property
    def can_undo(self) -> bool:
        return bool(self.history and self.history.can_undo)

    @property
    def can_redo(self) -> bool:
        return bool(self.history and self.history.can_redo)

    def undo(self) -> Optional[GameState]:
        return self.history.undo() if self.history else None

    def redo(self) -> Optional[GameState]:
        return self.history.redo() if self.history else None

    # ---- persistence ----

    def export(self) -> Tuple[str, str]:
        state = self._require_state()
        return snapshot_filename(state), export_snapshot(state)

    def import_snapshot(self, blob: str) -> GameState:
        state = import_snapshot(blob)
        if self.history is None:
            self.history = HistoryStack(state)
        else:
            self.history.reset(state)
        return state

    def save(self) -> bool:
        if self.store is None or self.state is None:
            return False
        return self.store.save(self.state)

    def load(self) -> Optional[GameState]:
        if self.store is None:
            return None
        state = self.store.load()
        if state is None:
            return None
        if self.history is None:
            self.history = HistoryStack(state)
        else:
            self.history.reset(state)
        return state
