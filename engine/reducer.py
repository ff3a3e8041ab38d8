"""engine.reducer

Game transitions (headless).

Responsibilities:
- Travel / jail / stuck day ticks
- Applying a chosen event option (sanitize -> movement -> immobility -> deltas)
- Black market purchases
- Folding generation results and connection probes back into state

Every transition is pure: (state, action) -> new state. Randomness comes in
through the rng argument so tests can pin it. This layer is UI-agnostic.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from core.effects import Effect, apply_resource_deltas, clamp, outcome_summary, sanitize
from core.jail import (
    apply_immobility_effect,
    arrest_chance,
    enter_jail,
    guard_effect,
    resolve_jail_day,
    tick_stuck,
)
from core.locations import force_arrival, generate_locations, initial_leg, move_backward, move_forward
from core.modes import get_mode_spec, scaled
from core.shop import get_item, roll_price
from core.state import ApiStats, GameState, LogEntry

from content.fallback import cascade_event
from content.generator import GenerationResult
from content.providers.base import ProbeResult

from .config import EngineConfig

DEFAULT_CHOICE_MESSAGE = "You made your choice."

CASCADE_LOW_HEALTH = 30
CASCADE_LOW_SUPPLIES = 20
CASCADE_P_HEALTH = 0.30
CASCADE_P_SUPPLIES = 0.25
CASCADE_P_KEYWORD = 0.20
CASCADE_KEYWORDS = ("bribe", "steal", "resist")


# ---- actions ----------------------------------------------------------------

@dataclass(frozen=True)
class StartNewGame:
    model_id: str = ""
    difficulty: str = "normal"


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class RequestEvent:
    pass


@dataclass(frozen=True)
class ChooseOption:
    index: int


@dataclass(frozen=True)
class BuyItem:
    item_id: str


@dataclass(frozen=True)
class EventResolved:
    result: GenerationResult


@dataclass(frozen=True)
class ConnectionTested:
    probe: ProbeResult
    models: Tuple[str, ...] = ()


Action = Union[StartNewGame, Continue, RequestEvent, ChooseOption, BuyItem, EventResolved, ConnectionTested]


# ---- helpers ----------------------------------------------------------------

def _log(state: GameState, event: str, result: str, day: Optional[int] = None) -> GameState:
    entry = LogEntry(day=state.day if day is None else day, event=event, result=result)
    return replace(state, game_log=state.game_log + (entry,))


def _position(state: GameState) -> Tuple[int, int, int]:
    return state.current_location_index, state.distance_to_next, state.total_distance


def _with_position(state: GameState, pos: Tuple[int, int, int]) -> GameState:
    index, to_next, total = pos
    return replace(state, current_location_index=index, distance_to_next=to_next, total_distance=total)


def _busy(state: GameState) -> bool:
    return state.is_terminal or state.current_event is not None or state.is_loading


def _request(state: GameState) -> GameState:
    if state.is_terminal:
        return state
    return replace(state, is_loading=True)


def daily_miles(state: GameState, rng: random.Random) -> int:
    return 15 + rng.randint(0, 9) + state.health // 20 + state.supplies // 25 + state.miles_per_day


# ---- transitions ------------------------------------------------------------

def start_new_game(action: StartNewGame, *, rng: random.Random) -> GameState:
    mode = get_mode_spec(action.difficulty)
    return GameState(
        locations=generate_locations(rng),
        distance_to_next=initial_leg(rng),
        selected_model=action.model_id or "",
        difficulty=mode.key,
        api_stats=ApiStats(current_model=action.model_id or ""),
        started_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


def _jail_tick(state: GameState, rng: random.Random) -> GameState:
    served = state.days_in_jail
    immobility, released = resolve_jail_day(state.immobility, rng)
    s = replace(state, immobility=immobility)
    if released:
        s = _log(s, "Jail", f"Released after {served + 1} day(s) behind bars.")
    else:
        s = _log(s, "Jail", f"Day {served + 1} behind bars.")
    return replace(s, day=s.day + 1)


def _stuck_tick(state: GameState) -> GameState:
    immobility = tick_stuck(state.immobility)
    s = replace(state, immobility=immobility)
    if immobility.is_free:
        s = _log(s, "Stuck", "The road finally opens up.")
    return replace(s, day=s.day + 1)


def _travel_tick(state: GameState, rng: random.Random, config: EngineConfig) -> GameState:
    miles = daily_miles(state, rng)
    last = len(state.locations) - 1
    s = _with_position(state, move_forward(_position(state), miles, last, rng))

    mode = get_mode_spec(s.difficulty)
    supplies_loss = scaled(rng.randint(8, 17), mode)
    health_loss = scaled(rng.randint(2, 6), mode)
    morale_loss = scaled(rng.randint(3, 9), mode)
    party = tuple(
        replace(
            m,
            health=clamp(m.health - scaled(rng.randint(2, 6), mode), 0, 100),
            morale=clamp(m.morale - scaled(rng.randint(3, 8), mode), 0, 100),
        )
        for m in s.party
    )
    s = replace(
        s,
        supplies=clamp(s.supplies - supplies_loss, 0, 100),
        health=clamp(s.health - health_loss, 0, 100),
        morale=clamp(s.morale - morale_loss, 0, 100),
        party=party,
        day=s.day + 1,
    )

    if s.current_location_index != state.current_location_index:
        s = _log(s, "Arrival", f"Reached {s.current_location.name}.", day=state.day)

    if config.random_arrests and not s.is_terminal and rng.random() < arrest_chance(s.day):
        s = replace(s, immobility=enter_jail())
        s = _log(s, "Random Checkpoint", "Your papers were 'not in order'. The party is hauled off to jail.")
    return s


def continue_journey(state: GameState, *, rng: random.Random, config: EngineConfig) -> GameState:
    if _busy(state):
        return state
    if state.jailed:
        s = _jail_tick(state, rng)
    elif state.stuck_days > 0:
        s = _stuck_tick(state)
    else:
        s = _travel_tick(state, rng, config)
    return _request(s)


def request_event(state: GameState) -> GameState:
    """Face the day: ask for an event without moving or advancing the clock."""
    if _busy(state) or not state.immobility.is_free:
        return state
    return _request(state)


def _cascade_trigger(state: GameState, choice_text: str, rng: random.Random) -> Optional[str]:
    if state.health < CASCADE_LOW_HEALTH:
        return "low_health" if rng.random() < CASCADE_P_HEALTH else None
    if state.supplies < CASCADE_LOW_SUPPLIES:
        return "low_supplies" if rng.random() < CASCADE_P_SUPPLIES else None
    text = choice_text.lower()
    keyword = next((k for k in CASCADE_KEYWORDS if k in text), None)
    if keyword is not None:
        return keyword if rng.random() < CASCADE_P_KEYWORD else None
    return None


def _remove_random_member(state: GameState, rng: random.Random) -> Tuple[GameState, str]:
    if not state.party:
        return state, ""
    i = rng.randrange(len(state.party))
    lost = state.party[i]
    return replace(state, party=state.party[:i] + state.party[i + 1 :]), lost.name


def choose_option(state: GameState, index: int, *, rng: random.Random) -> GameState:
    event = state.current_event
    if event is None or state.is_terminal:
        return state
    if not 0 <= int(index) < len(event.choices):
        raise ValueError(f"Choice index out of range: {index}")
    choice = event.choices[int(index)]
    effect: Effect = guard_effect(sanitize(choice.effect), state.day)
    if not state.immobility.is_free:
        effect = replace(effect, miles=0, miles_back=0)

    last = len(state.locations) - 1
    pos = move_backward(_position(state), effect.miles_back)
    pos = move_forward(pos, effect.miles, last, rng)
    if effect.end_game == "win":
        pos = force_arrival(pos, last)
    s = _with_position(state, pos)

    s = replace(s, immobility=apply_immobility_effect(s.immobility, effect, s.day))
    s = apply_resource_deltas(s, effect)

    message = effect.message or DEFAULT_CHOICE_MESSAGE
    if effect.party_member_loss:
        s, name = _remove_random_member(s, rng)
        if name:
            message = f"{message} {name} did not make it."
    summary = outcome_summary(effect)
    result = f"{message} - {summary}" if summary else message
    s = _log(s, event.title, result, day=state.day)
    s = replace(s, current_event=None)

    if s.is_terminal:
        return s
    trigger = _cascade_trigger(s, choice.text, rng)
    if trigger is not None:
        s = replace(s, current_event=cascade_event(trigger, s.current_location.name))
    return s


def buy_item(state: GameState, item_id: str, *, rng: random.Random) -> GameState:
    item = get_item(item_id)
    if state.is_terminal or state.current_event is not None:
        return state
    price = roll_price(item, rng)
    if state.money < price:
        return state
    e = item.effect
    party = tuple(
        replace(
            m,
            health=clamp(m.health + e.party_health, 0, 100),
            morale=clamp(m.morale + e.party_morale, 0, 100),
        )
        for m in state.party
    )
    s = replace(
        state,
        money=state.money - price,
        health=clamp(state.health + e.health, 0, 100),
        morale=clamp(state.morale + e.morale, 0, 100),
        supplies=clamp(state.supplies + e.supplies, 0, 100),
        party=party,
    )
    return _log(s, "Black Market Purchase", f"Bought {item.name} for ${price}.")


def _call_time(result: GenerationResult) -> Optional[str]:
    if not result.finished_at:
        return None
    return time.strftime("%H:%M:%S", time.localtime(result.finished_at))


def event_resolved(state: GameState, result: GenerationResult) -> GameState:
    if not state.is_loading:
        return state
    st = state.api_stats
    usage = result.usage or {}
    prompt_tokens = int(usage.get("prompt_tokens", 0) or 0)
    completion_tokens = int(usage.get("completion_tokens", 0) or 0)
    total_tokens = int(usage.get("total_tokens", 0) or (prompt_tokens + completion_tokens))
    stats = replace(
        st,
        connected=result.via_ai,
        total_calls=st.total_calls + result.attempts,
        successful_calls=st.successful_calls + (1 if result.via_ai else 0),
        failed_calls=st.failed_calls + result.failures,
        prompts_via_ai=st.prompts_via_ai + (1 if result.via_ai else 0),
        prompts_hardcoded=st.prompts_hardcoded + (0 if result.via_ai else 1),
        tokens_prompt=st.tokens_prompt + prompt_tokens,
        tokens_completion=st.tokens_completion + completion_tokens,
        total_tokens_used=st.total_tokens_used + total_tokens,
        last_call_time=_call_time(result) or st.last_call_time,
        current_model=result.model if result.via_ai else st.current_model,
        last_error=None if result.via_ai else (result.error or st.last_error),
    )
    if result.via_ai:
        return replace(
            state,
            current_event=result.event,
            is_loading=False,
            selected_model=result.model or state.selected_model,
            last_error=None,
            api_stats=stats,
        )
    return replace(
        state,
        current_event=result.event,
        is_loading=False,
        last_error=f"AI Error: {result.error or 'unavailable'}. Using fallback event.",
        api_stats=stats,
    )


def next_model(current: str, models: Tuple[str, ...]) -> str:
    if not models:
        return current
    if current not in models:
        return models[0]
    return models[(models.index(current) + 1) % len(models)]


def connection_tested(state: GameState, probe: ProbeResult, models: Tuple[str, ...] = ()) -> GameState:
    st = state.api_stats
    stats = replace(
        st,
        connected=probe.ok,
        total_calls=st.total_calls + 1,
        successful_calls=st.successful_calls + (1 if probe.ok else 0),
        failed_calls=st.failed_calls + (0 if probe.ok else 1),
        total_tokens_used=st.total_tokens_used + (probe.tokens if probe.ok else 0),
        current_model=probe.model if probe.ok else st.current_model,
        last_error=None if probe.ok else probe.error,
    )
    s = replace(state, api_stats=stats, last_error=None if probe.ok else probe.error)
    if not probe.ok and probe.no_endpoints:
        s = replace(s, selected_model=next_model(state.selected_model, tuple(models)))
    return s


def reduce(state: Optional[GameState], action: Action, *, rng: random.Random, config: EngineConfig) -> GameState:
    if isinstance(action, StartNewGame):
        return start_new_game(action, rng=rng)
    if state is None:
        raise ValueError("No game in progress")
    if isinstance(action, Continue):
        return continue_journey(state, rng=rng, config=config)
    if isinstance(action, RequestEvent):
        return request_event(state)
    if isinstance(action, ChooseOption):
        return choose_option(state, action.index, rng=rng)
    if isinstance(action, BuyItem):
        return buy_item(state, action.item_id, rng=rng)
    if isinstance(action, EventResolved):
        return event_resolved(state, action.result)
    if isinstance(action, ConnectionTested):
        return connection_tested(state, action.probe, action.models)
    raise ValueError(f"Unknown action: {action!r}")
