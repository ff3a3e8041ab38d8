import json
import random
from dataclasses import replace

from content.fallback import FALLBACK_EVENTS, JAIL_EVENTS
from content.generator import AI, FALLBACK, EventGenerator, candidate_models
from content.providers.base import ModelInfo
from core.state import JAILED, Immobility
from engine.sim_runner import FAKE_MODEL, FailingProvider, FakeProvider

from conftest import make_state

GOOD = json.dumps(
    {
        "title": "Drone Census",
        "description": "A drone asks how many of you are thinking right now.",
        "choices": [
            {"text": "Answer zero", "effect": {"morale": -5, "message": "The drone approves."}},
            {"text": "Swat it", "effect": {"health": -10, "money": -999999, "message": "Property damage."}},
        ],
    }
)


def test_candidate_models_prefers_healthy_selected():
    models = [ModelInfo("a"), ModelInfo("b", healthy=False), ModelInfo("c"), ModelInfo("d")]
    assert candidate_models("c", models, 3) == ["c", "a", "d"]
    assert candidate_models("b", models, 3) == ["a", "c", "d"]
    assert candidate_models("a", models, 2) == ["a", "c"]


def test_candidate_models_without_directory():
    assert candidate_models("x", [], 3) == ["x"]
    assert candidate_models("", [], 3) == []


def test_first_valid_response_wins():
    provider = FakeProvider(script=[f"```json\n{GOOD}\n```"])
    gen = EventGenerator(provider)
    res = gen.generate_event(make_state(selected_model=FAKE_MODEL), [ModelInfo(FAKE_MODEL)])
    assert res.source == AI
    assert res.model == FAKE_MODEL
    assert res.event.title == "Drone Census"
    assert res.event.choices[1].effect.money == -1000
    assert res.usage["total_tokens"] == 150
    assert res.attempts == 1 and res.failures == 0


def test_bad_output_moves_to_next_candidate():
    provider = FakeProvider(script=["I am a teapot", GOOD])
    models = [ModelInfo("m1"), ModelInfo("m2"), ModelInfo("m3")]
    res = EventGenerator(provider).generate_event(make_state(selected_model="m1"), models)
    assert res.source == AI
    assert res.model == "m2"
    assert provider.calls == ["m1", "m2"]
    assert res.attempts == 2 and res.failures == 1


def test_all_failures_fall_back_without_raising():
    provider = FailingProvider()
    models = [ModelInfo(f"m{i}") for i in range(5)]
    res = EventGenerator(provider, max_candidates=3).generate_event(make_state(selected_model="m0"), models, rng=random.Random(1))
    assert res.source == FALLBACK
    assert provider.calls == ["m0", "m1", "m2"]
    assert res.failures == 3
    assert "503" in res.error
    assert res.event.title in {ev.title for ev in FALLBACK_EVENTS}


def test_no_provider_or_no_models_falls_back():
    res = EventGenerator(None).generate_event(make_state(selected_model="x"))
    assert res.source == FALLBACK and res.attempts == 0
    res = EventGenerator(FakeProvider()).generate_event(make_state())
    assert res.source == FALLBACK


def test_jailed_state_uses_jail_pool():
    s = replace(make_state(day=8), immobility=Immobility(JAILED, 1))
    res = EventGenerator(None).generate_event(s, rng=random.Random(2))
    assert res.event.title in {ev.title for ev in JAIL_EVENTS}


def test_custom_fallback_pool():
    pool = (FALLBACK_EVENTS[1],)
    res = EventGenerator(None, fallback_pool=pool).generate_event(make_state())
    assert res.event.title == FALLBACK_EVENTS[1].title
