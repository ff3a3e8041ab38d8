import random

import pytest

from content.fallback import FALLBACK_EVENTS
from content.providers.base import FALLBACK_FREE_MODELS, ProbeResult
from engine.config import OFFLINE, EngineConfig
from engine.persistence import LocalSaveStore, SnapshotError
from engine.session import GameSession, make_provider
from engine.sim_runner import FAKE_MODEL, FailingProvider, FakeProvider


def _session(provider=None, store=None):
    session = GameSession(provider, EngineConfig(provider=OFFLINE, random_arrests=False), store=store, rng=random.Random(11))
    session.refresh_models()
    return session


def test_advance_with_ai_event():
    session = _session(FakeProvider())
    session.new_game()
    assert session.state.selected_model == FAKE_MODEL
    state = session.advance()
    assert state.day == 2
    assert not state.is_loading
    assert state.current_event is not None
    assert state.api_stats.prompts_via_ai == 1
    assert state.api_stats.connected


def test_failing_provider_falls_back_and_never_stays_loading():
    provider = FailingProvider()
    session = _session(provider)
    assert [m.id for m in session.models] == list(FALLBACK_FREE_MODELS)
    session.new_game()
    state = session.advance()
    assert not state.is_loading
    assert state.current_event.title in {ev.title for ev in FALLBACK_EVENTS}
    assert state.api_stats.prompts_hardcoded == 1
    assert state.last_error
    assert len(provider.calls) == 3


def test_generator_crash_is_converted_to_fallback(monkeypatch):
    session = _session(FakeProvider())
    session.new_game()

    def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(session.generator, "generate_event", boom)
    state = session.face_the_day()
    assert not state.is_loading
    assert state.current_event is not None
    assert "kaboom" in state.last_error


def test_duplicate_generation_is_suppressed():
    session = _session(FakeProvider())
    session.new_game()
    session._generating = True
    state = session.advance()
    assert state.is_loading
    session._generating = False
    state = session.run_pending_generation()
    assert not state.is_loading and state.current_event is not None


def test_choose_and_buy():
    session = _session(FakeProvider())
    session.new_game()
    session.advance()
    state = session.choose(0)
    assert state.current_event is None
    money = state.money
    state = session.buy("energy_drink")
    assert state.money < money
    with pytest.raises(ValueError):
        session.buy("hovercraft")


def test_offline_session_works():
    session = _session(None)
    assert session.models == []
    session.new_game()
    state = session.advance()
    assert state.current_event is not None
    probe = session.test_connection()
    assert not probe.ok
    assert not session.state.api_stats.connected


def test_undo_redo():
    session = _session(FakeProvider())
    first = session.new_game()
    assert not session.can_undo
    after = session.advance()
    assert session.can_undo
    assert session.undo() == first
    assert session.can_redo
    assert session.redo() == after
    session.undo()
    session.face_the_day()
    assert not session.can_redo


def test_export_import():
    session = _session(FakeProvider())
    session.new_game()
    session.advance()
    filename, blob = session.export()
    assert filename == "modern_trail_run_2days.json"
    other = _session(None)
    state = other.import_snapshot(blob)
    assert state.day == 2
    assert state == session.state
    with pytest.raises(SnapshotError):
        other.import_snapshot("nope")
    assert other.state == state


def test_save_and_load(tmp_path):
    store = LocalSaveStore(str(tmp_path / "slot.json"))
    session = _session(FakeProvider(), store=store)
    assert session.load() is None
    session.new_game()
    session.advance()
    assert session.save()
    fresh = _session(FakeProvider(), store=store)
    assert fresh.load() == session.state


def test_connection_rotates_model_when_no_endpoints():
    class NoEndpoints(FakeProvider):
        def probe(self, model):
            return ProbeResult(ok=False, model=model, error="No endpoints found for this model")

    session = _session(NoEndpoints(model_ids=("a", "b")))
    session.new_game("a")
    probe = session.test_connection()
    assert probe.no_endpoints
    assert session.state.selected_model == "b"


def test_make_provider():
    assert make_provider(EngineConfig(provider=OFFLINE)) is None
    assert make_provider(EngineConfig(api_key="")) is None
    provider = make_provider(EngineConfig(api_key="sk-x", timeout_seconds=2.0))
    assert provider.status().ok
    provider.close()
