import random
from dataclasses import replace

import pytest

from content.generator import AI, FALLBACK, GenerationResult
from content.providers.base import ProbeResult
from core.state import DESTINATION, FREE, JAILED, STUCK, Immobility
from engine.config import EngineConfig
from engine.reducer import (
    BuyItem,
    ChooseOption,
    ConnectionTested,
    Continue,
    EventResolved,
    RequestEvent,
    StartNewGame,
    reduce,
)

from conftest import FixedRandom, make_event, make_state, with_event


def _no_arrest_config():
    return EngineConfig(random_arrests=False)


def test_new_game_defaults(config):
    s = reduce(None, StartNewGame("some/model:free", "hard"), rng=random.Random(4), config=config)
    assert (s.day, s.health, s.morale, s.supplies, s.money) == (1, 100, 75, 80, 500)
    assert [m.name for m in s.party] == ["Alex", "Jordan", "Sam"]
    assert 30 <= s.distance_to_next <= 80
    assert s.locations[-1].name == DESTINATION
    assert s.current_location_index == 0
    assert s.immobility.status == FREE
    assert s.current_event is None and not s.is_loading
    assert s.selected_model == "some/model:free"
    assert s.difficulty == "hard"
    assert s.started_at


def test_unknown_difficulty_resolves_to_normal(config):
    s = reduce(None, StartNewGame("", "nightmare"), rng=random.Random(4), config=config)
    assert s.difficulty == "normal"


def test_travel_tick(config):
    s = make_state(distance_to_next=50)
    out = reduce(s, Continue(), rng=FixedRandom(0.99, "low"), config=config)
    # 15 + 0 + 100//20 + 80//25
    assert out.total_distance == 23
    assert out.distance_to_next == 27
    assert (out.supplies, out.health, out.morale) == (72, 98, 72)
    assert all(m.health == 98 and m.morale == 72 for m in out.party)
    assert out.day == 2
    assert out.is_loading


def test_hard_mode_scales_attrition(config):
    s = make_state(difficulty="hard")
    out = reduce(s, Continue(), rng=FixedRandom(0.99, "high"), config=config)
    assert out.supplies == 80 - round(17 * 1.3)
    assert out.health == 100 - round(6 * 1.3)


def test_travel_reaching_a_waypoint_is_logged(config):
    s = make_state(distance_to_next=10)
    out = reduce(s, Continue(), rng=FixedRandom(0.99), config=config)
    assert out.current_location_index == 1
    assert out.game_log[-1].event == "Arrival"


def test_continue_is_ignored_when_busy(config):
    s = with_event(make_state(), {"health": -5})
    assert reduce(s, Continue(), rng=FixedRandom(), config=config) is s
    loading = replace(make_state(), is_loading=True)
    assert reduce(loading, Continue(), rng=FixedRandom(), config=config) is loading
    dead = make_state(health=0)
    assert reduce(dead, Continue(), rng=FixedRandom(), config=config) is dead


def test_random_arrest(config):
    s = make_state(day=10)
    out = reduce(s, Continue(), rng=FixedRandom(0.0), config=config)
    assert out.jailed
    assert out.game_log[-1].event == "Random Checkpoint"
    out = reduce(s, Continue(), rng=FixedRandom(0.0), config=_no_arrest_config())
    assert not out.jailed


def test_request_event_keeps_the_clock(config):
    s = make_state(day=5)
    out = reduce(s, RequestEvent(), rng=FixedRandom(), config=config)
    assert out.is_loading and out.day == 5 and out.total_distance == 0


def test_choice_applies_and_logs(config):
    s = with_event(make_state(money=500), {"money": -1000, "morale": -5, "message": "Fined."})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.money == 0
    assert out.morale == 70
    assert out.current_event is None
    entry = out.game_log[-1]
    assert entry.event == "Test Event"
    assert entry.result == "Fined. - Morale -5% • Money -$1000"


def test_choice_without_message_uses_default(config):
    s = with_event(make_state(), {})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.game_log[-1].result == "You made your choice."


def test_choice_guards(config):
    s = make_state()
    assert reduce(s, ChooseOption(0), rng=FixedRandom(), config=config) is s
    with pytest.raises(ValueError):
        reduce(with_event(s, {}), ChooseOption(5), rng=FixedRandom(), config=config)


def test_choice_miles_advance_one_waypoint(config):
    s = with_event(make_state(distance_to_next=40), {"miles": 50})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.current_location_index == 1
    assert 40 <= out.distance_to_next <= 100
    assert out.total_distance == 50


def test_lose_overrides_health_and_skips_cascade(config):
    s = with_event(make_state(health=60), {"health": 50, "endGame": "lose"}, text="Resist with a bribe")
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.0), config=config)
    assert out.health == 0
    assert out.outcome == "defeat"
    assert out.current_event is None


def test_win_forces_arrival(config):
    s = with_event(make_state(), {"endGame": "win"})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.current_location.name == DESTINATION
    assert out.distance_to_next == 0
    assert out.outcome == "victory"


def test_party_member_loss_removes_one(config):
    s = with_event(make_state(), {"partyMemberLoss": True})
    out = reduce(s, ChooseOption(0), rng=random.Random(3), config=config)
    assert len(out.party) == 2


def test_losing_the_last_member_is_defeat(config):
    s = with_event(make_state(party=make_state().party[:1]), {"partyMemberLoss": True})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.party == ()
    assert out.is_loss


def test_early_jail_is_suppressed(config):
    s = with_event(make_state(day=2), {"sendToJail": True})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.immobility.status == FREE


def test_jail_on_day_ten_releases_after_five_ticks(config):
    s = with_event(make_state(day=10), {"sendToJail": True, "message": "Arrested."}, text="Comply")
    rng = FixedRandom(0.99)
    s = reduce(s, ChooseOption(0), rng=rng, config=config)
    assert s.immobility == Immobility(JAILED, 0)
    start_miles = s.total_distance
    for tick in range(1, 5):
        s = replace(reduce(s, Continue(), rng=rng, config=config), is_loading=False)
        assert s.immobility == Immobility(JAILED, tick)
    s = replace(reduce(s, Continue(), rng=rng, config=config), is_loading=False)
    assert s.immobility.status == FREE
    assert s.day == 15
    assert s.total_distance == start_miles
    assert "Released" in s.game_log[-1].result


def test_stuck_ticks_do_not_travel(config):
    s = with_event(make_state(day=5), {"stuckDays": 2})
    s = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert s.immobility == Immobility(STUCK, 2)
    s = replace(reduce(s, Continue(), rng=FixedRandom(0.99), config=config), is_loading=False)
    assert s.immobility == Immobility(STUCK, 1)
    assert s.total_distance == 0 and s.supplies == 80
    s = replace(reduce(s, Continue(), rng=FixedRandom(0.99), config=config), is_loading=False)
    assert s.immobility.status == FREE
    assert s.day == 7


@pytest.mark.parametrize("immobility", [Immobility(JAILED, 1), Immobility(STUCK, 2)])
def test_face_the_day_is_refused_while_immobile(config, immobility):
    s = make_state(day=10, immobility=immobility)
    assert reduce(s, RequestEvent(), rng=FixedRandom(), config=config) is s


@pytest.mark.parametrize("immobility", [Immobility(JAILED, 1), Immobility(STUCK, 2)])
def test_choices_do_not_move_an_immobile_party(config, immobility):
    s = make_state(day=10, distance_to_next=40, total_distance=100, immobility=immobility)
    s = with_event(s, {"miles": 150, "milesBack": 20, "morale": -5})
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.99), config=config)
    assert out.total_distance == 100
    assert out.distance_to_next == 40
    assert out.current_location_index == 0
    assert out.immobility == immobility
    assert out.morale == 70


def test_terminal_state_refuses_choices(config):
    s = with_event(make_state(health=0), {"miles": 50})
    assert reduce(s, ChooseOption(0), rng=FixedRandom(), config=config) is s


@pytest.mark.parametrize(
    "health, supplies, text, expected",
    [
        (20, 80, "Walk on", "Medical Emergency"),
        (80, 10, "Walk on", "Desperate Foraging"),
        (80, 80, "Offer a bribe", "The Bribe Backfires"),
        (80, 80, "Steal a map", "Wanted Poster"),
        (80, 80, "RESIST!", "Crackdown"),
    ],
)
def test_cascade_triggers(config, health, supplies, text, expected):
    s = with_event(make_state(health=health, supplies=supplies), {}, text=text)
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.0), config=config)
    assert out.current_event is not None
    assert out.current_event.title == expected


def test_cascade_first_match_wins(config):
    # low health is evaluated before the bribe keyword
    s = with_event(make_state(health=20), {}, text="Offer a bribe")
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.25), config=config)
    assert out.current_event.title == "Medical Emergency"
    out = reduce(s, ChooseOption(0), rng=FixedRandom(0.5), config=config)
    assert out.current_event is None


def test_buy_item(config):
    s = make_state(money=500, supplies=50)
    out = reduce(s, BuyItem("supplies"), rng=FixedRandom(pick="low"), config=config)
    assert out.money == 500 - 40
    assert out.supplies == 80
    assert out.game_log[-1].event == "Black Market Purchase"
    assert out.game_log[-1].result == "Bought Underground Rations for $40."


def test_buy_item_clamps_and_boosts_party(config):
    s = make_state(health=90)
    out = reduce(s, BuyItem("medicine"), rng=FixedRandom(pick="high"), config=config)
    assert out.health == 100
    assert out.money == 500 - 90
    assert all(m.health == 100 for m in out.party)


def test_buy_item_noops(config):
    poor = make_state(money=10)
    assert reduce(poor, BuyItem("supplies"), rng=FixedRandom(), config=config) is poor
    busy = with_event(make_state(), {})
    assert reduce(busy, BuyItem("supplies"), rng=FixedRandom(), config=config) is busy
    with pytest.raises(ValueError):
        reduce(make_state(), BuyItem("jetpack"), rng=FixedRandom(), config=config)


def test_event_resolved_ai(config):
    s = replace(make_state(selected_model="old"), is_loading=True)
    result = GenerationResult(
        event=make_event({}), source=AI, model="new", attempts=2, failures=1,
        usage={"prompt_tokens": 10, "completion_tokens": 5}, finished_at=1.0,
    )
    out = reduce(s, EventResolved(result), rng=FixedRandom(), config=config)
    assert out.current_event is not None and not out.is_loading
    assert out.selected_model == "new"
    st = out.api_stats
    assert st.connected
    assert (st.total_calls, st.successful_calls, st.failed_calls) == (2, 1, 1)
    assert (st.prompts_via_ai, st.prompts_hardcoded) == (1, 0)
    assert (st.tokens_prompt, st.tokens_completion, st.total_tokens_used) == (10, 5, 15)
    assert st.last_call_time is not None
    assert out.last_error is None


def test_event_resolved_fallback(config):
    s = replace(make_state(selected_model="old"), is_loading=True)
    result = GenerationResult(event=make_event({}), source=FALLBACK, attempts=3, failures=3, error="m: HTTP 503")
    out = reduce(s, EventResolved(result), rng=FixedRandom(), config=config)
    assert out.selected_model == "old"
    assert not out.api_stats.connected
    assert out.api_stats.prompts_hardcoded == 1
    assert out.api_stats.ai_ratio == 0.0
    assert "Using fallback event" in out.last_error


def test_event_resolved_ignored_when_not_loading(config):
    s = make_state()
    result = GenerationResult(event=make_event({}), source=FALLBACK)
    assert reduce(s, EventResolved(result), rng=FixedRandom(), config=config) is s


def test_connection_tested(config):
    s = make_state(selected_model="a")
    ok = reduce(s, ConnectionTested(ProbeResult(ok=True, model="a", reply="OK", tokens=5)), rng=FixedRandom(), config=config)
    assert ok.api_stats.connected and ok.api_stats.total_tokens_used == 5
    bad = reduce(
        s,
        ConnectionTested(ProbeResult(ok=False, model="a", error="No endpoints found for a."), ("a", "b", "c")),
        rng=FixedRandom(),
        config=config,
    )
    assert not bad.api_stats.connected
    assert bad.selected_model == "b"
    other = reduce(s, ConnectionTested(ProbeResult(ok=False, model="a", error="timeout"), ("a", "b")), rng=FixedRandom(), config=config)
    assert other.selected_model == "a"


def test_reduce_without_game_raises(config):
    with pytest.raises(ValueError):
        reduce(None, Continue(), rng=FixedRandom(), config=config)
