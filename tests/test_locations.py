import random

from core.locations import (
    AVERAGE_LEG_MILES,
    BASE_LOCATIONS,
    LEG_RANGE,
    force_arrival,
    generate_locations,
    initial_leg,
    move_backward,
    move_forward,
)
from core.state import CITY, DESTINATION, HOSTILE


def test_generate_locations_structure():
    for seed in range(20):
        locs = generate_locations(random.Random(seed))
        assert locs[0] == BASE_LOCATIONS[0]
        assert locs[-1].name == DESTINATION and locs[-1].kind == CITY
        n_base = len(BASE_LOCATIONS)
        assert n_base + (n_base - 1) * 1 <= len(locs) <= n_base + (n_base - 1) * 4
        base_names = {b.name for b in BASE_LOCATIONS}
        for loc in locs:
            if loc.name not in base_names:
                assert loc.kind == HOSTILE


def test_fixed_city_waypoints():
    cities = [b.name for b in BASE_LOCATIONS if b.kind == CITY]
    assert len(BASE_LOCATIONS) == 15
    assert len(cities) == 3
    assert "Portland" in cities[0] and "Seattle" in cities[1]


def test_initial_leg_range():
    rng = random.Random(3)
    assert all(30 <= initial_leg(rng) <= 80 for _ in range(200))


def test_move_forward_crosses_one_waypoint():
    index, to_next, total = move_forward((2, 40, 100), 50, 10, random.Random(1))
    assert index == 3
    assert LEG_RANGE[0] <= to_next <= LEG_RANGE[1]
    assert total == 150


def test_move_forward_never_skips_more_than_one_stop():
    index, _, total = move_forward((0, 10, 0), 150, 10, random.Random(1))
    assert index == 1
    assert total == 150


def test_move_forward_short_of_waypoint():
    assert move_forward((2, 40, 100), 15, 10, random.Random(1)) == (2, 25, 115)


def test_move_forward_stops_at_destination():
    assert move_forward((10, 5, 700), 30, 10, random.Random(1)) == (10, 0, 730)


def test_move_forward_zero_miles_is_noop():
    assert move_forward((4, 33, 200), 0, 10, random.Random(1)) == (4, 33, 200)


def test_move_backward_walks_back_average_legs():
    index, to_next, total = move_backward((3, 10, 300), 100)
    assert (index, to_next, total) == (2, 110 - AVERAGE_LEG_MILES, 200)


def test_move_backward_floors_at_start():
    assert move_backward((0, 20, 30), 150) == (0, 170, 0)


def test_force_arrival():
    assert force_arrival((4, 33, 200), 20) == (20, 0, 200)
