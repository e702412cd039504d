import itertools
import random

import pytest

from conftest import FixedRandom, make_spawn
from datago.models.game import DEFAULT_RARITY_TIERS, RoomConfig, ZoneConfig
from datago.server.game_state import GameStore
from datago.server.spawn_engine import RaritySelector, SpawnEngine, ZoneGrid
from datago.utils.geometry import Position, calculate_distance


def _engine(room=None, rng=None):
    room = room or RoomConfig(spawn_position_attempts=50)
    store = GameStore(room.zones.zone_count)
    return SpawnEngine(store, room, DEFAULT_RARITY_TIERS, rng=rng or random.Random(42), clock=lambda: 5000.0)


def test_zone_for_position():
    grid = ZoneGrid(RoomConfig())
    assert grid.zone_for_position(Position(0, 0)) == 0
    assert grid.zone_for_position(Position(3, 1)) == 1
    assert grid.zone_for_position(Position(1, 3)) == 2
    assert grid.zone_for_position(Position(4, 4)) == 3
    assert grid.zone_for_position(Position(5, 5)) == 3
    assert grid.zone_for_position(Position(2.5, 0)) == 1


def test_zone_bounds():
    grid = ZoneGrid(RoomConfig())
    assert grid.zone_bounds(3) == (2.5, 5.0, 2.5, 5.0)
    with pytest.raises(ValueError):
        grid.zone_bounds(4)


def test_generation_fills_each_zone_once():
    engine = _engine()

    created = [engine.generate_tick() for _ in range(4)]

    assert [spawn.zone for spawn in created] == [0, 1, 2, 3]
    engine.update_zone_stats()
    assert [engine.store.zone_stats[z].spawns for z in range(4)] == [1, 1, 1, 1]

    assert engine.generate_tick() is None
    assert engine.last_skip_reason == 'zones-full'


def test_initial_spawns_respect_spacing():
    engine = _engine()

    created = engine.generate_initial_spawns()

    assert len(created) == 4
    for a, b in itertools.combinations(created, 2):
        assert calculate_distance(a.position, b.position) >= engine.room.min_spawn_distance


def test_positions_stay_inside_zone_margin():
    engine = _engine()
    for _ in range(50):
        position = engine.generate_position_in_zone(3)
        assert 2.8 - 1e-9 <= position.x <= 4.7 + 1e-9
        assert 2.8 - 1e-9 <= position.y <= 4.7 + 1e-9


def test_cap_checked_before_anything_else():
    room = RoomConfig(max_simultaneous_spawns=2, spawn_position_attempts=50)
    engine = _engine(room)

    assert len(engine.generate_initial_spawns()) == 2
    assert engine.generate_tick() is None
    assert engine.last_skip_reason == 'cap'


def test_largest_deficit_ties_go_to_lowest_zone():
    room = RoomConfig(zones=ZoneConfig(cols=2, rows=2, spawns_per_zone=2))
    engine = _engine(room)

    assert engine.find_zone_needing_spawns() == 0

    make_spawn(engine.store, 1.0, 1.0)
    assert engine.find_zone_needing_spawns() == 1

    make_spawn(engine.store, 4.0, 1.0)
    make_spawn(engine.store, 1.0, 4.0)
    make_spawn(engine.store, 4.0, 4.0)
    # Every zone is at 1 of 2 again
    assert engine.find_zone_needing_spawns() == 0


def test_generation_skipped_when_no_free_position():
    room = RoomConfig(min_spawn_distance=100.0, spawn_position_attempts=3)
    engine = _engine(room)

    assert engine.generate_tick() is not None
    assert engine.generate_tick() is None
    assert engine.last_skip_reason == 'no-position'
    assert engine.store.active_spawn_count() == 1


def test_spawn_carries_tier_values_and_monotonic_ids():
    engine = _engine()
    spawns = engine.generate_initial_spawns()

    assert [s.id for s in spawns] == [1, 2, 3, 4]
    for spawn in spawns:
        tier = next(t for t in DEFAULT_RARITY_TIERS if t.name == spawn.rarity)
        assert spawn.points == tier.points
        assert spawn.capture_range == tier.capture_range
        assert spawn.despawn_time_ms == tier.despawn_time_ms
        assert spawn.created_at == 5000.0


def test_rarity_selection_uses_normalised_cumulative_weights():
    selector = RaritySelector(DEFAULT_RARITY_TIERS, FixedRandom(0.1, 0.6, 0.7, 0.95, 0.99999))

    assert [selector.select().name for _ in range(5)] == ['common', 'common', 'rare', 'epic', 'epic']
    assert selector.cumulative[-1] == pytest.approx(1.0)


def test_rarity_selector_rejects_empty_weights():
    with pytest.raises(ValueError):
        RaritySelector([], random.Random())
