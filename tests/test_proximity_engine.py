import pytest

from conftest import RecordingOutbox, make_spawn
from datago.models.events import SpawnDiscoveredEvent, SpawnHiddenEvent, SpawnRemovedEvent
from datago.models.game import Player, ProximityConfig
from datago.server.game_state import GameStore
from datago.server.proximity_engine import ProximityEngine
from datago.utils.geometry import Position


@pytest.fixture
def world():
    store = GameStore(4)
    outbox = RecordingOutbox()
    engine = ProximityEngine(store, ProximityConfig(), outbox)
    store.add_player(Player(id='p1', name='Ana', position=Position(0.0, 0.0)))
    return store, engine, outbox


def _walk_to(store, engine, x, y, player_id='p1'):
    store.get_player(player_id).position = Position(x, y)
    engine.check_player(player_id)


def test_spawn_discovered_inside_discovery_range(world):
    store, engine, outbox = world
    spawn = make_spawn(store, 2.5, 0.0)

    engine.check_player('p1')

    events = outbox.sent_to('p1')
    assert len(events) == 1
    assert isinstance(events[0], SpawnDiscoveredEvent)
    assert events[0].spawn['id'] == spawn.id
    assert events[0].distance == pytest.approx(2.5)
    assert spawn.visible_to == {'p1'}
    assert store.get_player('p1').visible_spawns == {spawn.id}


def test_discovery_boundary_is_inclusive(world):
    store, engine, outbox = world
    make_spawn(store, 3.0, 0.0)

    engine.check_player('p1')

    assert len(outbox.sent_to('p1', SpawnDiscoveredEvent)) == 1


def test_hysteresis_band_does_not_flicker(world):
    store, engine, outbox = world
    spawn = make_spawn(store, 0.0, 0.0)

    _walk_to(store, engine, 2.0, 0.0)
    assert len(outbox.sent_to('p1', SpawnDiscoveredEvent)) == 1

    # Inside the band visibility is sticky
    for x in (3.5, 3.2, 3.9, 3.5):
        _walk_to(store, engine, x, 0.0)
    assert len(outbox.sent) == 1
    assert spawn.visible_to == {'p1'}

    _walk_to(store, engine, 4.0, 0.0)
    hidden = outbox.sent_to('p1', SpawnHiddenEvent)
    assert len(hidden) == 1
    assert hidden[0].spawn_id == spawn.id
    assert spawn.visible_to == set()

    # Coming back into the band is not enough to rediscover
    _walk_to(store, engine, 3.5, 0.0)
    assert len(outbox.sent) == 2

    _walk_to(store, engine, 3.0, 0.0)
    assert len(outbox.sent_to('p1', SpawnDiscoveredEvent)) == 2


def test_repeated_checks_emit_once(world):
    store, engine, outbox = world
    make_spawn(store, 1.0, 1.0)

    engine.check_all()
    engine.check_all()
    engine.check_player('p1')

    assert len(outbox.sent) == 1


def test_far_spawn_stays_hidden(world):
    store, engine, outbox = world
    make_spawn(store, 4.5, 4.5)

    engine.check_all()

    assert outbox.sent == []


def test_removal_notifies_only_viewers(world):
    store, engine, outbox = world
    store.add_player(Player(id='p2', name='Ben', position=Position(5.0, 5.0)))
    store.add_player(Player(id='p0', name='Cy', position=Position(0.5, 0.0)))
    spawn = make_spawn(store, 1.0, 0.0)
    engine.check_all()
    outbox.clear()

    store.pop_spawn(spawn.id)
    engine.handle_spawn_removed(spawn)

    assert [(pid, type(e)) for pid, e in outbox.sent] == [
        ('p0', SpawnRemovedEvent),
        ('p1', SpawnRemovedEvent),
    ]
    assert spawn.visible_to == set()
    assert store.get_player('p1').visible_spawns == set()
    assert store.get_player('p0').visible_spawns == set()


def test_visible_spawns_for(world):
    store, engine, _ = world
    near = make_spawn(store, 1.0, 0.0)
    make_spawn(store, 4.8, 4.8)

    engine.check_player('p1')

    assert engine.visible_spawns_for('p1') == [near]
    assert engine.visible_spawns_for('ghost') == []


def test_forget_player_clears_visibility(world):
    store, engine, outbox = world
    spawn = make_spawn(store, 1.0, 0.0)
    engine.check_player('p1')

    engine.forget_player('p1')

    assert spawn.visible_to == set()
    assert store.get_player('p1').visible_spawns == set()


def test_unknown_player_is_ignored(world):
    store, engine, outbox = world
    make_spawn(store, 1.0, 0.0)

    engine.check_player('nobody')

    assert outbox.sent == []
