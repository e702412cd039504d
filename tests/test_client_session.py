import pytest

from conftest import FixedRandom
from datago.models.events import (
    GameStateEvent,
    SpawnCapturedEvent,
    SpawnDiscoveredEvent,
    SpawnRemovedEvent,
)
from datago.tracking.client_session import ClientSession
from datago.tracking.fov_projector import FOVProjector
from datago.tracking.position_tracker import SensorBackedTracker
from datago.tracking.sensors import MotionSample, OrientationSample

AHEAD = {'id': 1, 'name': 'IQU', 'rarity': 'common', 'position': {'x': 2.5, 'y': 0.5}}
BEHIND = {'id': 2, 'name': 'Bob', 'rarity': 'rare', 'position': {'x': 2.5, 'y': 4.5}}


def _game_state(spawns=()):
    return {
        'type': 'game-state',
        'player': {'id': 'me', 'name': 'Ana', 'points': 0, 'streak': 0, 'multiplier': 1.0},
        'spawns': list(spawns),
        'roomConfig': {'width': 5.0, 'height': 5.0},
        'totalPlayers': 1
    }


def _captured(spawn_id, player_id, points):
    return {
        'type': 'spawn-captured',
        'spawnId': spawn_id,
        'playerId': player_id,
        'playerName': 'Someone',
        'newPoints': points,
        'pointsEarned': points,
        'multiplier': 1.0,
        'streak': 1,
        'objectId': 'common/IQU',
        'objectName': 'IQU',
        'objectRarity': 'common'
    }


@pytest.fixture
def session():
    tracker = SensorBackedTracker(5.0, 5.0)
    projector = FOVProjector(1000, 800, rng=FixedRandom(0.5))
    return ClientSession(tracker, projector)


def _activate(session, heading=0.0):
    session.tracker.handle_orientation(OrientationSample(timestamp=0.0, alpha=heading))


def test_moves_are_buffered_until_connected(session):
    sent = []
    _activate(session)

    assert session.pending_move == {'type': 'move', 'x': 2.5, 'y': 2.5}

    session.set_sender(sent.append)
    session.set_connected(True)

    assert sent == [{'type': 'move', 'x': 2.5, 'y': 2.5}]
    assert session.pending_move is None


def test_only_latest_move_is_kept_offline(session):
    sent = []
    _activate(session)
    session.tracker.handle_motion(MotionSample(timestamp=1000.0, acceleration=[0.0, 0.0, 10.0]))

    session.set_sender(sent.append)
    session.set_connected(True)

    assert len(sent) == 1
    assert sent[0]['y'] == pytest.approx(2.1)


def test_moves_sent_immediately_when_connected(session):
    sent = []
    session.set_sender(sent.append)
    session.set_connected(True)

    _activate(session)
    session.tracker.handle_motion(MotionSample(timestamp=1000.0, acceleration=[0.0, 0.0, 10.0]))

    assert [m['type'] for m in sent] == ['move', 'move']
    assert session.pending_move is None


def test_join_and_capture_requests(session):
    join = session.build_join('Ana')
    assert join == {'type': 'join', 'name': 'Ana', 'position': {'x': 2.5, 'y': 2.5}}

    request = session.build_capture_request(spawn_id=3)
    assert request['type'] == 'attempt-capture'
    assert request['spawnId'] == 3
    assert request['captureMethod'] == 'proximity'

    assert 'spawnId' not in session.build_capture_request()
    assert session.attempt_capture(3) is False


def test_typed_handlers_receive_parsed_events(session):
    received = []
    session.on(GameStateEvent, received.append)
    session.on(SpawnDiscoveredEvent, received.append)

    session.handle_event(_game_state([AHEAD]))
    session.handle_event({'type': 'spawn-discovered', 'spawn': BEHIND, 'distance': 2.0})
    session.handle_event({'type': 'spawn-removed', 'spawnId': 1})

    assert [type(e) for e in received] == [GameStateEvent, SpawnDiscoveredEvent]
    assert session.player_id == 'me'
    assert session.room_config == {'width': 5.0, 'height': 5.0}
    assert set(session.known_spawns) == {2}


def test_hidden_spawn_is_forgotten(session):
    session.handle_event(_game_state([AHEAD, BEHIND]))

    session.handle_event({'type': 'spawn-hidden', 'spawnId': 2, 'distance': 4.1})

    assert set(session.known_spawns) == {1}


def test_own_capture_updates_score(session):
    session.handle_event(_game_state([AHEAD]))

    session.handle_event(_captured(1, 'me', 10))

    assert session.known_spawns == {}
    assert session.player['points'] == 10
    assert session.player['streak'] == 1


def test_other_players_capture_only_removes_spawn(session):
    session.handle_event(_game_state([AHEAD]))

    session.handle_event(_captured(1, 'someone-else', 25))

    assert session.known_spawns == {}
    assert session.player['points'] == 0


def test_server_corrections_and_failures_are_tracked(session):
    session.handle_event({'type': 'position-updated', 'position': {'x': 5.0, 'y': 0.0}})
    session.handle_event({'type': 'capture-failed', 'reason': 'too-far', 'distance': 2.5, 'required': 2.2})

    assert (session.server_position.x, session.server_position.y) == (5.0, 0.0)
    assert session.last_capture_failure.reason == 'too-far'


def test_invalid_event_is_dropped(session):
    calls = []
    session.on(SpawnRemovedEvent, calls.append)

    assert session.handle_event({'type': 'spawn-removed'}) is None
    assert session.handle_event({'type': 'nonsense'}) is None
    assert calls == []


def test_visible_objects_follow_heading(session):
    _activate(session, heading=0.0)
    session.handle_event(_game_state([AHEAD, BEHIND]))

    visible = session.visible_objects()
    assert [v.object_id for v in visible] == [1]
    assert visible[0].payload['name'] == 'IQU'

    session.tracker.handle_orientation(OrientationSample(timestamp=1000.0, alpha=180.0))
    # Smoothing needs a few readings to swing round
    for t in range(1050, 3000, 50):
        session.tracker.handle_orientation(OrientationSample(timestamp=float(t), alpha=180.0))

    assert [v.object_id for v in session.visible_objects()] == [2]


def test_not_ready_tracker_sees_nothing(session):
    session.handle_event(_game_state([AHEAD]))

    assert session.visible_objects() == []


def test_throw_sends_capture_request(session):
    sent = []
    session.set_sender(sent.append)
    session.set_connected(True)
    _activate(session)
    session.handle_event(_game_state([AHEAD]))
    target = session.visible_objects()[0].screen_position

    request = session.throw(target.x + 10, target.y)

    assert request['captureMethod'] == 'throw'
    assert request['spawnId'] == 1
    assert request['throwAccuracy'] == 'perfect'
    assert sent[-1] == request


def test_missed_throw_sends_nothing(session):
    sent = []
    session.set_sender(sent.append)
    session.set_connected(True)
    _activate(session)
    session.handle_event(_game_state([AHEAD]))
    before = len(sent)

    assert session.throw(0, 0) is None
    assert len(sent) == before
