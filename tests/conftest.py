import random

import pytest

from datago.models.game import DEFAULT_RARITY_TIERS, ProximityConfig, RoomConfig, Spawn
from datago.server.game_service import GameService
from datago.server.timers import TimerRegistry
from datago.utils.geometry import Position
from datago.utils.metrics import GameMetrics


class ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by advance(); doubles as the millisecond clock"""

    def __init__(self, start=1_000_000.0):
        self.now = start
        self.handles = []

    def clock(self):
        return self.now

    def call_later(self, delay_ms, callback):
        handle = ManualHandle(self.now + max(0.0, delay_ms), callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


class RecordingOutbox:
    def __init__(self):
        self.sent = []
        self.broadcasts = []

    def send(self, player_id, event):
        self.sent.append((player_id, event))

    def broadcast(self, event, exclude=None):
        self.broadcasts.append((event, set(exclude or ())))

    def sent_to(self, player_id, event_type=None):
        return [
            event for pid, event in self.sent
            if pid == player_id and (event_type is None or isinstance(event, event_type))
        ]

    def broadcast_of(self, event_type):
        return [event for event, _ in self.broadcasts if isinstance(event, event_type)]

    def clear(self):
        self.sent.clear()
        self.broadcasts.clear()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def outbox():
    return RecordingOutbox()


@pytest.fixture
def room():
    return RoomConfig()


@pytest.fixture
def proximity():
    return ProximityConfig()


@pytest.fixture
def service(room, proximity, outbox, scheduler):
    return GameService(
        room=room,
        proximity=proximity,
        outbox=outbox,
        timers=TimerRegistry(scheduler),
        clock=scheduler.clock,
        rng=random.Random(7),
        metrics=GameMetrics()
    )


class FixedRandom:
    """random.Random stand-in that replays the given values"""

    def __init__(self, *values):
        self.values = list(values)
        self.index = 0

    def random(self):
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value

    def uniform(self, a, b):
        return a + (b - a) * self.random()

    def choice(self, seq):
        return seq[0]


def make_spawn(store, x, y, rarity='common', created_at=0.0):
    """Put a spawn of the given rarity at (x, y) directly into the store"""
    tier = next(t for t in DEFAULT_RARITY_TIERS if t.name == rarity)
    obj = tier.objects[0]
    spawn = Spawn(
        id=store.next_spawn_id(),
        object_id=obj.object_id,
        name=obj.name,
        rarity=tier.name,
        position=Position(x, y),
        zone=0,
        points=tier.points,
        capture_range=tier.capture_range,
        despawn_time_ms=tier.despawn_time_ms,
        created_at=created_at,
        color=tier.color,
        image=obj.image
    )
    store.add_spawn(spawn)
    return spawn
