import asyncio

from conftest import ManualScheduler
from datago.server.timers import AsyncioScheduler, TimerRegistry


def test_one_shot_fires_once():
    scheduler = ManualScheduler()
    timers = TimerRegistry(scheduler)
    fired = []

    timers.schedule('ding', 100, lambda: fired.append(scheduler.now))
    scheduler.advance(99)
    assert fired == []

    scheduler.advance(1)
    scheduler.advance(1000)
    assert fired == [scheduler.now - 1000]
    assert not timers.is_pending('ding')


def test_rescheduling_a_name_replaces_it():
    scheduler = ManualScheduler()
    timers = TimerRegistry(scheduler)
    fired = []

    timers.schedule('t', 100, lambda: fired.append('first'))
    timers.schedule('t', 300, lambda: fired.append('second'))
    scheduler.advance(1000)

    assert fired == ['second']


def test_interval_repeats_until_cancelled():
    scheduler = ManualScheduler()
    timers = TimerRegistry(scheduler)
    ticks = []

    timers.schedule_interval('tick', 100, lambda: ticks.append(1))
    scheduler.advance(350)
    assert len(ticks) == 3

    assert timers.cancel('tick')
    scheduler.advance(1000)
    assert len(ticks) == 3
    assert not timers.cancel('tick')


def test_interval_can_cancel_itself():
    scheduler = ManualScheduler()
    timers = TimerRegistry(scheduler)
    ticks = []

    def tick():
        ticks.append(1)
        if len(ticks) == 2:
            timers.cancel('tick')

    timers.schedule_interval('tick', 100, tick)
    scheduler.advance(1000)

    assert len(ticks) == 2
    assert scheduler.pending() == []


def test_failing_callback_keeps_interval_alive():
    scheduler = ManualScheduler()
    timers = TimerRegistry(scheduler)
    calls = []

    def flaky():
        calls.append(1)
        raise RuntimeError("tick failed")

    timers.schedule_interval('flaky', 100, flaky)
    scheduler.advance(300)

    assert len(calls) == 3
    assert timers.is_pending('flaky')


def test_cancel_all():
    scheduler = ManualScheduler()
    timers = TimerRegistry(scheduler)
    timers.schedule('a', 100, lambda: None)
    timers.schedule('b', 100, lambda: None)
    timers.schedule_interval('c', 100, lambda: None)

    assert timers.pending() == ['a', 'b', 'c']
    assert timers.cancel_all() == 3
    assert timers.pending() == []
    assert scheduler.pending() == []


def test_asyncio_scheduler_uses_running_loop():
    fired = []

    async def scenario():
        timers = TimerRegistry(AsyncioScheduler())
        timers.schedule('soon', 10, lambda: fired.append('soon'))
        timers.schedule('later', 10_000, lambda: fired.append('later'))
        await asyncio.sleep(0.1)
        timers.cancel_all()

    asyncio.run(scenario())

    assert fired == ['soon']
