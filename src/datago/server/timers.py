"""
Timer management for the game service
Named, cancellable one-shot and interval timers on top of a pluggable scheduler
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def wall_clock_ms() -> float:
    """Current wall clock time in milliseconds"""
    return time.time() * 1000


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)


class TimerRegistry:
    """
    Owns every timer of a component by name.

    Scheduling a name that is already pending replaces the old timer, and
    cancel_all() guarantees no callback fires after a state transition.
    """

    def __init__(self, scheduler: Any):
        self.scheduler = scheduler
        self._handles: Dict[str, Any] = {}

    def schedule(self, name: str, delay_ms: float, callback: Callable[[], None]) -> None:
        """Run callback once after delay_ms"""
        self.cancel(name)

        def fire():
            self._handles.pop(name, None)
            self._run(name, callback)

        self._handles[name] = self.scheduler.call_later(delay_ms, fire)

    def schedule_interval(self, name: str, interval_ms: float, callback: Callable[[], None]) -> None:
        """Run callback every interval_ms until cancelled"""
        self.cancel(name)

        def fire():
            # Re-arm first so a cancel() inside the callback wins
            self._handles[name] = self.scheduler.call_later(interval_ms, fire)
            self._run(name, callback)

        self._handles[name] = self.scheduler.call_later(interval_ms, fire)

    def cancel(self, name: str) -> bool:
        """Cancel a pending timer; unknown names are a no-op"""
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer and return how many were cancelled"""
        count = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if count:
            logger.debug(f"Cancelled {count} timers")
        return count

    def is_pending(self, name: str) -> bool:
        return name in self._handles

    def pending(self) -> List[str]:
        return sorted(self._handles)

    def _run(self, name: str, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Timer {name} callback failed: {e}", exc_info=True)
