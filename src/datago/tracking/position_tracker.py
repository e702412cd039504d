"""
Room Position Tracker
Step-detection dead reckoning from device motion and orientation
"""

import logging
import math
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np

from ..utils.geometry import (
    Position,
    clamp_position,
    heading_vector,
    normalize_heading,
    smooth_heading,
)
from .sensors import MotionSample, OrientationSample, Throttle

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CALIBRATING = "calibrating"
    ACTIVE = "active"


@dataclass
class TrackerConfig:
    """Step detection and correction parameters"""
    step_threshold: float = 2.0           # |a| above this counts as a step, m/s²
    step_length: float = 0.4              # meters per step
    min_step_interval_ms: float = 500.0
    max_acceleration: float = 20.0        # shakes above this are rejected
    calibration_max_acceleration: float = 15.0
    boundary_margin: float = 0.5
    clamp_margin: float = 0.2
    history_size: int = 5
    heading_smoothing: float = 0.8
    calibration_timeout_ms: float = 3000.0
    motion_interval_ms: float = 100.0
    orientation_interval_ms: float = 50.0
    drift_gain: float = 0.3
    drift_decay: float = 0.9
    drift_epsilon: float = 1e-3

    def __post_init__(self):
        if self.step_length <= 0:
            raise ValueError("step_length must be positive")
        if self.history_size < 1:
            raise ValueError("history_size must be at least 1")
        if not 0.0 <= self.heading_smoothing < 1.0:
            raise ValueError("heading_smoothing must be in [0, 1)")


@dataclass
class PositionSnapshot:
    """Smoothed tracker output delivered to callbacks"""
    x: float
    y: float
    heading: float
    timestamp: float
    steps: int

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'x': self.x,
            'y': self.y,
            'heading': self.heading,
            'timestamp': self.timestamp,
            'steps': self.steps
        }


PositionCallback = Callable[[PositionSnapshot], None]


class PositionTracker(ABC):
    """Common state and callback plumbing for both tracker variants"""

    def __init__(self, room_width: float, room_height: float, config: Optional[TrackerConfig] = None):
        if room_width <= 0 or room_height <= 0:
            raise ValueError("Room dimensions must be positive")

        self.room_width = room_width
        self.room_height = room_height
        self.config = config or TrackerConfig()

        self.state = TrackerState.UNINITIALIZED
        self.steps = 0
        self.boundary_hit_count = 0
        self._heading = 0.0
        self._raw = self.center
        self._history: Deque[np.ndarray] = deque(maxlen=self.config.history_size)
        self._callbacks: List[PositionCallback] = []

    @property
    def center(self) -> Position:
        return Position(self.room_width / 2, self.room_height / 2)

    @property
    def is_ready(self) -> bool:
        return self.state == TrackerState.ACTIVE

    @property
    def heading(self) -> float:
        return self._heading

    @property
    def raw_position(self) -> Position:
        return Position(self._raw.x, self._raw.y)

    @property
    def position(self) -> Position:
        """Mean of the recent raw positions"""
        if not self._history:
            return Position(self._raw.x, self._raw.y)
        mean = np.mean(np.stack(self._history), axis=0)
        return Position(float(mean[0]), float(mean[1]))

    def snapshot(self, now: float) -> PositionSnapshot:
        position = self.position
        return PositionSnapshot(x=position.x, y=position.y, heading=self._heading, timestamp=now, steps=self.steps)

    def on_position_update(self, callback: PositionCallback) -> PositionCallback:
        self._callbacks.append(callback)
        return callback

    def remove_callback(self, callback: PositionCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _emit(self, now: float) -> None:
        snapshot = self.snapshot(now)
        for callback in list(self._callbacks):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Position callback failed: {e}", exc_info=True)

    def _clear_position(self) -> None:
        self._raw = self.center
        self._history.clear()
        self.boundary_hit_count = 0

    def recalibrate(self, now: float) -> None:
        """Re-centre the player without changing tracker state"""
        self._clear_position()
        logger.info("Tracker recalibrated to room centre")
        self._emit(now)

    @abstractmethod
    def start(self, now: float) -> None:
        ...

    @abstractmethod
    def handle_motion(self, sample: Optional[MotionSample]) -> None:
        ...

    @abstractmethod
    def handle_orientation(self, sample: Optional[OrientationSample]) -> None:
        ...

    @abstractmethod
    def poll(self, now: float) -> None:
        ...

    @abstractmethod
    def reset(self, now: Optional[float] = None) -> None:
        ...


class SensorBackedTracker(PositionTracker):
    """
    Dead reckoning from step detection.

    Becomes active on the first usable heading or after the calibration
    timeout, whichever comes first. Each accepted step moves the player
    step_length meters along the current heading.
    """

    def __init__(self, room_width: float, room_height: float, config: Optional[TrackerConfig] = None):
        super().__init__(room_width, room_height, config)
        self.calibration_started_at: Optional[float] = None
        self.last_step_time = -math.inf
        self.heading_seeded = False
        self.drift_correction = np.zeros(2)
        self._motion_throttle = Throttle(self.config.motion_interval_ms)
        self._orientation_throttle = Throttle(self.config.orientation_interval_ms)

    def start(self, now: float) -> None:
        if self.state == TrackerState.UNINITIALIZED:
            self.state = TrackerState.CALIBRATING
            self.calibration_started_at = now
            logger.debug("Tracker calibrating")

    def poll(self, now: float) -> None:
        """Drive the calibration timeout when no samples arrive"""
        self.start(now)
        if self.calibration_started_at is None:
            self.calibration_started_at = now

        if (self.state == TrackerState.CALIBRATING
                and now - self.calibration_started_at >= self.config.calibration_timeout_ms):
            logger.info(f"Tracker auto-initialized after {self.config.calibration_timeout_ms:.0f}ms")
            self._activate(now)

    def _activate(self, now: float) -> None:
        self.state = TrackerState.ACTIVE
        self._emit(now)

    def handle_motion(self, sample: Optional[MotionSample]) -> None:
        if sample is None or not sample.is_valid:
            return

        now = sample.timestamp
        self.poll(now)

        if not self._motion_throttle.allow(now):
            return

        magnitude = sample.magnitude
        if magnitude > self.config.max_acceleration:
            return

        # Heavy movement delays initialisation
        if not self.is_ready and magnitude > self.config.calibration_max_acceleration:
            return

        if (self.is_ready
                and magnitude > self.config.step_threshold
                and now - self.last_step_time >= self.config.min_step_interval_ms):
            self.last_step_time = now
            self._on_step(now)

    def handle_orientation(self, sample: Optional[OrientationSample]) -> None:
        if sample is None or not sample.is_valid:
            return

        now = sample.timestamp
        self.poll(now)

        if not self._orientation_throttle.allow(now):
            return

        heading = sample.heading
        if not self.heading_seeded:
            self._heading = normalize_heading(heading)
            self.heading_seeded = True
            if not self.is_ready:
                logger.info(f"Tracker calibrated with heading {self._heading:.0f}°")
                self._activate(now)
            return

        self._heading = smooth_heading(self._heading, heading, self.config.heading_smoothing)

    def _on_step(self, now: float) -> None:
        delta = heading_vector(self._heading, self.config.step_length)
        candidate = Position(self._raw.x + delta.x, self._raw.y + delta.y)

        if self._near_boundary(candidate):
            self.boundary_hit_count += 1
            candidate = clamp_position(candidate, self.room_width, self.room_height, self.config.clamp_margin)
            self._accumulate_drift(candidate)

        candidate = clamp_position(
            self._apply_drift(candidate), self.room_width, self.room_height, self.config.clamp_margin
        )

        self._raw = candidate
        self._history.append(np.array([candidate.x, candidate.y]))
        self.steps += 1

        self._emit(now)

    def _near_boundary(self, position: Position) -> bool:
        margin = self.config.boundary_margin
        return (position.x <= margin
                or position.x >= self.room_width - margin
                or position.y <= margin
                or position.y >= self.room_height - margin)

    def _accumulate_drift(self, position: Position) -> None:
        toward_center = np.array([self.center.x - position.x, self.center.y - position.y])
        distance = np.linalg.norm(toward_center)
        if distance > 0:
            self.drift_correction += toward_center / distance * self.config.step_length

    def _apply_drift(self, position: Position) -> Position:
        if not self.drift_correction.any():
            return position

        corrected = Position(
            position.x + self.drift_correction[0] * self.config.drift_gain,
            position.y + self.drift_correction[1] * self.config.drift_gain
        )
        self.drift_correction *= self.config.drift_decay
        self.drift_correction[np.abs(self.drift_correction) < self.config.drift_epsilon] = 0.0
        return corrected

    def reset(self, now: Optional[float] = None) -> None:
        """Back to calibrating at the room centre with heading 0"""
        self._clear_position()
        self._heading = 0.0
        self.heading_seeded = False
        self.steps = 0
        self.last_step_time = -math.inf
        self.drift_correction = np.zeros(2)
        self._motion_throttle.reset()
        self._orientation_throttle.reset()
        self.state = TrackerState.CALIBRATING
        self.calibration_started_at = now
        logger.info("Tracker reset")


class StaticFallbackTracker(PositionTracker):
    """Used when motion sensors are unavailable: active at the room centre, ignores input"""

    def __init__(self, room_width: float, room_height: float, config: Optional[TrackerConfig] = None):
        super().__init__(room_width, room_height, config)
        self.state = TrackerState.ACTIVE

    def start(self, now: float) -> None:
        logger.info("Sensors unavailable, using static position at room centre")
        self._emit(now)

    def handle_motion(self, sample: Optional[MotionSample]) -> None:
        return None

    def handle_orientation(self, sample: Optional[OrientationSample]) -> None:
        return None

    def poll(self, now: float) -> None:
        return None

    def reset(self, now: Optional[float] = None) -> None:
        self._clear_position()
        self._heading = 0.0


def create_tracker(room_width: float,
                   room_height: float,
                   sensors_available: bool = True,
                   config: Optional[TrackerConfig] = None) -> PositionTracker:
    """Pick the tracker variant for the device's capabilities"""
    if sensors_available:
        return SensorBackedTracker(room_width, room_height, config)
    return StaticFallbackTracker(room_width, room_height, config)
