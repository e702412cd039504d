"""
Device sensor samples
Motion and orientation readings fed to the position tracker
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np


def _valid_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass
class MotionSample:
    """Accelerometer reading including gravity, m/s²"""
    timestamp: float          # ms
    acceleration: np.ndarray  # [x, y, z]

    def __post_init__(self):
        self.acceleration = np.asarray(self.acceleration, dtype=float)
        if self.acceleration.shape != (3,):
            raise ValueError("Acceleration must be 3D vector")

    @classmethod
    def from_event(cls, data: Optional[Dict[str, Any]], timestamp: float) -> Optional["MotionSample"]:
        """Build from a {'x','y','z'} mapping; None when any axis is missing"""
        if not data:
            return None
        try:
            return cls(timestamp=timestamp, acceleration=[data['x'], data['y'], data['z']])
        except (KeyError, TypeError, ValueError):
            return None

    @property
    def is_valid(self) -> bool:
        return _valid_timestamp(self.timestamp) and bool(np.all(np.isfinite(self.acceleration)))

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.acceleration))


@dataclass
class OrientationSample:
    """
    Device orientation reading in degrees.

    compass_heading is the platform's absolute compass value when it
    provides one and wins over alpha.
    """
    timestamp: float  # ms
    alpha: Optional[float] = None
    compass_heading: Optional[float] = None

    @property
    def heading(self) -> Optional[float]:
        for value in (self.compass_heading, self.alpha):
            if value is not None and isinstance(value, (int, float)) and math.isfinite(value):
                return float(value)
        return None

    @property
    def is_valid(self) -> bool:
        return _valid_timestamp(self.timestamp) and self.heading is not None


class Throttle:
    """Leading-edge throttle: lets a call through at most once per interval"""

    def __init__(self, interval_ms: float):
        self.interval_ms = interval_ms
        self.last_allowed: Optional[float] = None

    def allow(self, now: float) -> bool:
        if self.last_allowed is not None and now - self.last_allowed < self.interval_ms:
            return False
        self.last_allowed = now
        return True

    def reset(self):
        self.last_allowed = None
