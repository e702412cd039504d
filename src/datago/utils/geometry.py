"""
Room geometry helpers
Distances, bearings and heading arithmetic shared by server and client
"""

import math
from dataclasses import dataclass
from typing import Any, Dict


# Room y grows southward (the y=0 wall is north), so compass heading 0 faces -y.

@dataclass
class Position:
    """2D position in room coordinates (meters)"""
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y}

    @classmethod
    def from_any(cls, value: Any) -> "Position":
        """Build from a Position, a {'x','y'} mapping or an (x, y) pair"""
        if isinstance(value, Position):
            return cls(value.x, value.y)
        if isinstance(value, dict):
            return cls(float(value['x']), float(value['y']))
        x, y = value
        return cls(float(x), float(y))


def calculate_distance(a: Position, b: Position) -> float:
    """Euclidean distance between two room positions"""
    return math.hypot(a.x - b.x, a.y - b.y)


def normalize_heading(heading: float) -> float:
    """Wrap a heading in degrees into [0, 360)"""
    heading = heading % 360.0
    # -1e-17 % 360 rounds up to 360.0
    return 0.0 if heading >= 360.0 else heading


def get_angle_difference(angle1: float, angle2: float) -> float:
    """
    Signed shortest difference from angle1 to angle2 in degrees.

    Result lies in [-180, 180] and get_angle_difference(a, b) == -get_angle_difference(b, a)
    for headings in [0, 360).
    """
    diff = math.fmod(angle2 - angle1, 360.0)

    if diff > 180:
        diff -= 360
    if diff < -180:
        diff += 360

    return diff


def bearing(origin: Position, target: Position) -> float:
    """Compass bearing from origin to target in [0, 360), 0 = north (-y), 90 = east (+x)"""
    dx = target.x - origin.x
    dy = target.y - origin.y
    return normalize_heading(math.degrees(math.atan2(dx, -dy)))


def heading_vector(heading: float, length: float = 1.0) -> Position:
    """Displacement of `length` meters along a compass heading"""
    radians = math.radians(heading)
    return Position(length * math.sin(radians), -length * math.cos(radians))


def smooth_heading(current: float, new: float, smoothing_factor: float = 0.8) -> float:
    """Exponentially blend a new heading into the current one along the shorter arc"""
    if abs(new - current) > 180:
        if new > current:
            new -= 360
        else:
            new += 360

    return normalize_heading(current * smoothing_factor + new * (1 - smoothing_factor))


def clamp_position(position: Position, width: float, height: float, margin: float = 0.2) -> Position:
    """Clamp a position to the room rectangle inset by margin"""
    return Position(
        max(margin, min(width - margin, position.x)),
        max(margin, min(height - margin, position.y))
    )
