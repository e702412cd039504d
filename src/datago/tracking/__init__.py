"""
Client-side tracking
Dead-reckoning position tracker, field-of-view projection and throw targeting
"""

from .position_tracker import (
    PositionSnapshot,
    PositionTracker,
    SensorBackedTracker,
    StaticFallbackTracker,
    TrackerConfig,
    TrackerState,
    create_tracker,
)
from .fov_projector import FOVConfig, FOVProjector, ProjectedObject, ScreenPosition, WorldObject

__all__ = [
    'PositionSnapshot',
    'PositionTracker',
    'SensorBackedTracker',
    'StaticFallbackTracker',
    'TrackerConfig',
    'TrackerState',
    'create_tracker',
    'FOVConfig',
    'FOVProjector',
    'ProjectedObject',
    'ScreenPosition',
    'WorldObject',
]
