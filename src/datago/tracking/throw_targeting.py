"""
Throw Targeting
Turns a screen tap into a graded capture attempt on the nearest projected object
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from ..utils.geometry import Position
from .fov_projector import ProjectedObject

logger = logging.getLogger(__name__)


class HitGrade(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    OKAY = "okay"
    MISS = "miss"


@dataclass
class ThrowConfig:
    """Tap accuracy radii in px and the score multiplier per grade"""
    perfect_radius: float = 50.0
    good_radius: float = 100.0
    okay_radius: float = 150.0
    max_range: float = 200.0
    multipliers: Dict[HitGrade, float] = field(default_factory=lambda: {
        HitGrade.PERFECT: 1.5,
        HitGrade.GOOD: 1.0,
        HitGrade.OKAY: 0.7,
    })

    def __post_init__(self):
        if not self.perfect_radius <= self.good_radius <= self.okay_radius <= self.max_range:
            raise ValueError("Accuracy radii must be increasing and within max_range")


@dataclass
class ThrowResult:
    success: bool
    reason: Optional[str] = None
    target: Optional[ProjectedObject] = None
    grade: HitGrade = HitGrade.MISS
    multiplier: float = 0.0
    screen_distance: Optional[float] = None

    def to_capture_request(self, player_position: Position) -> Optional[Dict[str, Any]]:
        """attempt-capture message for a hit; None for a miss"""
        if not self.success or self.target is None:
            return None

        return {
            'type': 'attempt-capture',
            'spawnId': self.target.object_id,
            'playerPosition': player_position.to_dict(),
            'captureMethod': 'throw',
            'throwAccuracy': self.grade.value,
            'throwMultiplier': self.multiplier
        }


class ThrowTargeting:
    def __init__(self, config: Optional[ThrowConfig] = None):
        self.config = config or ThrowConfig()

    def find_closest_target(self,
                            tap_x: float,
                            tap_y: float,
                            targets: Sequence[ProjectedObject]) -> Optional[Tuple[ProjectedObject, float]]:
        closest = None
        closest_distance = math.inf

        for target in targets:
            screen = target.screen_position
            distance = math.hypot(tap_x - screen.x, tap_y - screen.y)
            if distance < closest_distance and distance <= self.config.max_range:
                closest = target
                closest_distance = distance

        if closest is None:
            return None
        return closest, closest_distance

    def determine_hit_type(self, screen_distance: float) -> HitGrade:
        if screen_distance <= self.config.perfect_radius:
            return HitGrade.PERFECT
        if screen_distance <= self.config.good_radius:
            return HitGrade.GOOD
        if screen_distance <= self.config.okay_radius:
            return HitGrade.OKAY
        return HitGrade.MISS

    def attempt_throw(self, tap_x: float, tap_y: float, targets: Sequence[ProjectedObject]) -> ThrowResult:
        if not targets:
            return ThrowResult(success=False, reason='no-targets')

        found = self.find_closest_target(tap_x, tap_y, targets)
        if found is None:
            return ThrowResult(success=False, reason='no-target-in-range')

        target, screen_distance = found
        grade = self.determine_hit_type(screen_distance)

        if grade == HitGrade.MISS:
            logger.info(f"❌ Throw missed {target.object_id} by {screen_distance:.0f}px")
            return ThrowResult(success=False, reason='miss', target=target, screen_distance=screen_distance)

        multiplier = self.config.multipliers[grade]
        logger.info(f"🎯 {grade.value.upper()} hit on {target.object_id} ({multiplier}x)")

        return ThrowResult(
            success=True,
            target=target,
            grade=grade,
            multiplier=multiplier,
            screen_distance=screen_distance
        )
