"""
Field-of-View Projector
Maps room positions to screen coordinates for the player's current view
"""

import dataclasses
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..utils.geometry import Position, bearing, calculate_distance, get_angle_difference

logger = logging.getLogger(__name__)


@dataclass
class FOVConfig:
    """Camera-like view parameters; angles in degrees, distances in meters, sizes in px"""
    horizontal_fov: float = 150.0
    vertical_fov: float = 130.0
    max_render_distance: float = 4.5
    min_render_distance: float = 0.2
    screen_margin: float = 30.0
    icon_radius: float = 40.0
    spiral_attempts: int = 36
    vertical_spread: float = 0.2   # share of screen height used for distance-based lift
    vertical_jitter: float = 0.25  # jitter as a share of the lift

    def __post_init__(self):
        if not 0 < self.horizontal_fov <= 360:
            raise ValueError("horizontal_fov must be in (0, 360]")
        if self.min_render_distance >= self.max_render_distance:
            raise ValueError("min_render_distance must be below max_render_distance")


@dataclass
class ScreenPosition:
    x: int
    y: int
    distance: float
    relative_angle: float


@dataclass
class OccupiedPosition:
    x: float
    y: float
    radius: float


@dataclass
class WorldObject:
    """Something placed in the room that may be drawn, keyed by a stable id"""
    object_id: Any
    position: Position
    payload: Any = None


@dataclass
class ProjectedObject:
    object_id: Any
    world_position: Position
    screen_position: ScreenPosition
    distance: float
    relative_angle: float
    payload: Any = None


class FOVProjector:
    """
    Projects world objects onto the screen for the player's position and heading.

    Objects straight ahead land at the horizontal centre; nearer objects are
    lifted further above the vertical centre. Icons of different objects are
    kept apart by a spiral search around their ideal position.
    """

    def __init__(self,
                 screen_width: float,
                 screen_height: float,
                 config: Optional[FOVConfig] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or FOVConfig()
        self.rng = rng or random.Random()

        self.screen_width = screen_width
        self.screen_height = screen_height

        self.player_position = Position(0.0, 0.0)
        self.player_heading = 0.0
        self.is_ready = False

        self.occupied: Dict[Any, OccupiedPosition] = {}

    # Screen

    def resize(self, width: float, height: float) -> None:
        self.screen_width = width
        self.screen_height = height

    @property
    def center_x(self) -> float:
        return self.screen_width / 2

    @property
    def center_y(self) -> float:
        return self.screen_height / 2

    def is_position_on_screen(self, x: float, y: float) -> bool:
        margin = self.config.screen_margin
        return (margin <= x <= self.screen_width - margin
                and margin <= y <= self.screen_height - margin)

    # Player

    def update_player(self, position: Position, heading: float) -> None:
        self.player_position = Position(position.x, position.y)
        self.player_heading = heading
        self.is_ready = True

    def configure(self, **changes) -> None:
        self.config = dataclasses.replace(self.config, **changes)

    # Projection

    def calculate_angle_to_object(self, position: Position) -> float:
        return bearing(self.player_position, position)

    def is_object_in_fov(self, position: Position) -> bool:
        if not self.is_ready:
            return False

        distance = calculate_distance(self.player_position, position)
        if distance < self.config.min_render_distance or distance > self.config.max_render_distance:
            return False

        relative_angle = get_angle_difference(self.player_heading, self.calculate_angle_to_object(position))
        return abs(relative_angle) <= self.config.horizontal_fov / 2

    def calculate_vertical_offset(self, distance: float) -> float:
        """Negative offsets lift the icon above centre; nearer objects are lifted more"""
        normalized = min(distance / self.config.max_render_distance, 1.0)
        variation = (1 - normalized) * self.config.vertical_spread * self.screen_height
        jitter = (self.rng.random() - 0.5) * self.config.vertical_jitter * variation
        return -0.5 * variation + jitter

    def world_to_screen(self, position: Position, object_id: Any = None) -> Optional[ScreenPosition]:
        """Screen position for a world position, or None when it is not drawable"""
        if not self.is_object_in_fov(position):
            return None

        distance = calculate_distance(self.player_position, position)
        relative_angle = get_angle_difference(self.player_heading, self.calculate_angle_to_object(position))

        half_fov = self.config.horizontal_fov / 2
        x = self.center_x + (relative_angle / half_fov) * (self.center_x - self.config.screen_margin)
        y = self.center_y + self.calculate_vertical_offset(distance)

        if not self.is_position_on_screen(x, y):
            return None

        if object_id is not None:
            x, y = self._avoid_overlap(object_id, x, y)
            self.occupied[object_id] = OccupiedPosition(x, y, self.config.icon_radius)

        return ScreenPosition(x=int(round(x)), y=int(round(y)), distance=distance, relative_angle=relative_angle)

    # Overlap avoidance

    def _overlaps(self, object_id: Any, x: float, y: float) -> bool:
        radius = self.config.icon_radius
        for other_id, other in self.occupied.items():
            if other_id == object_id:
                continue
            if math.hypot(x - other.x, y - other.y) < radius + other.radius:
                return True
        return False

    def _avoid_overlap(self, object_id: Any, x: float, y: float) -> Tuple[float, float]:
        if not self._overlaps(object_id, x, y):
            return x, y

        radius = self.config.icon_radius
        attempts = 0
        ring = 1
        while attempts < self.config.spiral_attempts:
            points = 6 * ring
            for i in range(points):
                angle = 2 * math.pi * i / points
                candidate_x = x + math.cos(angle) * ring * radius
                candidate_y = y + math.sin(angle) * ring * radius
                attempts += 1

                if (self.is_position_on_screen(candidate_x, candidate_y)
                        and not self._overlaps(object_id, candidate_x, candidate_y)):
                    return candidate_x, candidate_y

                if attempts >= self.config.spiral_attempts:
                    break
            ring += 1

        logger.debug(f"No free screen slot near ({x:.0f}, {y:.0f}) for {object_id}, using random offset")
        margin = self.config.screen_margin
        fallback_x = x + self.rng.uniform(-2 * radius, 2 * radius)
        fallback_y = y + self.rng.uniform(-2 * radius, 2 * radius)
        return (
            max(margin, min(self.screen_width - margin, fallback_x)),
            max(margin, min(self.screen_height - margin, fallback_y))
        )

    def release(self, object_id: Any) -> None:
        self.occupied.pop(object_id, None)

    def get_visible_objects(self, objects: Sequence[WorldObject]) -> List[ProjectedObject]:
        """Project candidates nearest-first and return the drawable ones, closest first"""
        if not self.is_ready:
            return []

        candidate_ids = {obj.object_id for obj in objects}
        for stale_id in [object_id for object_id in self.occupied if object_id not in candidate_ids]:
            del self.occupied[stale_id]

        ordered = sorted(objects, key=lambda obj: calculate_distance(self.player_position, obj.position))

        visible = []
        for obj in ordered:
            screen = self.world_to_screen(obj.position, object_id=obj.object_id)
            if screen is None:
                self.release(obj.object_id)
                continue

            visible.append(ProjectedObject(
                object_id=obj.object_id,
                world_position=obj.position,
                screen_position=screen,
                distance=screen.distance,
                relative_angle=screen.relative_angle,
                payload=obj.payload
            ))

        return visible
