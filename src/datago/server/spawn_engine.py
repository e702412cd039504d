"""
Zone-Balanced Spawn Engine
Keeps spawns spread across a grid of room zones with weighted rarity selection
"""

import logging
import random
from typing import Callable, List, Optional, Sequence, Tuple

from ..models.game import RarityTier, RoomConfig, Spawn
from ..utils.geometry import Position, calculate_distance
from .game_state import GameStore

logger = logging.getLogger(__name__)


class ZoneGrid:
    """cols x rows partition of the room; zone index = row * cols + col"""

    def __init__(self, room: RoomConfig):
        self.room = room
        self.cols = room.zones.cols
        self.rows = room.zones.rows
        self.zone_width = room.width / self.cols
        self.zone_height = room.height / self.rows

    @property
    def zone_count(self) -> int:
        return self.cols * self.rows

    def zone_for_position(self, position: Position) -> int:
        """Zone containing a position; positions on or past the far edges fall in the last column/row"""
        col = int(position.x // self.zone_width)
        row = int(position.y // self.zone_height)

        col = max(0, min(col, self.cols - 1))
        row = max(0, min(row, self.rows - 1))

        return row * self.cols + col

    def zone_bounds(self, zone_id: int) -> Tuple[float, float, float, float]:
        """(min_x, max_x, min_y, max_y) of a zone"""
        if not 0 <= zone_id < self.zone_count:
            raise ValueError(f"Zone {zone_id} outside grid of {self.zone_count} zones")

        col = zone_id % self.cols
        row = zone_id // self.cols

        return (
            col * self.zone_width,
            (col + 1) * self.zone_width,
            row * self.zone_height,
            (row + 1) * self.zone_height
        )


class RaritySelector:
    """Weighted random rarity draw using cumulative probabilities"""

    def __init__(self, tiers: Sequence[RarityTier], rng: random.Random):
        if not tiers:
            raise ValueError("At least one rarity tier is required")

        total = sum(tier.probability for tier in tiers)
        if total <= 0:
            raise ValueError("Rarity probabilities must not all be zero")

        self.tiers = list(tiers)
        self.rng = rng

        # Normalised so the weights sum to 1
        self.cumulative: List[float] = []
        running = 0.0
        for tier in self.tiers:
            running += tier.probability / total
            self.cumulative.append(running)

    def select(self) -> RarityTier:
        roll = self.rng.random()
        for tier, threshold in zip(self.tiers, self.cumulative):
            if roll < threshold:
                return tier
        # Float rounding can leave the last threshold a hair under 1.0
        return self.tiers[-1]

    def by_name(self, name: str) -> Optional[RarityTier]:
        for tier in self.tiers:
            if tier.name == name:
                return tier
        return None


class SpawnEngine:
    """Creates spawns in under-populated zones subject to the global cap and spacing"""

    def __init__(self,
                 store: GameStore,
                 room: RoomConfig,
                 tiers: Sequence[RarityTier],
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.store = store
        self.room = room
        self.grid = ZoneGrid(room)
        self.rng = rng or random.Random()
        self.rarity = RaritySelector(tiers, self.rng)
        self.clock = clock or (lambda: 0.0)
        # Why the latest generate_tick() created nothing: 'cap', 'zones-full' or 'no-position'
        self.last_skip_reason: Optional[str] = None

    def update_zone_stats(self) -> None:
        """Recount occupancy by classifying every active spawn's position"""
        for stats in self.store.zone_stats.values():
            stats.spawns = 0

        for spawn in self.store.spawns.values():
            zone = self.grid.zone_for_position(spawn.position)
            self.store.zone_stats[zone].spawns += 1

    def zone_deficits(self) -> List[int]:
        """target - current for each zone, after a fresh recount"""
        self.update_zone_stats()
        target = self.room.zones.spawns_per_zone
        return [target - self.store.zone_stats[zone].spawns for zone in range(self.grid.zone_count)]

    def find_zone_needing_spawns(self) -> Optional[int]:
        """Zone with the largest deficit; ties go to the lowest zone index"""
        best_zone = None
        best_deficit = 0

        for zone, deficit in enumerate(self.zone_deficits()):
            if deficit > best_deficit:
                best_zone = zone
                best_deficit = deficit

        return best_zone

    def generate_position_in_zone(self, zone_id: int) -> Position:
        """Uniform random position inside the zone, inset by the zone margin"""
        min_x, max_x, min_y, max_y = self.grid.zone_bounds(zone_id)
        margin_x = min(self.room.zone_margin, (max_x - min_x) / 2)
        margin_y = min(self.room.zone_margin, (max_y - min_y) / 2)

        return Position(
            min_x + margin_x + self.rng.random() * (max_x - min_x - 2 * margin_x),
            min_y + margin_y + self.rng.random() * (max_y - min_y - 2 * margin_y)
        )

    def _too_close(self, position: Position) -> bool:
        return any(
            calculate_distance(position, existing.position) < self.room.min_spawn_distance
            for existing in self.store.spawns.values()
        )

    def create_spawn_in_zone(self, zone_id: int) -> Optional[Spawn]:
        """Build (but do not store) a spawn in the zone; None when no free position was found"""
        tier = self.rarity.select()

        position = None
        for attempt in range(1, self.room.spawn_position_attempts + 1):
            candidate = self.generate_position_in_zone(zone_id)
            if not self._too_close(candidate):
                position = candidate
                break
            logger.debug(f"Attempt {attempt}: position too close to an existing spawn in zone {zone_id}")

        if position is None:
            logger.debug(f"No free position in zone {zone_id} after {self.room.spawn_position_attempts} attempts")
            return None

        spawn_object = self.rng.choice(tier.objects)

        return Spawn(
            id=self.store.next_spawn_id(),
            object_id=spawn_object.object_id,
            name=spawn_object.name,
            rarity=tier.name,
            position=position,
            zone=zone_id,
            points=tier.points,
            capture_range=tier.capture_range,
            despawn_time_ms=tier.despawn_time_ms,
            created_at=self.clock(),
            color=tier.color,
            image=spawn_object.image
        )

    def _place(self, spawn: Spawn) -> None:
        self.store.add_spawn(spawn)
        self.store.zone_stats[spawn.zone].spawns += 1
        self.store.zone_stats[spawn.zone].last_spawn = spawn.created_at

    def generate_tick(self) -> Optional[Spawn]:
        """One generation cycle; returns the new spawn or None when nothing was created"""
        self.last_skip_reason = None

        active = self.store.active_spawn_count()
        if active >= self.room.max_simultaneous_spawns:
            logger.debug(f"Spawn cap reached ({active}/{self.room.max_simultaneous_spawns})")
            self.last_skip_reason = 'cap'
            return None

        zone = self.find_zone_needing_spawns()
        if zone is None:
            logger.debug("All zones at target occupancy")
            self.last_skip_reason = 'zones-full'
            return None

        spawn = self.create_spawn_in_zone(zone)
        if spawn is None:
            self.last_skip_reason = 'no-position'
            return None

        self._place(spawn)
        logger.info(f"Spawn {spawn.id} ({spawn.rarity}) created in zone {zone} at ({spawn.position.x:.2f}, {spawn.position.y:.2f})")
        return spawn

    def generate_initial_spawns(self) -> List[Spawn]:
        """Fill every zone up to its target, lowest zone first, respecting the cap"""
        created = []

        for zone in range(self.grid.zone_count):
            for _ in range(self.room.zones.spawns_per_zone):
                if self.store.active_spawn_count() >= self.room.max_simultaneous_spawns:
                    break

                spawn = self.create_spawn_in_zone(zone)
                if spawn:
                    self._place(spawn)
                    created.append(spawn)

        logger.info(f"✅ {len(created)} initial spawns generated")
        return created
