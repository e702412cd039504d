"""
Game Data Models
Room layout, rarity tiers, spawns and server-side player state
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from ..utils.geometry import Position


@dataclass
class ZoneConfig:
    """Grid partition of the room used to balance spawn density"""
    cols: int = 2
    rows: int = 2
    spawns_per_zone: int = 1

    @property
    def zone_count(self) -> int:
        return self.cols * self.rows


@dataclass
class RoomConfig:
    """Room dimensions and spawn engine parameters"""
    width: float = 5.0
    height: float = 5.0
    zones: ZoneConfig = field(default_factory=ZoneConfig)
    spawn_interval_ms: int = 6000
    max_simultaneous_spawns: int = 6
    min_spawn_distance: float = 1.8
    spawn_position_attempts: int = 5
    zone_margin: float = 0.3
    replenish_delay_ms: int = 2000
    spawn_proximity_delay_ms: int = 500
    stats_interval_ms: int = 15000

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Room dimensions must be positive")
        if self.zones.cols < 1 or self.zones.rows < 1:
            raise ValueError("Zone grid needs at least one column and one row")

    @property
    def center(self) -> Position:
        return Position(self.width / 2, self.height / 2)

    def to_dict(self) -> Dict[str, Any]:
        """Wire format sent in game-state"""
        return {
            'width': self.width,
            'height': self.height,
            'zones': {
                'cols': self.zones.cols,
                'rows': self.zones.rows,
                'spawnsPerZone': self.zones.spawns_per_zone
            },
            'spawnInterval': self.spawn_interval_ms,
            'maxSimultaneousSpawns': self.max_simultaneous_spawns,
            'minSpawnDistance': self.min_spawn_distance
        }


@dataclass
class ProximityConfig:
    """Hysteresis thresholds for spawn visibility"""
    discovery_range: float = 3.0
    hide_range: float = 4.0
    update_interval_ms: int = 1500
    join_check_delay_ms: int = 1000

    def __post_init__(self):
        if self.hide_range <= self.discovery_range:
            raise ValueError("hide_range must be greater than discovery_range")


@dataclass
class SpawnObject:
    """A collectible object that can appear for a rarity tier"""
    object_id: str
    name: str
    image: str


@dataclass
class RarityTier:
    """Rarity tier with scoring, lifetime and capture radius"""
    name: str
    points: int
    probability: float
    despawn_time_ms: int
    capture_range: float
    objects: List[SpawnObject]
    color: str = '#ffffff'

    def __post_init__(self):
        if self.probability < 0:
            raise ValueError(f"Rarity {self.name} has a negative probability")
        if not self.objects:
            raise ValueError(f"Rarity {self.name} needs at least one object")


DEFAULT_RARITY_TIERS: Tuple[RarityTier, ...] = (
    RarityTier(
        name='common',
        points=10,
        probability=0.5,
        despawn_time_ms=25000,
        capture_range=2.2,
        objects=[SpawnObject('common/IQU', 'IQU', 'common/IQU.png')],
        color='#00ff88'
    ),
    RarityTier(
        name='rare',
        points=25,
        probability=0.25,
        despawn_time_ms=20000,
        capture_range=2.0,
        objects=[SpawnObject('rare/Bob', 'Bob', 'rare/Bob.png')],
        color='#ffd700'
    ),
    RarityTier(
        name='epic',
        points=50,
        probability=0.05,
        despawn_time_ms=15000,
        capture_range=1.8,
        objects=[SpawnObject('epic/Dora', 'Dora', 'epic/Dora.png')],
        color='#ff6b35'
    ),
)


@dataclass
class Spawn:
    """A capturable object instance placed in the room"""
    id: int
    object_id: str
    name: str
    rarity: str
    position: Position
    zone: int
    points: int
    capture_range: float
    despawn_time_ms: int
    created_at: float
    color: str = '#ffffff'
    image: Optional[str] = None
    visible_to: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        """Client payload; visible_to stays on the server"""
        return {
            'id': self.id,
            'objectId': self.object_id,
            'name': self.name,
            'rarity': self.rarity,
            'type': self.rarity,
            'position': self.position.to_dict(),
            'zone': self.zone,
            'points': self.points,
            'captureRange': self.capture_range,
            'despawnTime': self.despawn_time_ms,
            'createdAt': self.created_at,
            'color': self.color,
            'image': self.image
        }


@dataclass
class Player:
    """Server-side player state"""
    id: str
    name: str
    position: Position
    points: int = 0
    captures: int = 0
    streak: int = 0
    best_streak: int = 0
    multiplier: float = 1.0
    last_capture_time: float = 0.0
    joined_at: float = 0.0
    visible_spawns: Set[int] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'position': self.position.to_dict(),
            'points': self.points,
            'captures': self.captures,
            'streak': self.streak,
            'bestStreak': self.best_streak,
            'multiplier': self.multiplier,
            'lastCaptureTime': self.last_capture_time,
            'visibleSpawns': sorted(self.visible_spawns),
            'joinedAt': self.joined_at
        }


@dataclass
class ZoneStats:
    """Occupancy bookkeeping for one zone"""
    spawns: int = 0
    last_spawn: float = 0.0


@dataclass
class GameStats:
    """Lifetime counters for the room"""
    total_spawns: int = 0
    total_captures: int = 0
    total_despawns: int = 0
