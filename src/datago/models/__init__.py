"""
Data models shared by the game service and the tracking client
"""

from .game import (
    GameStats,
    Player,
    ProximityConfig,
    RarityTier,
    RoomConfig,
    Spawn,
    SpawnObject,
    ZoneConfig,
    ZoneStats,
    DEFAULT_RARITY_TIERS,
)

__all__ = [
    'GameStats',
    'Player',
    'ProximityConfig',
    'RarityTier',
    'RoomConfig',
    'Spawn',
    'SpawnObject',
    'ZoneConfig',
    'ZoneStats',
    'DEFAULT_RARITY_TIERS',
]
