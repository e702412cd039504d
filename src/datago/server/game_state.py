"""
In-memory game state
Single-writer store for players, spawns and zone occupancy
"""

from typing import Dict, Iterator, List, Optional

from ..models.game import GameStats, Player, Spawn, ZoneStats


class GameStore:
    """
    Authoritative room state, owned by one GameService.

    Spawns keep insertion order, which is also ascending id order.
    """

    def __init__(self, zone_count: int):
        self.players: Dict[str, Player] = {}
        self.spawns: Dict[int, Spawn] = {}
        self.zone_stats: Dict[int, ZoneStats] = {zone: ZoneStats() for zone in range(zone_count)}
        self.stats = GameStats()
        self._next_spawn_id = 1

    def next_spawn_id(self) -> int:
        spawn_id = self._next_spawn_id
        self._next_spawn_id += 1
        return spawn_id

    # Spawns

    def add_spawn(self, spawn: Spawn) -> None:
        self.spawns[spawn.id] = spawn
        self.stats.total_spawns += 1

    def get_spawn(self, spawn_id: int) -> Optional[Spawn]:
        return self.spawns.get(spawn_id)

    def pop_spawn(self, spawn_id: int) -> Optional[Spawn]:
        return self.spawns.pop(spawn_id, None)

    def active_spawn_count(self) -> int:
        return len(self.spawns)

    def iter_spawns(self) -> Iterator[Spawn]:
        # Snapshot so callers may remove while iterating
        return iter(list(self.spawns.values()))

    # Players

    def add_player(self, player: Player) -> None:
        self.players[player.id] = player

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def pop_player(self, player_id: str) -> Optional[Player]:
        return self.players.pop(player_id, None)

    def player_ids(self) -> List[str]:
        return list(self.players)
