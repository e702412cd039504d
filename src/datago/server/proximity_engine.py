"""
Proximity Visibility Engine
Server-authoritative per-player spawn visibility with hysteresis
"""

import logging
from typing import List

from ..models.events import SpawnDiscoveredEvent, SpawnHiddenEvent, SpawnRemovedEvent
from ..models.game import Player, ProximityConfig, Spawn
from ..utils.geometry import calculate_distance
from .game_state import GameStore
from .outbox import Outbox

logger = logging.getLogger(__name__)


class ProximityEngine:
    """
    Decides what each player currently sees.

    A spawn is discovered at distance <= discovery_range and hidden again only
    at distance >= hide_range. Between the two the visibility is left as is.
    """

    def __init__(self, store: GameStore, config: ProximityConfig, outbox: Outbox):
        self.store = store
        self.config = config
        self.outbox = outbox

    def check_player(self, player_id: str) -> None:
        player = self.store.get_player(player_id)
        if not player:
            return

        for spawn in self.store.iter_spawns():
            self._check_pair(player, spawn)

    def check_all(self) -> None:
        for player_id in self.store.player_ids():
            self.check_player(player_id)

    def _check_pair(self, player: Player, spawn: Spawn) -> None:
        distance = calculate_distance(player.position, spawn.position)
        was_visible = player.id in spawn.visible_to

        if distance <= self.config.discovery_range and not was_visible:
            spawn.visible_to.add(player.id)
            player.visible_spawns.add(spawn.id)

            logger.info(f"✅ Spawn {spawn.id} (zone {spawn.zone}) visible to {player.name} at {distance:.1f}m")
            self.outbox.send(player.id, SpawnDiscoveredEvent(spawn=spawn.to_dict(), distance=distance))

        elif distance >= self.config.hide_range and was_visible:
            spawn.visible_to.discard(player.id)
            player.visible_spawns.discard(spawn.id)

            logger.info(f"❌ Spawn {spawn.id} hidden from {player.name} at {distance:.1f}m")
            self.outbox.send(player.id, SpawnHiddenEvent(spawn_id=spawn.id, distance=distance))

    def handle_spawn_removed(self, spawn: Spawn) -> None:
        """Tell every player who could see the spawn that it is gone"""
        for player_id in sorted(spawn.visible_to):
            player = self.store.get_player(player_id)
            if player:
                player.visible_spawns.discard(spawn.id)
            self.outbox.send(player_id, SpawnRemovedEvent(spawn_id=spawn.id))

        spawn.visible_to.clear()

    def visible_spawns_for(self, player_id: str) -> List[Spawn]:
        return [spawn for spawn in self.store.spawns.values() if player_id in spawn.visible_to]

    def forget_player(self, player_id: str) -> None:
        """Drop a departing player from every spawn's visible set"""
        for spawn in self.store.spawns.values():
            spawn.visible_to.discard(player_id)

        player = self.store.get_player(player_id)
        if player:
            player.visible_spawns.clear()
