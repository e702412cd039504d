"""
DataGo Game Service
Owns the room state and turns player actions and timer ticks into events
"""

import logging
import random
from typing import Any, Callable, Dict, Optional, Sequence

from ..models.events import (
    CaptureFailedEvent,
    GameStateEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    PlayerMovedEvent,
    PositionUpdatedEvent,
    SpawnCapturedEvent,
)
from ..models.game import (
    DEFAULT_RARITY_TIERS,
    Player,
    ProximityConfig,
    RarityTier,
    RoomConfig,
    Spawn,
)
from ..utils.geometry import Position
from ..utils.metrics import GameMetrics
from .capture_arbiter import CaptureArbiter, CaptureResult, StreakPolicy
from .game_state import GameStore
from .integrations.backend_client import BackendClient
from .outbox import Outbox
from .proximity_engine import ProximityEngine
from .spawn_engine import SpawnEngine
from .timers import TimerRegistry, wall_clock_ms

logger = logging.getLogger(__name__)

REMOVAL_CAPTURED = 'captured'
REMOVAL_DESPAWNED = 'despawned'


class GameService:
    """
    Single writer for one room.

    Every mutation happens inside a message handler or a timer callback,
    both of which run to completion on the event loop. The transport feeds
    it player actions; it answers through the injected Outbox.
    """

    def __init__(self,
                 room: RoomConfig,
                 proximity: ProximityConfig,
                 outbox: Outbox,
                 timers: TimerRegistry,
                 clock: Callable[[], float] = wall_clock_ms,
                 rng: Optional[random.Random] = None,
                 tiers: Sequence[RarityTier] = DEFAULT_RARITY_TIERS,
                 backend: Optional[BackendClient] = None,
                 metrics: Optional[GameMetrics] = None,
                 streak_policy: Optional[StreakPolicy] = None):
        self.room = room
        self.proximity_config = proximity
        self.outbox = outbox
        self.timers = timers
        self.clock = clock
        self.tiers = list(tiers)
        self.backend = backend
        self.metrics = metrics or GameMetrics()

        self.store = GameStore(room.zones.zone_count)
        self.spawn_engine = SpawnEngine(self.store, room, self.tiers, rng=rng, clock=clock)
        self.proximity = ProximityEngine(self.store, proximity, outbox)
        self.arbiter = CaptureArbiter(self.store, streak_policy, clock=clock)

        self.running = False

    # Lifecycle

    def start(self) -> None:
        """Create initial spawns and arm the periodic timers"""
        if self.running:
            return

        logger.info("🚀 Starting zone spawn system...")
        for spawn in self.spawn_engine.generate_initial_spawns():
            self._on_spawn_created(spawn)

        self.timers.schedule_interval('generation', self.room.spawn_interval_ms, self.generation_tick)
        self.timers.schedule_interval('proximity', self.proximity_config.update_interval_ms, self.proximity_tick)
        self.timers.schedule_interval('zone-stats', self.room.stats_interval_ms, self.log_zone_stats)

        self.running = True
        logger.info(
            f"✅ Game service running: {self.room.width}x{self.room.height}m room, "
            f"{self.room.zones.cols}x{self.room.zones.rows} zones, "
            f"discovery {self.proximity_config.discovery_range}m / hide {self.proximity_config.hide_range}m"
        )

    def stop(self) -> None:
        """Cancel every timer so no callback touches state after shutdown"""
        cancelled = self.timers.cancel_all()
        self.running = False
        logger.info(f"Game service stopped ({cancelled} timers cancelled)")

    # Player actions

    def join(self, player_id: str, name: Optional[str] = None, position: Optional[Position] = None) -> Player:
        if self.store.get_player(player_id):
            logger.warning(f"Player {player_id} joined twice, resetting state")
            self.proximity.forget_player(player_id)

        player = Player(
            id=player_id,
            name=name or 'Player',
            position=self._clamp(position) if position else self.room.center,
            joined_at=self.clock()
        )
        self.store.add_player(player)
        self.metrics.connected_players.set(len(self.store.players))

        logger.info(f"👤 {player.name} joined the game")

        self.outbox.send(player_id, GameStateEvent(
            player=player.to_dict(),
            spawns=[spawn.to_dict() for spawn in self.proximity.visible_spawns_for(player_id)],
            room_config=self.room.to_dict(),
            spawn_types=self.spawn_types(),
            total_players=len(self.store.players)
        ))
        self.outbox.broadcast(PlayerJoinedEvent(player=player.to_dict()), exclude=[player_id])

        self.timers.schedule(
            f'join-check:{player_id}',
            self.proximity_config.join_check_delay_ms,
            lambda: self.proximity.check_player(player_id)
        )

        if self.backend:
            self.backend.enqueue_registration({'IdSocket': player_id, 'name': player.name})

        return player

    def move(self, player_id: str, x: float, y: float) -> Optional[Position]:
        """Update a player's position; returns the clamped position or None for unknown players"""
        player = self.store.get_player(player_id)
        if not player:
            return None

        position = self._clamp(Position(x, y))
        player.position = position

        self.outbox.send(player_id, PositionUpdatedEvent(position=position.to_dict()))
        self.outbox.broadcast(
            PlayerMovedEvent(player_id=player_id, position=position.to_dict()),
            exclude=[player_id]
        )

        # Visibility reflects this move before the next message is handled
        self.proximity.check_player(player_id)
        return position

    def attempt_capture(self,
                        player_id: str,
                        spawn_id: Optional[int] = None,
                        capture_method: Optional[str] = None) -> CaptureResult:
        result = self.arbiter.attempt(player_id, advisory_spawn_id=spawn_id)

        if not result.success:
            self.metrics.capture_failures.labels(reason=result.reason).inc()
            self.outbox.send(player_id, CaptureFailedEvent(
                reason=result.reason,
                distance=result.distance,
                required=result.required
            ))
            return result

        spawn = result.spawn
        player = self.store.get_player(player_id)

        self.remove_spawn(spawn.id, reason=REMOVAL_CAPTURED)
        self.store.stats.total_captures += 1
        self.metrics.captures.labels(rarity=spawn.rarity).inc()

        logger.info(f"✅ {player.name} captured {spawn.name} in zone {spawn.zone}! +{result.points_earned} pts")

        self.outbox.broadcast(SpawnCapturedEvent(
            spawn_id=spawn.id,
            player_id=player_id,
            player_name=player.name,
            new_points=player.points,
            points_earned=result.points_earned,
            multiplier=result.multiplier,
            streak=result.streak,
            object_id=spawn.object_id,
            object_name=spawn.name,
            object_rarity=spawn.rarity,
            capture_method=capture_method,
            position=spawn.position.to_dict()
        ))

        if self.backend:
            self.backend.enqueue_capture({
                'IdSocket': player_id,
                'playerName': player.name,
                'spawnId': spawn.id,
                'objectId': spawn.object_id,
                'rarity': spawn.rarity,
                'pointsEarned': result.points_earned,
                'totalPoints': player.points,
                'streak': result.streak,
                'multiplier': result.multiplier,
                'captureMethod': capture_method,
                'timestamp': self.clock()
            })

        self.timers.schedule(f'replenish:{spawn.id}', self.room.replenish_delay_ms, self.generation_tick)
        return result

    def disconnect(self, player_id: str) -> None:
        player = self.store.get_player(player_id)
        if not player:
            return

        self.proximity.forget_player(player_id)
        self.store.pop_player(player_id)
        self.timers.cancel(f'join-check:{player_id}')
        self.metrics.connected_players.set(len(self.store.players))

        logger.info(f"👋 {player.name} disconnected")

        self.outbox.broadcast(PlayerLeftEvent(player_id=player_id, player_name=player.name))

        if self.backend:
            self.backend.enqueue_disconnection(player_id)

    # Spawn lifecycle

    def remove_spawn(self, spawn_id: int, reason: str = REMOVAL_DESPAWNED) -> bool:
        """Remove a spawn; an id that is already gone is a no-op"""
        spawn = self.store.pop_spawn(spawn_id)
        if spawn is None:
            return False

        self.timers.cancel(f'despawn:{spawn_id}')
        self.timers.cancel(f'spawn-check:{spawn_id}')
        self.proximity.handle_spawn_removed(spawn)

        if reason == REMOVAL_DESPAWNED:
            self.store.stats.total_despawns += 1
        self.metrics.spawns_removed.labels(reason=reason).inc()
        self.metrics.active_spawns.set(self.store.active_spawn_count())

        logger.info(f"🗑️ Spawn {spawn_id} removed from zone {spawn.zone} ({reason})")
        return True

    def _on_spawn_created(self, spawn: Spawn) -> None:
        spawn_id = spawn.id
        self.timers.schedule(
            f'despawn:{spawn_id}',
            spawn.despawn_time_ms,
            lambda: self.remove_spawn(spawn_id, reason=REMOVAL_DESPAWNED)
        )
        self.timers.schedule(
            f'spawn-check:{spawn_id}',
            self.room.spawn_proximity_delay_ms,
            self.proximity.check_all
        )

        self.metrics.spawns_created.labels(rarity=spawn.rarity).inc()
        self.metrics.active_spawns.set(self.store.active_spawn_count())

    # Timer callbacks

    def generation_tick(self) -> Optional[Spawn]:
        spawn = self.spawn_engine.generate_tick()
        if spawn is None:
            self.metrics.skipped_generations.labels(reason=self.spawn_engine.last_skip_reason or 'unknown').inc()
            return None

        self._on_spawn_created(spawn)
        return spawn

    def proximity_tick(self) -> None:
        self.proximity.check_all()

    def log_zone_stats(self) -> None:
        self.spawn_engine.update_zone_stats()
        occupancy = ', '.join(
            f"zone {zone}: {stats.spawns}" for zone, stats in sorted(self.store.zone_stats.items())
        )
        logger.info(
            f"📊 {self.store.active_spawn_count()} spawns, {len(self.store.players)} players | {occupancy}"
        )

    # Queries

    def spawn_types(self) -> Dict[str, Any]:
        return {
            tier.name: {
                'points': tier.points,
                'probability': tier.probability,
                'despawnTime': tier.despawn_time_ms,
                'captureRange': tier.capture_range,
                'color': tier.color,
                'objects': [
                    {'objectId': obj.object_id, 'name': obj.name, 'image': obj.image}
                    for obj in tier.objects
                ]
            }
            for tier in self.tiers
        }

    def stats(self) -> Dict[str, Any]:
        self.spawn_engine.update_zone_stats()
        return {
            'running': self.running,
            'players': len(self.store.players),
            'active_spawns': self.store.active_spawn_count(),
            'total_spawns': self.store.stats.total_spawns,
            'total_captures': self.store.stats.total_captures,
            'total_despawns': self.store.stats.total_despawns,
            'zones': {
                str(zone): {'spawns': stats.spawns, 'last_spawn': stats.last_spawn}
                for zone, stats in sorted(self.store.zone_stats.items())
            },
            'room': self.room.to_dict()
        }

    def _clamp(self, position: Position) -> Position:
        return Position(
            max(0.0, min(self.room.width, position.x)),
            max(0.0, min(self.room.height, position.y))
        )
