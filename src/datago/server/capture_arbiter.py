"""
Capture Arbitration
Distance-gated capture resolution with streak-multiplied scoring
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from ..models.game import Player, Spawn
from ..utils.geometry import calculate_distance
from .game_state import GameStore

logger = logging.getLogger(__name__)

REASON_PLAYER_NOT_FOUND = 'player-not-found'
REASON_NO_VISIBLE_SPAWNS = 'no-visible-spawns'
REASON_TOO_FAR = 'too-far'


def round_points(value: float) -> int:
    """Round half up, the way the game has always rounded positive scores"""
    return int(math.floor(value + 0.5))


@dataclass
class StreakPolicy:
    """Consecutive captures inside window_ms raise the multiplier by step, up to max_multiplier"""
    window_ms: float = 5000.0
    step: float = 0.2
    max_multiplier: float = 2.0

    def multiplier_for(self, streak: int) -> float:
        return round(min(self.max_multiplier, 1.0 + self.step * (streak - 1)), 2)

    def apply(self, player: Player, now: float) -> None:
        in_window = player.captures > 0 and (now - player.last_capture_time) < self.window_ms

        if in_window:
            player.streak += 1
        else:
            player.streak = 1
        player.multiplier = self.multiplier_for(player.streak)


@dataclass
class CaptureResult:
    """Outcome of one capture attempt"""
    success: bool
    reason: Optional[str] = None
    spawn: Optional[Spawn] = None
    distance: Optional[float] = None
    required: Optional[float] = None
    points_earned: int = 0
    multiplier: float = 1.0
    streak: int = 0

    @classmethod
    def failure(cls, reason: str, distance: Optional[float] = None,
                required: Optional[float] = None) -> 'CaptureResult':
        return cls(success=False, reason=reason, distance=distance, required=required)


class CaptureArbiter:
    """
    Resolves capture attempts against the server's view of the world.

    The candidate is always the closest spawn in the player's visible set;
    a client-declared spawn id is only logged. Failed attempts leave all
    state untouched.
    """

    def __init__(self,
                 store: GameStore,
                 streak_policy: Optional[StreakPolicy] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.store = store
        self.streak_policy = streak_policy or StreakPolicy()
        self.clock = clock or (lambda: 0.0)

    def closest_visible_spawn(self, player: Player) -> Optional[Spawn]:
        closest = None
        closest_distance = math.inf

        for spawn in self.store.spawns.values():
            if player.id not in spawn.visible_to:
                continue
            distance = calculate_distance(player.position, spawn.position)
            if distance < closest_distance:
                closest = spawn
                closest_distance = distance

        return closest

    def attempt(self, player_id: str, advisory_spawn_id: Optional[int] = None) -> CaptureResult:
        player = self.store.get_player(player_id)
        if not player:
            return CaptureResult.failure(REASON_PLAYER_NOT_FOUND)

        spawn = self.closest_visible_spawn(player)
        if spawn is None:
            return CaptureResult.failure(REASON_NO_VISIBLE_SPAWNS)

        if advisory_spawn_id is not None and advisory_spawn_id != spawn.id:
            logger.debug(f"{player.name} aimed at spawn {advisory_spawn_id}; arbitrating closest spawn {spawn.id}")

        distance = calculate_distance(player.position, spawn.position)
        logger.info(f"🎯 {player.name} attempts {spawn.rarity} spawn {spawn.id} (zone {spawn.zone}) at {distance:.2f}m")

        if distance > spawn.capture_range:
            return CaptureResult.failure(REASON_TOO_FAR, distance=distance, required=spawn.capture_range)

        now = self.clock()
        self.streak_policy.apply(player, now)

        points = round_points(spawn.points * player.multiplier)
        player.points += points
        player.captures += 1
        player.last_capture_time = now
        player.best_streak = max(player.best_streak, player.streak)

        return CaptureResult(
            success=True,
            spawn=spawn,
            distance=distance,
            required=spawn.capture_range,
            points_earned=points,
            multiplier=player.multiplier,
            streak=player.streak
        )
