"""
Metrics collection for DataGo Game Service
Prometheus counters and gauges for spawns, captures and players
"""

import time
import logging
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

logger = logging.getLogger(__name__)


class GameMetrics:
    """Prometheus metrics for one game service instance"""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.start_time = time.time()

        self.spawns_created = Counter(
            'datago_spawns_created_total',
            'Spawns created by the zone engine',
            ['rarity'],
            registry=self.registry
        )
        self.spawns_removed = Counter(
            'datago_spawns_removed_total',
            'Spawns removed from the room',
            ['reason'],
            registry=self.registry
        )
        self.captures = Counter(
            'datago_captures_total',
            'Successful captures',
            ['rarity'],
            registry=self.registry
        )
        self.capture_failures = Counter(
            'datago_capture_failures_total',
            'Rejected capture attempts',
            ['reason'],
            registry=self.registry
        )
        self.skipped_generations = Counter(
            'datago_spawn_generation_skipped_total',
            'Generation cycles that created nothing',
            ['reason'],
            registry=self.registry
        )
        self.active_spawns = Gauge(
            'datago_active_spawns',
            'Currently active spawns',
            registry=self.registry
        )
        self.connected_players = Gauge(
            'datago_connected_players',
            'Currently joined players',
            registry=self.registry
        )

        logger.info("📊 Game metrics initialized")

    def render(self) -> bytes:
        """Prometheus text exposition for this registry"""
        return generate_latest(self.registry)

    def snapshot(self) -> Dict[str, Any]:
        """Small JSON-friendly summary for the stats endpoint"""
        return {
            'active_spawns': self.registry.get_sample_value('datago_active_spawns'),
            'connected_players': self.registry.get_sample_value('datago_connected_players'),
            'uptime_seconds': time.time() - self.start_time
        }
