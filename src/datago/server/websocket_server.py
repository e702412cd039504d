"""
DataGo - WebSocket Game Server
Real-time transport for the room game: one socket per player, JSON events both ways
"""

import asyncio
import json
import logging
import random
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from .. import __version__
from ..models.events import ErrorEvent, PongEvent, ServerEventBase
from ..utils.config import Settings, get_settings
from ..utils.logging_config import setup_logging
from ..utils.metrics import GameMetrics
from .game_service import GameService
from .integrations.backend_client import BackendClient
from .timers import AsyncioScheduler, TimerRegistry, wall_clock_ms
from .validation import (
    AttemptCaptureMessage,
    ErrorCode,
    JoinMessage,
    MoveMessage,
    PingMessage,
    RateLimitInfo,
    UserRateLimit,
    validate_client_message,
    validate_rate_limit,
)

logger = logging.getLogger(__name__)


class ConnectionOutbox:
    """
    Outbox backed by one asyncio queue per socket.

    The game core enqueues synchronously; a writer task per connection
    drains its queue onto the socket.
    """

    def __init__(self, max_queue_size: int = 256):
        self.max_queue_size = max_queue_size
        self.queues: Dict[str, asyncio.Queue] = {}
        self.dropped = 0

    def register(self, player_id: str) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=self.max_queue_size)
        self.queues[player_id] = queue
        return queue

    def unregister(self, player_id: str) -> None:
        self.queues.pop(player_id, None)

    def send(self, player_id: str, event: ServerEventBase) -> None:
        queue = self.queues.get(player_id)
        if queue is None:
            logger.debug(f"Dropping {event.type} for closed connection {player_id}")
            return
        self._enqueue(player_id, queue, event.to_wire())

    def broadcast(self, event: ServerEventBase, exclude: Optional[Iterable[str]] = None) -> None:
        excluded = set(exclude or ())
        payload = event.to_wire()
        for player_id, queue in self.queues.items():
            if player_id not in excluded:
                self._enqueue(player_id, queue, payload)

    def _enqueue(self, player_id: str, queue: asyncio.Queue, payload: Dict[str, Any]) -> None:
        try:
            queue.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Outbox full for {player_id}, dropping {payload.get('type')}")

    @property
    def connection_count(self) -> int:
        return len(self.queues)


class GameWebSocketServer:
    def __init__(self,
                 settings: Optional[Settings] = None,
                 scheduler: Any = None,
                 clock: Callable[[], float] = wall_clock_ms,
                 rng: Optional[random.Random] = None,
                 backend: Optional[BackendClient] = None):
        self.settings = settings or get_settings()
        self.clock = clock

        self.outbox = ConnectionOutbox()
        self.timers = TimerRegistry(scheduler or AsyncioScheduler())
        self.metrics = GameMetrics()
        self.backend = backend or BackendClient(
            base_url=self.settings.BACKEND_BASE_URL,
            timeout_seconds=self.settings.BACKEND_TIMEOUT_SECONDS
        )
        self.game = GameService(
            room=self.settings.room_config(),
            proximity=self.settings.proximity_config(),
            outbox=self.outbox,
            timers=self.timers,
            clock=clock,
            rng=rng,
            backend=self.backend,
            metrics=self.metrics
        )

        # Rate limiting
        self.rate_limits: Dict[str, UserRateLimit] = {}
        self.rate_limit_info = RateLimitInfo(
            requests_per_minute=self.settings.RATE_LIMIT_PER_MINUTE,
            burst_size=self.settings.RATE_LIMIT_BURST,
            window_size_seconds=60
        )

        self.app = FastAPI(
            title="DataGo Game Server",
            description="Zone-balanced AR capture game over WebSockets",
            version=__version__,
            docs_url="/docs" if self.settings.is_development else None,
            redoc_url=None,
            lifespan=self.lifespan
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

        self.setup_routes()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        """Application lifespan management"""
        logger.info("🚀 Starting DataGo Game Server...")
        try:
            await self.backend.initialize()
            self.game.start()
            logger.info("✅ DataGo Game Server ready")
            yield
        except Exception as e:
            logger.error(f"❌ Failed to start DataGo Game Server: {e}")
            raise
        finally:
            logger.info("🛑 Shutting down DataGo Game Server...")
            self.game.stop()
            await self.backend.shutdown()

    def setup_routes(self):
        @self.app.get("/health")
        async def health_check():
            return {
                "status": "healthy" if self.game.running else "starting",
                "service": "datago-game-server",
                "version": __version__,
                "timestamp": datetime.utcnow().isoformat()
            }

        @self.app.get("/api/v1/stats")
        async def get_stats():
            stats = self.game.stats()
            stats["connections"] = self.outbox.connection_count
            stats["backend"] = self.backend.get_status()
            stats["metrics"] = self.metrics.snapshot()
            return stats

        @self.app.get("/metrics")
        async def metrics():
            return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)

        @self.app.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            await self.handle_websocket_connection(websocket)

    async def handle_websocket_connection(self, websocket: WebSocket):
        await websocket.accept()

        player_id = str(uuid.uuid4())
        queue = self.outbox.register(player_id)
        writer = asyncio.create_task(self._write_events(websocket, queue, player_id))

        logger.info(f"🎮 Connection opened: {player_id}")

        try:
            async for message in websocket.iter_text():
                self.handle_message(player_id, message)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"Error handling WebSocket for {player_id}: {e}", exc_info=True)
        finally:
            logger.info(f"Connection closed: {player_id}")
            self.game.disconnect(player_id)
            self.outbox.unregister(player_id)
            self.rate_limits.pop(player_id, None)

            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

    async def _write_events(self, websocket: WebSocket, queue: asyncio.Queue, player_id: str):
        while True:
            payload = await queue.get()
            try:
                await websocket.send_text(json.dumps(payload))
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"Stopped writing to {player_id}: {e}")
                self.outbox.unregister(player_id)
                return

    def handle_message(self, player_id: str, message: str):
        """Handle one incoming message with rate limiting and validation"""
        if not validate_rate_limit(player_id, self.rate_limits, self.rate_limit_info):
            logger.warning(f"Rate limit exceeded for {player_id}")
            self._send_error(player_id, "Rate limit exceeded. Please slow down.", ErrorCode.RATE_LIMIT_EXCEEDED)
            return

        try:
            data = json.loads(message)
            validated_message = validate_client_message(data)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from {player_id}")
            self._send_error(player_id, "Invalid JSON format", ErrorCode.INVALID_JSON)
            return
        except ValueError as e:
            logger.warning(f"Validation error from {player_id}: {e}")
            self._send_error(player_id, f"Validation error: {str(e)}", ErrorCode.VALIDATION_ERROR)
            return

        if isinstance(validated_message, JoinMessage):
            position = validated_message.position.to_position() if validated_message.position else None
            self.game.join(player_id, validated_message.name, position)

        elif isinstance(validated_message, MoveMessage):
            if self.game.move(player_id, validated_message.x, validated_message.y) is None:
                self._send_error(player_id, "Join the game before moving", ErrorCode.NOT_JOINED)

        elif isinstance(validated_message, AttemptCaptureMessage):
            self.game.attempt_capture(
                player_id,
                spawn_id=validated_message.spawn_id,
                capture_method=validated_message.capture_method.value
            )

        elif isinstance(validated_message, PingMessage):
            self.outbox.send(player_id, PongEvent(
                timestamp=int(self.clock()),
                client_timestamp=validated_message.timestamp
            ))

    def _send_error(self, player_id: str, message: str, code: ErrorCode):
        self.outbox.send(player_id, ErrorEvent(message=message, code=code.value))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build a FastAPI app with its own game service"""
    return GameWebSocketServer(settings).app


def main():
    settings = get_settings()
    setup_logging(settings)

    server = GameWebSocketServer(settings)
    uvicorn.run(
        server.app,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
