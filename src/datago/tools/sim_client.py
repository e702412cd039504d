#!/usr/bin/env python3
"""
Simulated player for the DataGo game server
Walks a synthetic path through the dead-reckoning tracker and captures whatever it sees
"""

import argparse
import asyncio
import json
import logging
import random
import time
from typing import Any, Dict, Optional

import requests
import websockets

from ..models.events import (
    CaptureFailedEvent,
    ErrorEvent,
    GameStateEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    PongEvent,
    SpawnCapturedEvent,
    SpawnDiscoveredEvent,
    SpawnHiddenEvent,
    SpawnRemovedEvent,
)
from ..tracking.client_session import ClientSession
from ..tracking.fov_projector import FOVProjector
from ..tracking.position_tracker import SensorBackedTracker
from ..tracking.sensors import MotionSample, OrientationSample

logger = logging.getLogger(__name__)

WALKING_ACCELERATION = (0.4, 1.2, 10.9)  # m/s², gravity included


class SimClient:
    def __init__(self,
                 server_host: str = "localhost",
                 server_port: int = 3000,
                 name: str = "SimPlayer",
                 seed: Optional[int] = None):
        self.server_host = server_host
        self.server_port = server_port
        self.name = name
        self.rng = random.Random(seed)
        self.websocket = None
        self.outgoing: Optional[asyncio.Queue] = None
        self.session: Optional[ClientSession] = None
        self.clock_ms = 0.0
        self.captures = 0

    @property
    def http_url(self) -> str:
        return f"http://{self.server_host}:{self.server_port}"

    @property
    def ws_url(self) -> str:
        return f"ws://{self.server_host}:{self.server_port}/ws"

    def fetch_room(self) -> Dict[str, Any]:
        """Room layout from the stats endpoint; defaults to 5x5 when the server is unreachable"""
        try:
            response = requests.get(f"{self.http_url}/api/v1/stats", timeout=5)
            response.raise_for_status()
            return response.json().get("room", {"width": 5.0, "height": 5.0})
        except requests.RequestException as e:
            print(f"⚠️  Could not fetch room layout: {e}")
            return {"width": 5.0, "height": 5.0}

    def build_session(self, room: Dict[str, Any]) -> ClientSession:
        tracker = SensorBackedTracker(room["width"], room["height"])
        projector = FOVProjector(1080, 1920, rng=self.rng)
        session = ClientSession(tracker, projector)

        session.on(GameStateEvent, lambda e: print(
            f"📋 Joined as {e.player['name']} - {len(e.spawns)} visible spawns, {e.total_players} players"))
        session.on(SpawnDiscoveredEvent, lambda e: print(
            f"🔍 Discovered {e.spawn['name']} ({e.spawn['rarity']}) at {e.distance:.1f}m"))
        session.on(SpawnHiddenEvent, lambda e: print(f"👻 Spawn {e.spawn_id} hidden at {e.distance:.1f}m"))
        session.on(SpawnRemovedEvent, lambda e: print(f"🗑️  Spawn {e.spawn_id} removed"))
        session.on(SpawnCapturedEvent, self._on_captured)
        session.on(CaptureFailedEvent, lambda e: print(
            f"❌ Capture failed: {e.reason}" + (f" ({e.distance:.2f}m > {e.required}m)" if e.distance else "")))
        session.on(PlayerJoinedEvent, lambda e: print(f"👤 {e.player['name']} joined"))
        session.on(PlayerLeftEvent, lambda e: print(f"👋 {e.player_name} left"))
        session.on(PongEvent, self._on_pong)
        session.on(ErrorEvent, lambda e: print(f"❌ Server error [{e.code}]: {e.message}"))
        return session

    def _on_captured(self, event: SpawnCapturedEvent):
        if event.player_id == self.session.player_id:
            self.captures += 1
            print(f"✅ Captured {event.object_name}! +{event.points_earned} pts "
                  f"(x{event.multiplier}, streak {event.streak}) total {event.new_points}")
        else:
            print(f"🎯 {event.player_name} captured {event.object_name}")

    def _on_pong(self, event: PongEvent):
        if event.client_timestamp:
            print(f"🏓 Pong received - Latency: {int(time.time() * 1000) - event.client_timestamp}ms")

    async def connect(self):
        room = self.fetch_room()
        self.session = self.build_session(room)
        self.outgoing = asyncio.Queue()

        print(f"🔌 Connecting to {self.ws_url}")
        self.websocket = await websockets.connect(self.ws_url)

        self.session.set_sender(self.outgoing.put_nowait)
        self.session.set_connected(True)
        print("✅ Connected")

    async def message_handler(self):
        try:
            async for message in self.websocket:
                self.session.handle_event(json.loads(message))
        except websockets.exceptions.ConnectionClosed:
            print("🔌 WebSocket connection closed")
            self.session.set_connected(False)

    async def sender(self):
        while True:
            message = await self.outgoing.get()
            await self.websocket.send(json.dumps(message))

    def _feed_step(self, target_heading: float):
        """Turn toward target_heading, then take one step"""
        tracker = self.session.tracker

        for _ in range(6):
            self.clock_ms += 60
            tracker.handle_orientation(OrientationSample(
                timestamp=self.clock_ms,
                alpha=(target_heading + self.rng.uniform(-3, 3)) % 360
            ))

        self.clock_ms += 200
        tracker.handle_motion(MotionSample(timestamp=self.clock_ms, acceleration=WALKING_ACCELERATION))
        self.clock_ms += 400

    async def walk(self, steps: int, step_interval: float = 0.6):
        """Walk a square around the room, attempting a capture whenever something is on screen"""
        heading = self.rng.choice([0.0, 90.0, 180.0, 270.0])

        for step in range(steps):
            if step and step % 5 == 0:
                heading = (heading + 90.0) % 360

            self._feed_step(heading)

            visible = self.session.visible_objects()
            if visible:
                closest = visible[0]
                print(f"👀 {len(visible)} on screen, closest spawn {closest.object_id} at {closest.distance:.1f}m")
                self.session.attempt_capture(closest.object_id)

            await asyncio.sleep(step_interval)

    async def run(self, steps: int):
        await self.connect()
        reader = asyncio.create_task(self.message_handler())
        writer = asyncio.create_task(self.sender())

        try:
            self.outgoing.put_nowait(self.session.build_join(self.name))
            self.outgoing.put_nowait({"type": "ping", "timestamp": int(time.time() * 1000)})
            await asyncio.sleep(1.5)

            await self.walk(steps)
            await asyncio.sleep(1.0)
            print(f"🏁 Finished walking: {self.captures} captures")
        finally:
            await self.websocket.close()
            writer.cancel()
            reader.cancel()
            await asyncio.gather(reader, writer, return_exceptions=True)
            print("🔌 Disconnected")


def main():
    parser = argparse.ArgumentParser(description="Simulated DataGo player")
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--name", default="SimPlayer")
    parser.add_argument("--steps", type=int, default=40)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)

    print("🚀 DataGo Simulated Player")
    print("==========================")

    client = SimClient(args.host, args.port, args.name, args.seed)
    try:
        asyncio.run(client.run(args.steps))
    except KeyboardInterrupt:
        print("\n👋 Exiting...")


if __name__ == "__main__":
    main()
