"""
Client Game Session
Connects the tracker and projector to the server's event stream
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from ..models.events import (
    CaptureFailedEvent,
    GameStateEvent,
    PositionUpdatedEvent,
    ServerEventBase,
    SpawnCapturedEvent,
    SpawnDiscoveredEvent,
    SpawnHiddenEvent,
    SpawnRemovedEvent,
    parse_server_event,
)
from ..utils.geometry import Position
from .fov_projector import FOVProjector, ProjectedObject, WorldObject
from .position_tracker import PositionSnapshot, PositionTracker
from .throw_targeting import ThrowTargeting

logger = logging.getLogger(__name__)

E = TypeVar('E', bound=ServerEventBase)
Sender = Callable[[Dict[str, Any]], None]


class ClientSession:
    """
    Client-side view of one game.

    Server events are parsed into typed models and dispatched to handlers
    registered per event class. Position snapshots from the tracker become
    move messages; while disconnected only the latest move is kept.
    """

    def __init__(self,
                 tracker: PositionTracker,
                 projector: FOVProjector,
                 send: Optional[Sender] = None,
                 throw_targeting: Optional[ThrowTargeting] = None):
        self.tracker = tracker
        self.projector = projector
        self.throw_targeting = throw_targeting or ThrowTargeting()
        self._send = send

        self.connected = False
        self.pending_move: Optional[Dict[str, Any]] = None

        self.player: Optional[Dict[str, Any]] = None
        self.room_config: Optional[Dict[str, Any]] = None
        self.server_position: Optional[Position] = None
        self.known_spawns: Dict[int, Dict[str, Any]] = {}
        self.last_capture_failure: Optional[CaptureFailedEvent] = None

        self._handlers: Dict[Type[ServerEventBase], List[Callable[[Any], None]]] = defaultdict(list)

        self.tracker.on_position_update(self._on_position)

    @property
    def player_id(self) -> Optional[str]:
        return self.player.get('id') if self.player else None

    # Connection

    def set_sender(self, send: Optional[Sender]) -> None:
        self._send = send

    def set_connected(self, connected: bool) -> None:
        self.connected = connected
        if connected:
            self.flush()

    def flush(self) -> None:
        """Send the buffered move, if any"""
        if self.pending_move and self.connected and self._send:
            move, self.pending_move = self.pending_move, None
            self._send(move)

    def _transmit(self, message: Dict[str, Any]) -> bool:
        if not self.connected or self._send is None:
            return False
        self._send(message)
        return True

    # Outgoing

    def build_join(self, name: str) -> Dict[str, Any]:
        return {
            'type': 'join',
            'name': name,
            'position': self.tracker.position.to_dict()
        }

    def build_capture_request(self, spawn_id: Optional[int] = None, capture_method: str = 'proximity') -> Dict[str, Any]:
        request = {
            'type': 'attempt-capture',
            'playerPosition': self.tracker.position.to_dict(),
            'captureMethod': capture_method
        }
        if spawn_id is not None:
            request['spawnId'] = spawn_id
        return request

    def attempt_capture(self, spawn_id: Optional[int] = None) -> bool:
        return self._transmit(self.build_capture_request(spawn_id))

    def throw(self, tap_x: float, tap_y: float) -> Optional[Dict[str, Any]]:
        """Grade a tap against the drawn objects; a hit is sent as a capture request and returned"""
        result = self.throw_targeting.attempt_throw(tap_x, tap_y, self.visible_objects())
        request = result.to_capture_request(self.tracker.position)
        if request:
            self._transmit(request)
        return request

    def _on_position(self, snapshot: PositionSnapshot) -> None:
        self.projector.update_player(snapshot.position, snapshot.heading)

        move = {'type': 'move', 'x': snapshot.x, 'y': snapshot.y}
        if not self._transmit(move):
            self.pending_move = move

    # Incoming

    def on(self, event_type: Type[E], handler: Callable[[E], None]) -> Callable[[E], None]:
        self._handlers[event_type].append(handler)
        return handler

    def handle_event(self, data: Union[Dict[str, Any], ServerEventBase]) -> Optional[ServerEventBase]:
        """Apply a server event to local state, then notify handlers; invalid payloads are dropped"""
        if isinstance(data, ServerEventBase):
            event = data
        else:
            try:
                event = parse_server_event(data)
            except ValueError as e:
                logger.warning(f"Ignoring server event: {e}")
                return None

        self._apply(event)

        for handler in self._handlers.get(type(event), ()):
            handler(event)

        return event

    def _apply(self, event: ServerEventBase) -> None:
        if isinstance(event, GameStateEvent):
            self.player = dict(event.player)
            self.room_config = event.room_config
            self.known_spawns = {spawn['id']: spawn for spawn in event.spawns}

        elif isinstance(event, SpawnDiscoveredEvent):
            self.known_spawns[event.spawn['id']] = event.spawn

        elif isinstance(event, (SpawnHiddenEvent, SpawnRemovedEvent)):
            self.known_spawns.pop(event.spawn_id, None)
            self.projector.release(event.spawn_id)

        elif isinstance(event, SpawnCapturedEvent):
            self.known_spawns.pop(event.spawn_id, None)
            self.projector.release(event.spawn_id)
            if self.player and event.player_id == self.player_id:
                self.player['points'] = event.new_points
                self.player['streak'] = event.streak
                self.player['multiplier'] = event.multiplier

        elif isinstance(event, PositionUpdatedEvent):
            self.server_position = Position.from_any(event.position)

        elif isinstance(event, CaptureFailedEvent):
            self.last_capture_failure = event

    # Rendering

    def visible_objects(self) -> List[ProjectedObject]:
        """Known spawns that are currently on screen, closest first"""
        if self.tracker.is_ready:
            self.projector.update_player(self.tracker.position, self.tracker.heading)

        candidates = [
            WorldObject(object_id=spawn_id, position=Position.from_any(spawn['position']), payload=spawn)
            for spawn_id, spawn in self.known_spawns.items()
        ]
        return self.projector.get_visible_objects(candidates)
