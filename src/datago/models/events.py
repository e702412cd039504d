"""
Server -> client event models
Typed payloads for every message the game service emits
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ServerEventBase(BaseModel):
    """Base for outbound events; wire names are camelCase aliases"""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GameStateEvent(ServerEventBase):
    type: Literal['game-state'] = 'game-state'
    player: Dict[str, Any]
    spawns: List[Dict[str, Any]]
    room_config: Dict[str, Any] = Field(alias='roomConfig')
    spawn_types: Dict[str, Any] = Field(default_factory=dict, alias='spawnTypes')
    total_players: int = Field(alias='totalPlayers')


class SpawnDiscoveredEvent(ServerEventBase):
    type: Literal['spawn-discovered'] = 'spawn-discovered'
    spawn: Dict[str, Any]
    distance: float


class SpawnHiddenEvent(ServerEventBase):
    type: Literal['spawn-hidden'] = 'spawn-hidden'
    spawn_id: int = Field(alias='spawnId')
    distance: float


class SpawnRemovedEvent(ServerEventBase):
    type: Literal['spawn-removed'] = 'spawn-removed'
    spawn_id: int = Field(alias='spawnId')


class SpawnCapturedEvent(ServerEventBase):
    type: Literal['spawn-captured'] = 'spawn-captured'
    spawn_id: int = Field(alias='spawnId')
    player_id: str = Field(alias='playerId')
    player_name: Optional[str] = Field(default=None, alias='playerName')
    new_points: int = Field(alias='newPoints')
    points_earned: int = Field(alias='pointsEarned')
    multiplier: float
    streak: int
    object_id: str = Field(alias='objectId')
    object_name: str = Field(alias='objectName')
    object_rarity: str = Field(alias='objectRarity')
    capture_method: Optional[str] = Field(default=None, alias='captureMethod')
    position: Optional[Dict[str, float]] = None


class CaptureFailedEvent(ServerEventBase):
    type: Literal['capture-failed'] = 'capture-failed'
    reason: str
    distance: Optional[float] = None
    required: Optional[float] = None


class PlayerJoinedEvent(ServerEventBase):
    type: Literal['player-joined'] = 'player-joined'
    player: Dict[str, Any]


class PlayerLeftEvent(ServerEventBase):
    type: Literal['player-left'] = 'player-left'
    player_id: str = Field(alias='playerId')
    player_name: str = Field(alias='playerName')


class PlayerMovedEvent(ServerEventBase):
    type: Literal['player-moved'] = 'player-moved'
    player_id: str = Field(alias='playerId')
    position: Dict[str, float]


class PositionUpdatedEvent(ServerEventBase):
    type: Literal['position-updated'] = 'position-updated'
    position: Dict[str, float]


class PongEvent(ServerEventBase):
    type: Literal['pong'] = 'pong'
    timestamp: int
    client_timestamp: Optional[int] = Field(default=None, alias='clientTimestamp')


class ErrorEvent(ServerEventBase):
    type: Literal['error'] = 'error'
    message: str
    code: str


ServerEvent = Annotated[
    Union[
        GameStateEvent,
        SpawnDiscoveredEvent,
        SpawnHiddenEvent,
        SpawnRemovedEvent,
        SpawnCapturedEvent,
        CaptureFailedEvent,
        PlayerJoinedEvent,
        PlayerLeftEvent,
        PlayerMovedEvent,
        PositionUpdatedEvent,
        PongEvent,
        ErrorEvent,
    ],
    Field(discriminator='type')
]

_server_event_adapter = TypeAdapter(ServerEvent)


def parse_server_event(data: Dict[str, Any]) -> ServerEventBase:
    """Validate a raw wire dict into its typed event; raises ValueError on unknown or invalid payloads"""
    try:
        return _server_event_adapter.validate_python(data)
    except Exception as e:
        raise ValueError(f"Invalid server event {data.get('type')!r}: {e}")
