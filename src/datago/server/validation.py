"""
Input Validation Models for the DataGo game server
Pydantic models for validating incoming WebSocket messages
"""

import math
import time
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.geometry import Position


class MessageType(str, Enum):
    """Client -> server message types"""
    JOIN = "join"
    MOVE = "move"
    ATTEMPT_CAPTURE = "attempt-capture"
    PING = "ping"


class CaptureMethod(str, Enum):
    """How the client triggered a capture"""
    PROXIMITY = "proximity"
    THROW = "throw"
    TAP = "tap"


def _finite(v):
    if v is not None and not math.isfinite(v):
        raise ValueError('Coordinate must be finite')
    return v


class PositionData(BaseModel):
    """Room coordinates in meters"""
    x: float = Field(..., ge=-1000.0, le=1000.0, description="X coordinate")
    y: float = Field(..., ge=-1000.0, le=1000.0, description="Y coordinate")

    @field_validator('x', 'y')
    @classmethod
    def validate_finite(cls, v):
        return _finite(v)

    def to_position(self) -> Position:
        return Position(self.x, self.y)


class BaseMessage(BaseModel):
    """Base message structure"""
    type: str
    timestamp: Optional[int] = Field(default=None, gt=0, description="Client time in milliseconds")

    model_config = ConfigDict(populate_by_name=True)


class JoinMessage(BaseMessage):
    """Join the room"""
    type: Literal["join"]
    name: str = Field(default="Player", min_length=1, max_length=50, description="Display name")
    position: Optional[PositionData] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Name cannot be empty')
        return v


class MoveMessage(BaseMessage):
    """Tracked position update; the server clamps it to the room"""
    type: Literal["move"]
    x: float = Field(..., ge=-1000.0, le=1000.0)
    y: float = Field(..., ge=-1000.0, le=1000.0)

    @field_validator('x', 'y')
    @classmethod
    def validate_finite(cls, v):
        return _finite(v)


class AttemptCaptureMessage(BaseMessage):
    """Capture request; spawn_id is advisory"""
    type: Literal["attempt-capture"]
    player_position: Optional[PositionData] = Field(default=None, alias='playerPosition')
    capture_method: CaptureMethod = Field(default=CaptureMethod.PROXIMITY, alias='captureMethod')
    spawn_id: Optional[int] = Field(default=None, alias='spawnId')
    throw_accuracy: Optional[str] = Field(default=None, alias='throwAccuracy')
    throw_multiplier: Optional[float] = Field(default=None, ge=0.0, le=5.0, alias='throwMultiplier')


class PingMessage(BaseMessage):
    """Ping message validation"""
    type: Literal["ping"]


# Rate limiting models
class RateLimitInfo(BaseModel):
    """Rate limiting information"""
    requests_per_minute: int = 600
    burst_size: int = 40
    window_size_seconds: int = 60


class UserRateLimit(BaseModel):
    """Per-player rate limiting state"""
    user_id: str
    requests_count: int = 0
    window_start: float = 0
    burst_count: int = 0
    last_request: float = 0


class ErrorCode(str, Enum):
    """Codes carried by error events"""
    INVALID_JSON = "INVALID_JSON"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    NOT_JOINED = "NOT_JOINED"


_VALIDATORS = {
    MessageType.JOIN: JoinMessage,
    MessageType.MOVE: MoveMessage,
    MessageType.ATTEMPT_CAPTURE: AttemptCaptureMessage,
    MessageType.PING: PingMessage,
}


def validate_client_message(data: Any) -> BaseMessage:
    """
    Validate incoming WebSocket message and return appropriate typed model
    """
    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object")

    message_type = data.get('type')
    if not message_type:
        raise ValueError("Message type is required")

    try:
        validator_class = _VALIDATORS[MessageType(message_type)]
    except ValueError:
        raise ValueError(f"Unknown message type: {message_type}")

    try:
        return validator_class(**data)
    except Exception as e:
        raise ValueError(f"Invalid {message_type} message: {str(e)}")


def validate_rate_limit(user_id: str, rate_limits: Dict[str, UserRateLimit],
                        limit_info: RateLimitInfo, now: Optional[float] = None) -> bool:
    """
    Check if a player is within rate limits
    """
    current_time = time.time() if now is None else now

    if user_id not in rate_limits:
        rate_limits[user_id] = UserRateLimit(user_id=user_id)

    user_limit = rate_limits[user_id]

    # Reset window if needed
    if current_time - user_limit.window_start >= limit_info.window_size_seconds:
        user_limit.window_start = current_time
        user_limit.requests_count = 0
        user_limit.burst_count = 0

    # Burst: messages in quick succession
    if current_time - user_limit.last_request < 1.0:
        user_limit.burst_count += 1
        if user_limit.burst_count > limit_info.burst_size:
            return False
    else:
        user_limit.burst_count = 0

    if user_limit.requests_count >= limit_info.requests_per_minute:
        return False

    user_limit.requests_count += 1
    user_limit.last_request = current_time

    return True
