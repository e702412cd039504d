"""
DataGo Game Service Configuration
Environment-based settings
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.game import ProximityConfig, RoomConfig, ZoneConfig


class Settings(BaseSettings):
    """Game service settings from environment"""

    # Environment
    ENVIRONMENT: str = Field(default="development", description="Environment (development/staging/production)")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: Optional[str] = Field(default=None, description="Directory for rotating log files (console only if unset)")

    # Server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=3000, description="Server port")
    CORS_ORIGINS: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # Room layout
    ROOM_WIDTH: float = Field(default=5.0, gt=0, description="Room width in meters")
    ROOM_HEIGHT: float = Field(default=5.0, gt=0, description="Room height in meters")
    ZONE_COLS: int = Field(default=2, ge=1, description="Zone grid columns")
    ZONE_ROWS: int = Field(default=2, ge=1, description="Zone grid rows")
    SPAWNS_PER_ZONE: int = Field(default=1, ge=0, description="Target spawns per zone")

    # Spawn engine
    SPAWN_INTERVAL_MS: int = Field(default=6000, gt=0, description="Spawn generation interval")
    MAX_SIMULTANEOUS_SPAWNS: int = Field(default=6, ge=0, description="Global cap on active spawns")
    MIN_SPAWN_DISTANCE: float = Field(default=1.8, ge=0, description="Minimum distance between spawns in meters")
    SPAWN_POSITION_ATTEMPTS: int = Field(default=5, ge=1, description="Placement attempts per spawn")
    REPLENISH_DELAY_MS: int = Field(default=2000, ge=0, description="Delay before backfilling after a capture")

    # Proximity engine
    DISCOVERY_RANGE: float = Field(default=3.0, gt=0, description="Distance at which spawns become visible")
    HIDE_RANGE: float = Field(default=4.0, gt=0, description="Distance at which visible spawns are hidden")
    PROXIMITY_INTERVAL_MS: int = Field(default=1500, gt=0, description="Proximity check interval")

    # External backend (registrations, captures, disconnections)
    BACKEND_BASE_URL: Optional[str] = Field(default=None, description="Backend API base URL")
    BACKEND_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0, description="Backend request timeout")

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = Field(default=600, ge=1, description="Messages per player per minute")
    RATE_LIMIT_BURST: int = Field(default=40, ge=1, description="Messages per player within one second")

    model_config = SettingsConfigDict(env_file=".env", env_prefix="DATAGO_", case_sensitive=True)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT.lower() == "development"

    def room_config(self) -> RoomConfig:
        """Build the room configuration used by the spawn engine"""
        return RoomConfig(
            width=self.ROOM_WIDTH,
            height=self.ROOM_HEIGHT,
            zones=ZoneConfig(
                cols=self.ZONE_COLS,
                rows=self.ZONE_ROWS,
                spawns_per_zone=self.SPAWNS_PER_ZONE
            ),
            spawn_interval_ms=self.SPAWN_INTERVAL_MS,
            max_simultaneous_spawns=self.MAX_SIMULTANEOUS_SPAWNS,
            min_spawn_distance=self.MIN_SPAWN_DISTANCE,
            spawn_position_attempts=self.SPAWN_POSITION_ATTEMPTS,
            replenish_delay_ms=self.REPLENISH_DELAY_MS
        )

    def proximity_config(self) -> ProximityConfig:
        """Build the proximity configuration"""
        return ProximityConfig(
            discovery_range=self.DISCOVERY_RANGE,
            hide_range=self.HIDE_RANGE,
            update_interval_ms=self.PROXIMITY_INTERVAL_MS
        )


# Global settings instance
_settings = None

def get_settings() -> Settings:
    """Get application settings (singleton)"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


__all__ = ["Settings", "get_settings"]
