"""
Engine settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GameSettings(BaseSettings):
    """Round timing, odds and world-space tuning."""

    # Target time between consecutive contacts (seconds)
    hit_interval: float = Field(default=2.0, gt=0.0)

    # Odds (fixed, auditable)
    hazard_probability: float = Field(default=0.40, ge=0.0, le=1.0)
    lifeboat_probability: float = Field(default=0.05, ge=0.0, le=1.0)

    # Round flow
    betting_window: float = Field(default=5.0, gt=0.0)
    result_hold: float = Field(default=0.0, ge=0.0)  # seconds a terminal phase is shown before betting

    # Tick handling
    max_tick: float = Field(default=0.05, gt=0.0)  # clamp slow frames to 50 ms
    spawn_grace: float = Field(default=0.25, ge=0.0)
    settle_delay: float = Field(default=0.95, ge=0.0)

    # Speed calibration
    speed_multiplier: float = 1.5
    min_speed: float = 60.0
    lane_margin: float = 12.0

    # Obstacle geometry (px)
    obstacle_width: float = 220.0
    obstacle_height: float = 110.0
    cull_threshold: float = -40.0
    max_idle_obstacles: int = 2


class HitboxSettings(BaseSettings):
    """Collision padding in px.

    Positive ship_right_pad causes earlier touches; ice pads trim
    the obstacle hitbox.
    """

    ship_left_pad: float = 0.0
    ship_right_pad: float = 0.0
    ice_left_pad: float = 50.0
    ice_right_pad: float = 0.0


class LedgerSettings(BaseSettings):
    """Wallet defaults."""

    starting_balance: float = Field(default=1000.0, ge=0.0)
    default_bet: float = 10.0
    min_stake: float = 1.0


class Settings(BaseSettings):
    """Main engine settings."""

    model_config = SettingsConfigDict(
        env_prefix="CRUISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    mode: Literal["autopilot", "rtp"] = "autopilot"
    debug: bool = False

    # Headless runner
    fps: int = 60
    rounds: int = 5
    target_multiplier: float = 1.5
    rtp_rounds: int = 100_000
    seed: int | None = None

    # Nested settings
    game: GameSettings = Field(default_factory=GameSettings)
    hitbox: HitboxSettings = Field(default_factory=HitboxSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
