"""Server configuration via environment variables (prefix ``PODOAL_``)."""

from __future__ import annotations

from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from game.logic.enums import GridShape
from game.logic.settings import GameSettings
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class PodoalServerSettings(BaseSettings):
    model_config = {"env_prefix": "PODOAL_"}

    # Hosted store; both must be set or leaderboard, chat and presence stay off.
    store_url: str | None = None
    store_api_key: str | None = None
    store_timeout_seconds: float = Field(default=10.0, gt=0)

    stats_path: str = Field(default="backend/data/stats.json", min_length=1)
    log_dir: str = Field(default="backend/logs/game", min_length=1)
    cors_origins: list[str] = ["http://localhost:5173"]
    max_sessions: int = Field(default=1000, ge=1)

    leaderboard_timezone: str = "Asia/Seoul"
    leaderboard_page_size: int = Field(default=100, ge=1, le=1000)
    online_window_seconds: float = Field(default=300.0, gt=0)
    presence_interval_seconds: float = Field(default=60.0, ge=0)  # 0 disables the heartbeat
    chat_poll_seconds: float = Field(default=2.0, gt=0)

    grid_shape: GridShape = GridShape.STAIRCASE
    rectangle_size: tuple[int, int] | None = None
    elapsed_tick_seconds: float = Field(default=0.1, ge=0)
    verification_retry_delay_seconds: float = Field(default=0.0, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @field_validator("store_url", "store_api_key", mode="before")
    @classmethod
    def blank_as_unset(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("leaderboard_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone {v!r}") from e
        return v

    @property
    def store_configured(self) -> bool:
        return self.store_url is not None and self.store_api_key is not None

    def game_settings(self) -> GameSettings:
        return GameSettings(
            grid_shape=self.grid_shape,
            rectangle_size=self.rectangle_size,
            elapsed_tick_seconds=self.elapsed_tick_seconds,
            verification_retry_delay_seconds=self.verification_retry_delay_seconds,
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
