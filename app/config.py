from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.models import GroupBy, LayoutOptions, PerformanceConfig, Size

DEFAULT_CONFIG_PATH = Path("config/schema_canvas.yaml")
CONFIG_PATH_ENV = "SCHEMA_CANVAS_CONFIG_PATH"


class CanvasSettings(BaseModel):
    width: float = Field(default=1200.0, gt=0)
    height: float = Field(default=800.0, gt=0)
    force_steps: int = Field(default=1, ge=1)
    group_by: GroupBy = "relationship"

    def size(self) -> Size:
        return Size(self.width, self.height)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SCHEMA_CANVAS_", env_nested_delimiter="__")

    title: str = "Schema Canvas"
    log_level: str = "INFO"
    layout: LayoutOptions = LayoutOptions()
    performance: PerformanceConfig = PerformanceConfig()
    canvas: CanvasSettings = CanvasSettings()
    max_sessions: int = Field(default=64, ge=1)

    _yaml_path: ClassVar[Path | None] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            msg = f"Unknown log level: {value}"
            raise ValueError(msg)
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        if cls._yaml_path is None:
            return init_settings, env_settings, dotenv_settings, file_secret_settings
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path)
        return init_settings, env_settings, dotenv_settings, file_secret_settings, yaml_settings


def resolve_config_path(config_path: Path | None = None) -> Path | None:
    """Explicit path, then `SCHEMA_CANVAS_CONFIG_PATH`, then the default file if present."""
    if config_path is None and os.getenv(CONFIG_PATH_ENV):
        config_path = Path(os.environ[CONFIG_PATH_ENV])
    if config_path is None:
        return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)
    return config_path


def load_settings(config_path: Path | None = None) -> AppSettings:
    yaml_path = resolve_config_path(config_path)
    previous = AppSettings._yaml_path
    AppSettings._yaml_path = yaml_path
    try:
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
