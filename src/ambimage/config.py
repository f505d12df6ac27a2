"""
Configuration for the ambient glow pipeline.

Settings are fixed for the life of a pipeline. Defaults can be overridden
through AMBIMAGE_* environment variables or keyword arguments.
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Colour boost, sampling and fade parameters."""

    model_config = SettingsConfigDict(env_prefix="AMBIMAGE_", frozen=True, extra="ignore")

    brightness: float = Field(
        default=12.7, gt=0, description="Multiplier applied to the HSV value of each lamp colour"
    )
    saturation: float = Field(
        default=1.4, gt=0, description="Multiplier applied to the HSV saturation of each lamp colour"
    )
    lamps: int = Field(default=5, ge=1, description="Number of bands sampled along each edge")
    block_size: int = Field(default=40, ge=1, description="Width of the sampled edge strip in pixels")
    fade_time: float = Field(default=400, ge=0, description="Fade-in duration in milliseconds")
    light_width: int = Field(default=120, ge=1, description="Width of each rendered light in pixels")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide default settings, read once."""
    settings = Settings()
    logger.debug(f"Loaded settings: {settings.model_dump()}")
    return settings
