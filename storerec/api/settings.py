"""Process-level settings for the StoreRec API.

Read from ``STOREREC_*`` environment variables (or a ``.env`` file). Engine
tunables live in ``storerec.recommender.config.RecommenderConfig``.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from storerec.recommender.config import ENV_PREFIX


class ApiSettings(BaseSettings):
    """Where the store is seeded from and how verbose logging is."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: str = Field(default="data", description="Directory holding products.csv and behavior.csv")
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        return str(value).upper()


@lru_cache
def get_settings() -> ApiSettings:
    """Cached settings instance; ``get_settings.cache_clear()`` rereads the environment."""
    return ApiSettings()
