"""Application configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]

ContextLinksMode = Literal["off", "inline-only", "inline+hover", "full"]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Drift Reference API"
    database_url: str = "sqlite+pysqlite:///./drift.db"
    index_cache_key_prefix: str = "drift_conversation_entity_index"
    index_flush_interval: int = 10
    fuzzy_match_threshold: float = 0.82
    recent_list_limit: int = 20
    enable_analytics: bool = False
    context_links: ContextLinksMode = "inline+hover"
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    model_config = SettingsConfigDict(
        env_prefix="DRIFT_",
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
