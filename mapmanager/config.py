"""Configuration management using Pydantic settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "MAPMANAGER"
    debug: bool = False

    # Storage: "memory" keeps everything in-process, "sql" uses database_url
    storage_backend: str = "memory"
    database_url: str = "sqlite:///./mapmanager.db"

    # Populate an empty store with the demo depot/warehouse/office maps
    seed_demo_data: bool = True

    # Map loaded at startup; falls back to the active map, then the first map
    default_map_id: Optional[str] = None

    # Modeled latency of mode changes (seconds)
    transition_delay: float = 0.3
    save_delay: float = 1.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000


settings = Settings()
