"""Configuration management for cuesync."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CUESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Playback
    metadata_timeout: float = 5.0
    tick_interval: float = 1 / 60
    default_frame_rate: float = 30.0
    ffprobe_path: str = "ffprobe"

    # Timeline
    marker_window: float = 2.0

    # Presence
    presence_ttl: float = 300.0
    cursor_ttl: float = 10.0

    # Sync
    handshake_timeout: float = 5.0
    relay_url: str = "ws://localhost:8000/ws/review"


# Global settings instance
settings = Settings()
