"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///tradejournal.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]  # Vite dev server

    # Webhooks
    webhook_secret: str = "change-me-in-production"

    # IANA zone for calendar days and hour-of-day patterns; empty = host local time
    timezone: str = ""

    # Event stream
    heartbeat_interval_seconds: int = 30
    subscriber_queue_size: int = 256
    init_recent_trades: int = 10
    init_recent_signals: int = 10

    # Agent memory sync
    memory_sync_cooldown_seconds: int = 60
    memory_sync_interval_seconds: int = 300  # 5 minutes
    memory_server_url: str = "http://localhost:8000"

    # Insight generator (LLM); empty key = canned insights only
    insight_api_key: str = ""
    insight_model: str = "gemini-2.0-flash"
    insight_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    insight_timeout_seconds: float = 15.0

    model_config = {"env_prefix": "TJ_", "env_file": ".env"}


settings = Settings()
