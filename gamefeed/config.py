"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational store (MySQL-protocol) ──────────────────────────────────
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "gamefeed"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    # Statements after the game-row lock must see rows committed while waiting
    db_isolation_level: str = "READ COMMITTED"
    # Full SQLAlchemy URL; takes precedence over the db_* parts when set
    database_url: Optional[str] = None

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Activity feed ──────────────────────────────────────────────────────
    feed_default_limit: int = 20
    feed_max_limit: int = 50
    feed_source_timeout_seconds: float = 2.0   # per-source deadline
    feed_max_page: int = 50                    # deeper reads go through next_cursor

    # ── Follow suggestions ─────────────────────────────────────────────────
    suggestions_default_limit: int = 10
    suggestions_max_limit: int = 50

    # ── Rating aggregate ───────────────────────────────────────────────────
    rating_recompute_timeout_seconds: float = 5.0

    # ── Observability ──────────────────────────────────────────────────────
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "gamefeed-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
