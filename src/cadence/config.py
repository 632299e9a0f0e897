from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class ConfigError(RuntimeError):
    """Raised when a required credential or secret is not configured."""


def _to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    app_env: str
    debug: bool
    database_url: str
    cors_allow_origins: list[str]
    request_body_limit_bytes: int
    request_timeout_seconds: int
    sleeper_base_url: str
    sleeper_timeout_seconds: int
    sleeper_max_concurrency: int
    sleeper_retry_attempts: int
    player_sync_batch_size: int
    stats_week_delay_seconds: float
    anthropic_api_key: str | None
    chat_model: str
    chat_max_tokens: int
    chat_max_tool_rounds: int
    cron_secret: str | None

    @property
    def database_backend(self) -> str:
        return self.database_url.split(":", 1)[0].split("+", 1)[0]

    def require_cron_secret(self) -> str:
        if not self.cron_secret:
            raise ConfigError("CRON_SECRET not configured")
        return self.cron_secret


def load_env_files(root: Path | None = None) -> None:
    root = root or PROJECT_ROOT
    # .env.local wins over .env; neither overrides the real environment.
    for name in (".env.local", ".env"):
        path = root / name
        if path.exists():
            load_dotenv(path, override=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_env_files()
    env = os.getenv("CADENCE_APP_ENV", "development").strip().lower()
    default_db = PROJECT_ROOT / "data" / "cadence.db"
    database_url = os.getenv("CADENCE_DATABASE_URL") or f"sqlite+pysqlite:///{default_db}"
    cors_raw = os.getenv("CADENCE_CORS_ALLOW_ORIGINS", "http://localhost:3000,http://localhost:8000")
    origins = [entry.strip() for entry in cors_raw.split(",") if entry.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://localhost:8000"]

    return Settings(
        app_env=env,
        debug=_to_bool(os.getenv("CADENCE_DEBUG"), default=(env != "production")),
        database_url=database_url,
        cors_allow_origins=origins,
        request_body_limit_bytes=int(os.getenv("CADENCE_REQUEST_BODY_LIMIT_BYTES", str(1024 * 1024))),
        request_timeout_seconds=int(os.getenv("CADENCE_REQUEST_TIMEOUT_SECONDS", "30")),
        sleeper_base_url=os.getenv("CADENCE_SLEEPER_BASE_URL", "https://api.sleeper.com"),
        sleeper_timeout_seconds=int(os.getenv("CADENCE_SLEEPER_TIMEOUT_SECONDS", "45")),
        sleeper_max_concurrency=int(os.getenv("CADENCE_SLEEPER_MAX_CONCURRENCY", "4")),
        sleeper_retry_attempts=int(os.getenv("CADENCE_SLEEPER_RETRY_ATTEMPTS", "3")),
        player_sync_batch_size=int(os.getenv("CADENCE_PLAYER_SYNC_BATCH_SIZE", "500")),
        stats_week_delay_seconds=float(os.getenv("CADENCE_STATS_WEEK_DELAY_SECONDS", "0.1")),
        anthropic_api_key=_optional("ANTHROPIC_API_KEY"),
        chat_model=os.getenv("CADENCE_CHAT_MODEL", "claude-sonnet-4-5"),
        chat_max_tokens=int(os.getenv("CADENCE_CHAT_MAX_TOKENS", "1024")),
        chat_max_tool_rounds=int(os.getenv("CADENCE_CHAT_MAX_TOOL_ROUNDS", "3")),
        cron_secret=_optional("CRON_SECRET"),
    )


def reset_settings_cache() -> None:
    get_settings.cache_clear()
