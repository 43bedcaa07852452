"""
Settings for the football data API.

Values come from the process environment first, then from ``.env.{ENVIRONMENT}``
and finally ``.env`` in the project root. Production refuses to start without
DATABASE_URL, ADMIN_TOKEN and FOOTBALL_API_KEY.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Literal, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).parent.parent.parent

DEFAULT_DATABASE_URL = "sqlite:///./football.db"

# Local client dev servers, allowed when CORS_ORIGINS_STR is unset outside production
DEV_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]

logger = logging.getLogger(__name__)


def env_files(environment: Optional[str] = None) -> Tuple[Path, ...]:
    """Env files in increasing priority: ``.env`` then ``.env.{ENVIRONMENT}``."""
    environment = environment or os.getenv("ENVIRONMENT", "development")
    return (PROJECT_ROOT / ".env", PROJECT_ROOT / f".env.{environment}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=env_files(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    # Application
    APP_NAME: str = "Football Data API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    DATABASE_URL: str = DEFAULT_DATABASE_URL

    # Shared secret for the admin-only sync endpoints
    ADMIN_TOKEN: str = ""

    # Football data provider (apifootball-style ?action=... API)
    FOOTBALL_API_BASE_URL: str = "https://apiv3.apifootball.com/"
    FOOTBALL_API_KEY: str = ""
    FOOTBALL_API_TIMEOUT: float = 30.0
    FOOTBALL_API_MAX_RETRIES: int = 3

    # Match sync season window
    SYNC_EVENTS_FROM: str = "2025-06-01"
    SYNC_EVENTS_TO: str = "2026-09-02"
    SYNC_SEASON_TAG: str = "2025/2026"

    # Background sync
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_SYNC_HOURS: str = "5,17"  # cron hour field
    SCHEDULER_TIMEZONE: str = "UTC"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE: Literal["memory", "redis"] = "memory"
    REDIS_URL: Optional[str] = None
    SYNC_RATE_LIMIT: str = "10/minute"

    # Comma-separated list
    CORS_ORIGINS_STR: str = ""

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def CORS_ORIGINS(self) -> list[str]:
        origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
        if not self.is_production():
            return origins or DEV_CORS_ORIGINS
        if "*" in origins:
            logger.warning("Ignoring wildcard CORS_ORIGINS_STR in production; list explicit origins")
            return []
        if not origins:
            logger.warning("CORS_ORIGINS_STR is not set in production; cross-origin requests are refused")
        return origins

    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    def validate_required_secrets(self) -> list[str]:
        """
        Names of secrets the current environment needs but does not have.

        Only production requires the database, admin and provider secrets;
        Redis rate limiting requires REDIS_URL everywhere.
        """
        missing = []
        if self.is_production():
            required = {
                "DATABASE_URL": self.DATABASE_URL != DEFAULT_DATABASE_URL,
                "ADMIN_TOKEN": bool(self.ADMIN_TOKEN),
                "FOOTBALL_API_KEY": bool(self.FOOTBALL_API_KEY),
            }
            missing.extend(name for name, present in required.items() if not present)
        if self.RATE_LIMIT_ENABLED and self.RATE_LIMIT_STORAGE == "redis" and not self.REDIS_URL:
            missing.append("REDIS_URL")
        return missing


settings = Settings()

missing_secrets = settings.validate_required_secrets()
if missing_secrets:
    logger.warning(f"Missing required secrets for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}")
    if settings.is_production():
        raise ValueError(
            f"Cannot start in production with missing secrets: {', '.join(missing_secrets)}"
        )
