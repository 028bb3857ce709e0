"""
Runtime Settings

Centralized configuration for the judge queue.
All values are loaded from environment variables (optionally via .env).

Engine functions never read these directly; the web layer and CLI pass
them in as explicit parameters.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

load_dotenv(dotenv_path=ENV_FILE)


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on bad input."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_float_env(key: str, default: float) -> float:
    """Get a float value from environment variable, falling back on bad input."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    """
    Settings for the application.

    To add a new setting:
    1. Add it here as a class attribute
    2. Load it from an environment variable
    3. Pass it explicitly into the service that needs it
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Storage
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./hackjudge.db")
    DB_BUSY_TIMEOUT_SECONDS: float = get_float_env("DB_BUSY_TIMEOUT_SECONDS", 30.0)

    # Judge queue
    JUDGES_PER_TEAM: int = get_int_env("JUDGES_PER_TEAM", 2)
    LOCK_MAX_ATTEMPTS: int = get_int_env("LOCK_MAX_ATTEMPTS", 10)
    LOCK_BASE_DELAY_MS: int = get_int_env("LOCK_BASE_DELAY_MS", 25)
    QUEUE_MAX_ATTEMPTS: int = get_int_env("QUEUE_MAX_ATTEMPTS", 5)
    LOCK_STALE_AFTER_SECONDS: int = get_int_env("LOCK_STALE_AFTER_SECONDS", 900)

    # Web layer
    NEXT_TEAM_RATE_LIMIT: str = os.getenv("NEXT_TEAM_RATE_LIMIT", "60/minute")
    ENABLE_DOCS: bool = get_bool_env("ENABLE_DOCS", ENVIRONMENT == "development")
    ALLOWED_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if origin.strip()
    ]

    @classmethod
    def judges_per_team(cls) -> int:
        """Required judges per team, never below 1."""
        return max(1, cls.JUDGES_PER_TEAM)

    @classmethod
    def lock_base_delay_seconds(cls) -> float:
        return max(0, cls.LOCK_BASE_DELAY_MS) / 1000

    @classmethod
    def get_all_settings(cls) -> dict:
        """Get all settings as a dictionary (used by `cli system config`)."""
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper() and not key.startswith('_')
        }
