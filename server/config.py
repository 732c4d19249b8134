"""
Centralized configuration for the card table server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.ALLOWED_ORIGIN)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Transport
    ALLOWED_ORIGIN: str = "http://localhost:5173"

    # Room settings
    ROOM_CODE_LENGTH: int = 6
    ACTION_LOG_CAP: int = 25
    CHAT_HISTORY_CAP: int = 100

    # Game settings
    STARTER_DECK_SIZE: int = 15

    # Error tracking
    SENTRY_DSN: str = ""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 3001),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            ALLOWED_ORIGIN=get_env("ALLOWED_ORIGIN", "http://localhost:5173"),
            ROOM_CODE_LENGTH=get_env_int("ROOM_CODE_LENGTH", 6),
            ACTION_LOG_CAP=get_env_int("ACTION_LOG_CAP", 25),
            CHAT_HISTORY_CAP=get_env_int("CHAT_HISTORY_CAP", 100),
            STARTER_DECK_SIZE=get_env_int("STARTER_DECK_SIZE", 15),
            SENTRY_DSN=get_env("SENTRY_DSN", ""),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()

