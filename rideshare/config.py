"""Project configuration.

Loads environment variables from a `.env` file located in the project root
and exposes a `Config` class with typed attributes and helpers.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv


# load .env from project root (one level above the package)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except (TypeError, ValueError):
        return default


class Config:
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # JWT signing for the admin session cookie
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-this-secret-in-production")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7)
    AUTH_COOKIE_NAME: str = os.getenv("AUTH_COOKIE_NAME", "admin-auth-token")
    AUTH_COOKIE_SECURE: bool = os.getenv("AUTH_COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

    # First admin account, created on startup when the users table is empty
    ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "")

    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    JOINABLE_TRIPS_LIMIT: int = _int_env("JOINABLE_TRIPS_LIMIT", 20)
    ADMIN_PAGE_SIZE: int = _int_env("ADMIN_PAGE_SIZE", 10)

    @staticmethod
    def get_database_url() -> str:
        """Return the normalized database URL (empty string when unset)."""
        url = Config.DATABASE_URL.strip()
        if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
            url = url[1:-1]
        # hosting providers hand out postgres://, SQLAlchemy wants postgresql://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    @staticmethod
    def validate() -> List[str]:
        """Validate critical configuration and return a list of warnings.

        Returns:
            List of warning messages. Empty list means all is good.
        """
        warnings = []
        if Config.SECRET_KEY == "change-this-secret-in-production":
            warnings.append("WARNING: SECRET_KEY is not set, admin sessions use the default key")
        if not Config.ADMIN_USERNAME or not Config.ADMIN_PASSWORD:
            warnings.append("WARNING: ADMIN_USERNAME/ADMIN_PASSWORD not set, no bootstrap admin will be created")
        if Config.get_database_url().startswith("sqlite"):
            warnings.append("WARNING: Using SQLite database")
        if not Config.AUTH_COOKIE_SECURE:
            warnings.append("WARNING: AUTH_COOKIE_SECURE is off, enable it behind HTTPS")
        return warnings
