"""
Docstore configuration - all environment variables in one place.

Read from environment at import time. Never hardcode credentials.
Only the Postgres adapter needs settings; the in-memory store needs none.
"""

from __future__ import annotations

import os


class Settings:
    """Settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Connection pool
    POOL_MIN_SIZE: int = int(os.environ.get("DOCSTORE_POOL_MIN_SIZE", "1"))
    POOL_MAX_SIZE: int = int(os.environ.get("DOCSTORE_POOL_MAX_SIZE", "10"))
    COMMAND_TIMEOUT: float = float(os.environ.get("DOCSTORE_COMMAND_TIMEOUT", "60"))

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    def require_database_url(self) -> str:
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL environment variable is required")
        return self.DATABASE_URL


# Singleton instance
settings = Settings()
