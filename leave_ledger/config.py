"""Application configuration via environment variables."""

import json
from typing import Any, List

from pydantic_settings import BaseSettings

from leave_ledger.common.constants import JanuaryExclusionScope


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./leave_ledger.db"
    AUTO_CREATE_TABLES: bool = True

    # App
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"
    CORS_ORIGINS: str = '["http://localhost:3000"]'
    RATE_LIMIT: str = "60/minute"

    # Ledger rules
    ALLOW_CLEAR_APPROVED: bool = False
    JANUARY_EXCLUSION_SCOPE: JanuaryExclusionScope = JanuaryExclusionScope.single_employee
    CARRYOVER_WINDOW_DAYS: int = 15

    # Holiday calendar: JSON list of {"month", "day", "name", "category"}
    LOCAL_HOLIDAYS: str = "[]"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS JSON string into a list."""
        try:
            return json.loads(self.CORS_ORIGINS)
        except (json.JSONDecodeError, TypeError):
            return ["http://localhost:3000"]

    @property
    def local_holidays_list(self) -> List[dict[str, Any]]:
        """Parse LOCAL_HOLIDAYS JSON string into a list of holiday rows."""
        try:
            rows = json.loads(self.LOCAL_HOLIDAYS)
        except (json.JSONDecodeError, TypeError):
            return []
        return rows if isinstance(rows, list) else []

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
