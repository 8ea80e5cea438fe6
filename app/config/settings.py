# app/config/settings.py
# Runtime configuration loaded from the environment

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings; keyword arguments override the environment"""

    def __init__(self, **overrides):
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./taskboard.db")
        self.db_sslmode = os.getenv("DB_SSLMODE")
        self.default_task_limit = int(os.getenv("DEFAULT_TASK_LIMIT", 100))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.cors_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

        # Consistency audit
        self.sync_audit_enabled = _env_bool("SYNC_AUDIT_ENABLED", "true")
        self.sync_audit_interval_minutes = int(os.getenv("SYNC_AUDIT_INTERVAL_MINUTES", 10))
        self.sync_audit_repair = _env_bool("SYNC_AUDIT_REPAIR", "false")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)
