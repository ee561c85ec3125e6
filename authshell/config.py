"""
Application Configuration.

Pydantic Settings model for the AuthShell application.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    PROFILE_TABLE: str = "users"
    SERVER_TIME_RPC: str = "server_now"
    EMAIL_REDIRECT_URL: str = ""
    PASSWORD_RESET_REDIRECT_URL: str = ""
    DEPENDENCY_CHECK_TIMEOUT_S: float = 10.0

    # --- Google Sign-In ---
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: SecretStr = SecretStr("")
    GOOGLE_SIGN_IN_TIMEOUT_S: float = 180.0

    # --- Local storage ---
    LOCAL_DB_PATH: str = "authshell_local.db"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "authshell.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    # --- UI ---
    EVENT_LOOP_INTERVAL_MS: int = 20

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators are told which backend features will not work.
        """
        _log = logging.getLogger("authshell.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found: all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL or SUPABASE_ANON_KEY is empty: the backend "
                "dependency check will fail at startup."
            )

        if not self.GOOGLE_CLIENT_ID:
            _log.warning(
                "GOOGLE_CLIENT_ID is empty: Google Sign-In is disabled."
            )

        return self

    @property
    def is_google_configured(self) -> bool:
        """``True`` when a Google OAuth client id is available."""
        return bool(self.GOOGLE_CLIENT_ID.strip())


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern so the fast path never takes the lock.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
