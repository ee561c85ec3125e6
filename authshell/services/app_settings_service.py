"""
Application Settings Service.

Read/write access to the ``app_settings`` key-value table in the local
SQLite database.  Provides the remember-me preference used by the auth
router and a generic get/set/delete used by ``SqliteSessionStorage``.

``app_settings`` stores infrastructure state, not domain data, so this
service talks to SQLite directly instead of going through a repository::

    CREATE TABLE IF NOT EXISTS app_settings (
        key   TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""

from __future__ import annotations

from typing import Optional

from authshell.database import DatabaseManager
from authshell.logger import StructuredLogger

_KEY_REMEMBER_ME: str = "REMEMBER_ME_ENABLED"


class AppSettingsService:
    """Manages persistent application preferences in local SQLite.

    Implements ``IPreferenceStore``.

    Parameters
    ----------
    db:
        Initialised ``DatabaseManager`` with active SQLite connection.
    logger:
        Structured logger instance.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    # ------------------------------------------------------------------
    # Generic key-value access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        """Read a setting value by key.  Returns ``None`` if not found."""
        try:
            row = self._db.sqlite.execute(
                "SELECT value FROM app_settings WHERE key = ?",
                (key,),
            ).fetchone()
            return row["value"] if row is not None else None
        except Exception as exc:
            self._logger.warning("Failed to read app_settings[%s]: %s", key, exc)
            return None

    def set(self, key: str, value: str) -> bool:
        """Upsert a setting value.  Returns ``True`` on success."""
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    """
                    INSERT INTO app_settings (key, value)
                    VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value      = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
                self._db.sqlite.commit()
            self._logger.debug("app_settings[%s] updated.", key)
            return True
        except Exception as exc:
            self._logger.error("Failed to write app_settings[%s]: %s", key, exc)
            return False

    def delete(self, key: str) -> bool:
        """Remove a setting.  Returns ``True`` on success (including absent keys)."""
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    "DELETE FROM app_settings WHERE key = ?", (key,),
                )
                self._db.sqlite.commit()
            return True
        except Exception as exc:
            self._logger.error("Failed to delete app_settings[%s]: %s", key, exc)
            return False

    def delete_prefix(self, prefix: str) -> bool:
        """Remove every setting whose key starts with *prefix*."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    "DELETE FROM app_settings WHERE key LIKE ? ESCAPE '\\'",
                    (escaped + "%",),
                )
                self._db.sqlite.commit()
            return True
        except Exception as exc:
            self._logger.error("Failed to delete app_settings[%s*]: %s", prefix, exc)
            return False

    # ------------------------------------------------------------------
    # Typed convenience: remember me
    # ------------------------------------------------------------------

    def is_remember_me_enabled(self) -> bool:
        """Return the stored preference; ``False`` when never written."""
        return self.get(_KEY_REMEMBER_ME) == "1"

    def set_remember_me(self, enabled: bool) -> None:
        self.set(_KEY_REMEMBER_ME, "1" if enabled else "0")
        self._logger.info(
            "Remember-me set to %s.", enabled,
            extra={"event": "REMEMBER_ME", "enabled": enabled},
        )

    def clear_remember_me(self) -> None:
        self.delete(_KEY_REMEMBER_ME)
        self._logger.info("Remember-me cleared.", extra={"event": "REMEMBER_ME_CLEARED"})
