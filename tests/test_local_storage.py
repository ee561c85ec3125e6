import json
import sqlite3

import pytest

from authshell.database import DatabaseManager
from authshell.schema import CURRENT_SCHEMA_VERSION, initialize_schema
from authshell.services.app_settings_service import AppSettingsService
from authshell.utils.audit import log_audit_event


def table_names(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row[0] for row in rows}


class TestSchema:
    def test_fresh_database(self, logger):
        """Should create every table and record the current version."""
        conn = sqlite3.connect(":memory:")
        initialize_schema(conn, logger)

        assert {"schema_version", "app_settings", "audit_log"} <= table_names(conn)
        version = conn.execute("SELECT version FROM schema_version").fetchone()[0]
        assert version == CURRENT_SCHEMA_VERSION

    def test_idempotent(self, logger):
        """Should be safe to run on every startup."""
        conn = sqlite3.connect(":memory:")
        initialize_schema(conn, logger)
        initialize_schema(conn, logger)

        assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == 1

    def test_keeps_existing_rows(self, logger):
        """Should leave stored settings alone when the schema is already current."""
        conn = sqlite3.connect(":memory:")
        initialize_schema(conn, logger)
        conn.execute("INSERT INTO app_settings (key, value) VALUES ('REMEMBER_ME_ENABLED', '1')")
        conn.commit()

        initialize_schema(conn, logger)

        assert conn.execute("SELECT value FROM app_settings").fetchone()[0] == "1"

    def test_records_version_one(self, logger):
        """Should start a new file at version 1."""
        conn = sqlite3.connect(":memory:")
        initialize_schema(conn, logger)

        assert CURRENT_SCHEMA_VERSION == 1
        assert conn.execute("SELECT version FROM schema_version").fetchone()[0] == 1


class TestDatabaseManager:
    def test_close_is_idempotent(self, logger):
        """Should allow close() to be called repeatedly."""
        manager = DatabaseManager(sqlite_path=":memory:", logger=logger)
        manager.close()
        manager.close()

    def test_file_database(self, tmp_path, logger):
        """Should create a database file on disk."""
        path = tmp_path / "local.db"
        manager = DatabaseManager(sqlite_path=path, logger=logger)
        initialize_schema(manager.sqlite, logger)
        manager.close()

        assert path.exists()


class TestAppSettingsService:
    @pytest.fixture
    def settings(self, db, logger):
        return AppSettingsService(db, logger)

    def test_get_set_delete(self, settings):
        """Should upsert, read and delete values."""
        assert settings.get("k") is None
        assert settings.set("k", "v1")
        assert settings.set("k", "v2")
        assert settings.get("k") == "v2"
        assert settings.delete("k")
        assert settings.get("k") is None

    def test_remember_me_defaults_off(self, settings):
        """Should treat a never-written preference as off."""
        assert settings.is_remember_me_enabled() is False

    def test_remember_me_round_trip(self, settings):
        """Should persist and clear the preference."""
        settings.set_remember_me(True)
        assert settings.is_remember_me_enabled() is True

        settings.set_remember_me(False)
        assert settings.is_remember_me_enabled() is False

        settings.set_remember_me(True)
        settings.clear_remember_me()
        assert settings.is_remember_me_enabled() is False

    def test_delete_prefix_treats_wildcards_literally(self, settings):
        """Should only remove keys that start with the literal prefix."""
        settings.set("auth_storage:a", "1")
        settings.set("auth_storage:b", "2")
        settings.set("authXstorage:c", "3")
        settings.set("REMEMBER_ME_ENABLED", "1")

        settings.delete_prefix("auth_storage:")

        assert settings.get("auth_storage:a") is None
        assert settings.get("auth_storage:b") is None
        assert settings.get("authXstorage:c") == "3"
        assert settings.get("REMEMBER_ME_ENABLED") == "1"


class TestAuditLog:
    def test_logs_and_persists(self, db, logger):
        """Should log the event and store it in audit_log."""
        log_audit_event(
            logger, "UPDATE_PHOTO_URL", "UserProfile", "u-1", "u-1",
            details={"photoUrl": ""}, conn=db.sqlite,
        )

        logger.info.assert_called_once()
        assert logger.info.call_args.kwargs["extra"]["event"] == "AUDIT"
        row = db.sqlite.execute("SELECT * FROM audit_log").fetchone()
        assert row["action"] == "UPDATE_PHOTO_URL"
        assert json.loads(row["details"]) == {"photoUrl": ""}

    def test_persist_failure_is_logged(self, logger):
        """Should warn, not raise, when the audit table is missing."""
        conn = sqlite3.connect(":memory:")

        log_audit_event(logger, "PROFILE_CREATE", "UserProfile", "u-1", "u-1", conn=conn)

        logger.warning.assert_called_once()
