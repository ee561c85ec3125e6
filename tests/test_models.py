from datetime import datetime, timezone

from authshell.config import AppConfig
from authshell.models.auth_models import AuthResult, ClassifiedAuthError, AuthErrorCode, Identity
from authshell.models.profile import (
    SERVER_TIMESTAMP,
    UserProfile,
    contains_server_timestamp,
    resolve_server_timestamps,
)
from tests.fakes import google_identity, password_identity


class TestIdentity:
    def test_same_account_by_uid(self):
        """Should compare accounts by uid only."""
        a = password_identity(uid="u-1")
        b = a.model_copy(update={"display_name": "Changed", "email_verified": False})
        assert Identity.same_account(a, b)
        assert not Identity.same_account(a, google_identity(uid="u-2"))

    def test_same_account_absent(self):
        """Should treat two absent identities as equal, and one as different."""
        assert Identity.same_account(None, None)
        assert not Identity.same_account(None, password_identity())


class TestAuthResult:
    def test_cancelled(self):
        """Should flag informational failures as cancelled."""
        error = ClassifiedAuthError.of(AuthErrorCode.UNKNOWN, "closed", informational=True)
        result = AuthResult(success=False, error=error)
        assert result.cancelled
        assert result.error_code == AuthErrorCode.UNKNOWN

    def test_success_has_no_error_code(self):
        """Should expose no error code on success."""
        assert AuthResult(success=True).error_code is None


class TestUserProfile:
    def test_validates_stored_field_names(self):
        """Should read the stored camelCase document."""
        profile = UserProfile.model_validate({
            "uid": "u-1",
            "email": "ana@example.com",
            "displayName": "Ana",
            "photoUrl": "",
            "createdAt": "2026-01-01T00:00:00+00:00",
            "lastLoginAt": "2026-01-02T00:00:00+00:00",
        })
        assert profile.display_name == "Ana"
        assert profile.created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_server_timestamp_resolution(self):
        """Should replace every sentinel with the same instant."""
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        data = {"createdAt": SERVER_TIMESTAMP, "lastLoginAt": SERVER_TIMESTAMP, "email": "x"}

        resolved = resolve_server_timestamps(data, now)

        assert contains_server_timestamp(data)
        assert not contains_server_timestamp(resolved)
        assert resolved == {"createdAt": now, "lastLoginAt": now, "email": "x"}


class TestAppConfig:
    def test_google_configured(self):
        """Should enable Google sign-in only with a client id."""
        assert AppConfig(_env_file=None, GOOGLE_CLIENT_ID="id.apps").is_google_configured
        assert not AppConfig(_env_file=None, GOOGLE_CLIENT_ID="  ").is_google_configured

    def test_defaults(self):
        """Should default to the users table and server_now RPC."""
        config = AppConfig(_env_file=None)
        assert config.PROFILE_TABLE == "users"
        assert config.SERVER_TIME_RPC == "server_now"
