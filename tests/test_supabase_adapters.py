from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from authshell.backend.supabase_auth import SupabaseAuthProvider, identity_from_user
from authshell.backend.supabase_client import SqliteSessionStorage, SupabaseConnection
from authshell.backend.supabase_documents import SupabaseDocumentStore
from authshell.exceptions import BackendUnavailableError, DocumentNotFoundError
from authshell.models.profile import SERVER_TIMESTAMP
from authshell.services.app_settings_service import AppSettingsService


def make_user(uid="u-1", email="ana@example.com", confirmed=True, providers=("email",), **metadata):
    return SimpleNamespace(
        id=uid,
        email=email,
        email_confirmed_at=datetime(2026, 1, 1, tzinfo=timezone.utc) if confirmed else None,
        confirmation_sent_at=None,
        user_metadata=metadata,
        app_metadata={"provider": providers[0], "providers": list(providers)},
    )


class TestIdentityFromUser:
    def test_password_user(self):
        """Should map uid, email, verification and providers."""
        identity = identity_from_user(make_user(display_name="Ana"))

        assert identity.uid == "u-1"
        assert identity.display_name == "Ana"
        assert identity.email_verified
        assert identity.uses_password_provider

    def test_google_metadata_fallbacks(self):
        """Should fall back to the names Google populates."""
        identity = identity_from_user(
            make_user(providers=("google",), full_name="Bo B", picture="https://x/p.png"),
        )

        assert identity.display_name == "Bo B"
        assert identity.photo_url == "https://x/p.png"
        assert not identity.uses_password_provider

    def test_cleared_photo_wins_over_google_picture(self):
        """Should honour an explicitly cleared avatar."""
        identity = identity_from_user(make_user(avatar_url="", picture="https://x/p.png"))
        assert identity.photo_url is None

    def test_unconfirmed_email(self):
        """Should report unconfirmed addresses as unverified."""
        assert not identity_from_user(make_user(confirmed=False)).email_verified


class TestSupabaseAuthProvider:
    @pytest.fixture
    def auth(self):
        auth = MagicMock()
        for name in (
            "get_session", "sign_in_with_password", "sign_up", "sign_in_with_id_token",
            "get_user", "sign_out", "resend", "reset_password_for_email", "update_user",
        ):
            setattr(auth, name, AsyncMock())
        return auth

    @pytest.fixture
    def connection(self, auth):
        connection = MagicMock()
        connection.client.auth = auth
        connection.connect = AsyncMock(return_value=True)
        connection.ping = AsyncMock(return_value=True)
        connection.storage.clear = AsyncMock()
        return connection

    @pytest.fixture
    def provider(self, connection, logger):
        return SupabaseAuthProvider(connection, logger, email_redirect_url="https://app/confirm")

    @pytest.mark.asyncio
    async def test_check_dependencies_restores_session(self, provider, auth):
        """Should subscribe to backend events and restore the stored session."""
        auth.get_session.return_value = SimpleNamespace(user=make_user())

        assert await provider.check_dependencies() is True
        assert provider.current_identity.uid == "u-1"
        auth.on_auth_state_change.assert_called_once()

    @pytest.mark.asyncio
    async def test_check_dependencies_unreachable(self, provider, connection, auth):
        """Should fail without touching auth when the probe fails."""
        connection.ping.return_value = False

        assert await provider.check_dependencies() is False
        auth.get_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_dependencies_error(self, provider, auth):
        """Should report failure when restoring the session raises."""
        auth.get_session.side_effect = ConnectionError("reset")
        assert await provider.check_dependencies() is False

    @pytest.mark.asyncio
    async def test_sign_in_sets_identity(self, provider, auth):
        """Should adopt the returned user as the current identity."""
        auth.sign_in_with_password.return_value = SimpleNamespace(user=make_user())

        identity = await provider.sign_in_with_password("ana@example.com", "pw")

        assert provider.current_identity == identity
        auth.sign_in_with_password.assert_awaited_once_with({"email": "ana@example.com", "password": "pw"})

    @pytest.mark.asyncio
    async def test_create_account_sends_display_name(self, provider, auth):
        """Should store the display name in user metadata."""
        auth.sign_up.return_value = SimpleNamespace(user=make_user(confirmed=False), session=None)

        await provider.create_account("ana@example.com", "pw", "Ana")

        options = auth.sign_up.call_args.args[0]["options"]
        assert options["data"] == {"display_name": "Ana"}
        assert options["email_redirect_to"] == "https://app/confirm"

    @pytest.mark.asyncio
    async def test_verification_not_sent_twice_after_sign_up(self, provider, auth):
        """Should skip the resend once when sign-up already mailed the link."""
        user = make_user(confirmed=False)
        user.confirmation_sent_at = datetime.now(timezone.utc)
        auth.sign_up.return_value = SimpleNamespace(user=user, session=None)

        await provider.create_account("Ana@Example.com", "pw", "Ana")
        await provider.send_verification_email("ana@example.com")
        auth.resend.assert_not_called()

        await provider.send_verification_email("ana@example.com")
        auth.resend.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reload_identity_missing_user(self, provider, auth):
        """Should clear the identity when the account is gone."""
        auth.get_user.return_value = None
        assert await provider.reload_identity() is None
        assert provider.current_identity is None

    @pytest.mark.asyncio
    async def test_sign_out_falls_back_to_local(self, provider, auth, connection):
        """Should drop the local session and notify when the server call fails."""
        auth.sign_in_with_password.return_value = SimpleNamespace(user=make_user())
        await provider.sign_in_with_password("ana@example.com", "pw")
        auth.sign_out.side_effect = ConnectionError("offline")
        notified = []
        provider.state_changed.subscribe(notified.append)

        await provider.sign_out()

        assert provider.current_identity is None
        connection.storage.clear.assert_awaited_once()
        assert notified == [None]

    @pytest.mark.asyncio
    async def test_update_profile_metadata(self, provider, auth):
        """Should write only the fields provided."""
        auth.update_user.return_value = SimpleNamespace(user=make_user(avatar_url="https://x/a.png"))

        identity = await provider.update_profile(photo_url="https://x/a.png")

        auth.update_user.assert_awaited_once_with({"data": {"avatar_url": "https://x/a.png"}})
        assert identity.photo_url == "https://x/a.png"

    def test_backend_event_updates_then_notifies(self, provider):
        """Should update the identity before notifying subscribers."""
        seen = []
        provider.state_changed.subscribe(lambda _p: seen.append(provider.current_identity))

        provider._on_backend_event("SIGNED_IN", SimpleNamespace(user=make_user()))
        provider._on_backend_event("SIGNED_OUT", None)

        assert seen[0].uid == "u-1"
        assert seen[1] is None


class TestSupabaseDocumentStore:
    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def documents(self, client, logger):
        connection = MagicMock()
        connection.client = client
        return SupabaseDocumentStore(connection, logger)

    @pytest.mark.asyncio
    async def test_get_returns_row(self, documents, client):
        """Should select the row by key."""
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute = AsyncMock(return_value=SimpleNamespace(data=[{"uid": "u-1"}]))

        assert await documents.get("users", "u-1") == {"uid": "u-1"}
        client.table.return_value.select.return_value.eq.assert_called_once_with("uid", "u-1")

    @pytest.mark.asyncio
    async def test_get_missing_row(self, documents, client):
        """Should return None when no row matches."""
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute = AsyncMock(return_value=SimpleNamespace(data=[]))

        assert await documents.get("users", "u-1") is None

    @pytest.mark.asyncio
    async def test_merge_resolves_server_time_once(self, documents, client):
        """Should resolve every timestamp sentinel from one RPC call."""
        client.rpc.return_value.execute = AsyncMock(return_value=SimpleNamespace(data="2026-01-01T00:00:00Z"))
        client.table.return_value.upsert.return_value.execute = AsyncMock()

        await documents.merge("users", "u-1", {"createdAt": SERVER_TIMESTAMP, "lastLoginAt": SERVER_TIMESTAMP})

        payload = client.table.return_value.upsert.call_args.args[0]
        assert payload == {
            "createdAt": "2026-01-01T00:00:00Z",
            "lastLoginAt": "2026-01-01T00:00:00Z",
            "uid": "u-1",
        }
        assert client.table.return_value.upsert.call_args.kwargs["on_conflict"] == "uid"
        client.rpc.assert_called_once_with("server_now")

    @pytest.mark.asyncio
    async def test_update_without_timestamps_skips_rpc(self, documents, client):
        """Should not call the RPC when no sentinel is present."""
        query = client.table.return_value.update.return_value.eq.return_value
        query.execute = AsyncMock(return_value=SimpleNamespace(data=[{"uid": "u-1"}]))

        await documents.update("users", "u-1", {"displayName": "Ana"})

        client.rpc.assert_not_called()
        client.table.return_value.update.assert_called_once_with({"displayName": "Ana"})

    @pytest.mark.asyncio
    async def test_update_missing_document(self, documents, client):
        """Should raise when no row was updated."""
        query = client.table.return_value.update.return_value.eq.return_value
        query.execute = AsyncMock(return_value=SimpleNamespace(data=[]))

        with pytest.raises(DocumentNotFoundError):
            await documents.update("users", "u-1", {"displayName": "Ana"})


class TestSupabaseConnection:
    @pytest.fixture
    def storage(self, db, logger):
        return SqliteSessionStorage(AppSettingsService(db, logger))

    def test_client_before_connect(self, storage, logger):
        """Should refuse access to the client before connecting."""
        connection = SupabaseConnection("https://x.supabase.co", "key", storage, logger)
        assert not connection.is_connected
        with pytest.raises(BackendUnavailableError):
            _ = connection.client

    @pytest.mark.asyncio
    async def test_connect_without_credentials(self, storage, logger):
        """Should report the backend unavailable when unconfigured."""
        connection = SupabaseConnection("", "", storage, logger)
        assert await connection.connect() is False

    @pytest.mark.asyncio
    async def test_session_storage_round_trip(self, storage):
        """Should persist, read and clear namespaced auth entries."""
        await storage.set_item("sb-session", "{\"a\": 1}")
        await storage.set_item("sb-verifier", "v")
        assert await storage.get_item("sb-session") == "{\"a\": 1}"

        await storage.remove_item("sb-verifier")
        assert await storage.get_item("sb-verifier") is None

        await storage.clear()
        assert await storage.get_item("sb-session") is None
