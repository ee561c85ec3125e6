import json

import pytest

from authshell.exceptions import DocumentNotFoundError
from authshell.models.profile import UserProfile
from authshell.repositories.profile_repository import ProfileRepository
from tests.fakes import google_identity, password_identity


class TestProfileRepository:
    @pytest.fixture
    def identity(self):
        return google_identity(uid="u-1")

    @pytest.fixture
    def repo(self, store, auth_provider, logger, identity):
        auth_provider._current = identity
        return ProfileRepository(store=store, auth=auth_provider, logger=logger)

    # ------------------------------------------------------------------
    # Login-time reconciliation
    # ------------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_creates_profile_on_first_login(self, repo, store, identity):
        """Should seed the document from the identity with one write."""
        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        doc = store.documents[("users", "u-1")]
        assert doc["uid"] == "u-1"
        assert doc["email"] == identity.email
        assert doc["displayName"] == "Bo"
        assert doc["photoUrl"] == "https://example.com/bo.png"
        assert doc["createdAt"] == doc["lastLoginAt"]
        assert len(store.writes) == 1

    @pytest.mark.asyncio
    async def test_missing_fields_default_to_empty(self, repo, store):
        """Should store empty strings for absent name and photo."""
        bare = password_identity(uid="u-2").model_copy(update={"display_name": None})

        await repo.ensure_profile_exists_and_touch_login("u-2", bare)

        doc = store.documents[("users", "u-2")]
        assert doc["displayName"] == ""
        assert doc["photoUrl"] == ""

    @pytest.mark.asyncio
    async def test_existing_profile_only_touches_login(self, repo, store, identity):
        """Should only refresh lastLoginAt for an existing profile."""
        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)
        created_at = store.documents[("users", "u-1")]["createdAt"]
        store.documents[("users", "u-1")]["displayName"] = "Edited"

        await repo.ensure_profile_exists_and_touch_login(
            identity.uid, identity.model_copy(update={"display_name": "Other"}),
        )

        doc = store.documents[("users", "u-1")]
        assert set(store.writes[-1][3]) == {"lastLoginAt"}
        assert doc["displayName"] == "Edited"
        assert doc["createdAt"] == created_at
        assert doc["lastLoginAt"] > created_at

    @pytest.mark.asyncio
    async def test_reconcile_failure_propagates(self, repo, store, identity, logger):
        """Should log and re-raise store failures."""
        store.merge_error = RuntimeError("write denied")

        with pytest.raises(RuntimeError):
            await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_custom_collection(self, store, auth_provider, logger, identity):
        """Should write to the configured collection."""
        repo = ProfileRepository(store, auth_provider, logger, collection="profiles")

        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        assert ("profiles", "u-1") in store.documents

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_get_current_profile(self, repo, store, identity):
        """Should return the stored profile as a model."""
        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        profile = await repo.get_current_profile("u-1")

        assert isinstance(profile, UserProfile)
        assert profile.display_name == "Bo"
        assert profile.created_at is not None

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, repo):
        """Should return None when no profile exists."""
        assert await repo.get_current_profile("nobody") is None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_update_display_name(self, repo, store, auth_provider, identity):
        """Should update the identity, then the document."""
        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        stored = await repo.update_display_name("u-1", "  New Name ")

        assert stored == "New Name"
        assert ("update_profile", "New Name", None) in auth_provider.calls
        assert store.documents[("users", "u-1")]["displayName"] == "New Name"

    @pytest.mark.asyncio
    async def test_update_display_name_rejects_blank(self, repo, auth_provider):
        """Should reject an empty name before any write."""
        with pytest.raises(ValueError):
            await repo.update_display_name("u-1", "   ")
        assert "update_profile" not in auth_provider.call_names()

    @pytest.mark.asyncio
    async def test_update_display_name_without_document(self, repo, auth_provider):
        """Should raise after updating the identity when the document is missing."""
        with pytest.raises(DocumentNotFoundError):
            await repo.update_display_name("u-1", "Name")
        assert auth_provider.current_identity.display_name == "Name"

    @pytest.mark.asyncio
    async def test_update_photo_url(self, repo, store, identity):
        """Should store a valid http(s) photo URL."""
        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        await repo.update_photo_url("u-1", "https://cdn.example.com/me.jpg")

        assert store.documents[("users", "u-1")]["photoUrl"] == "https://cdn.example.com/me.jpg"

    @pytest.mark.asyncio
    async def test_clear_photo_url(self, repo, store, identity):
        """Should clear the photo on a blank URL."""
        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)

        assert await repo.update_photo_url("u-1", "  ") == ""
        assert store.documents[("users", "u-1")]["photoUrl"] == ""

    @pytest.mark.parametrize("url", ["ftp://example.com/a.png", "example.com/a.png", "https://"])
    @pytest.mark.asyncio
    async def test_update_photo_url_rejects_invalid(self, repo, url):
        """Should reject URLs that are not absolute http(s)."""
        with pytest.raises(ValueError):
            await repo.update_photo_url("u-1", url)

    @pytest.mark.asyncio
    async def test_audit_events_persisted(self, store, auth_provider, logger, identity, db):
        """Should write profile creation and edits to the audit log."""
        auth_provider._current = identity
        repo = ProfileRepository(store, auth_provider, logger, audit_conn=db.sqlite)

        await repo.ensure_profile_exists_and_touch_login(identity.uid, identity)
        await repo.update_display_name("u-1", "Renamed")

        rows = db.sqlite.execute("SELECT action, details FROM audit_log ORDER BY id").fetchall()
        assert [row["action"] for row in rows] == ["PROFILE_CREATE", "UPDATE_DISPLAY_NAME"]
        assert json.loads(rows[1]["details"]) == {"displayName": "Renamed"}
