"""
Profile Repository.

Reads and writes the per-account ``UserProfile`` document.  The login-time
reconciliation creates the document at most once and otherwise only
refreshes ``lastLoginAt``.  Display name and photo edits go to the auth
identity first and to the document second; the two writes are not
transactional, so a failure of the second leaves the identity updated and
the document stale.
"""

from __future__ import annotations

import sqlite3
from typing import Optional
from urllib.parse import urlsplit

from authshell.interfaces import IAuthProvider, IDocumentStore
from authshell.logger import StructuredLogger
from authshell.models.auth_models import Identity
from authshell.models.profile import SERVER_TIMESTAMP, UserProfile
from authshell.repositories.base_repository import BaseRepository
from authshell.utils.audit import log_audit_event

_ALLOWED_PHOTO_SCHEMES: frozenset[str] = frozenset({"http", "https"})


class ProfileRepository(BaseRepository):
    """Data access layer for ``UserProfile`` documents.

    **No ``delete()`` method.**  Profiles outlive sign-outs and are never
    removed by the client.

    Parameters
    ----------
    store:
        Backend document store.
    auth:
        Auth provider, for the identity half of profile edits.
    logger:
        Structured logger instance.
    audit_conn:
        Optional local SQLite connection for persisted audit events.
    collection:
        Name of the profile collection.
    """

    COLLECTION = "users"

    def __init__(
        self,
        store: IDocumentStore,
        auth: IAuthProvider,
        logger: StructuredLogger,
        audit_conn: Optional[sqlite3.Connection] = None,
        collection: Optional[str] = None,
    ) -> None:
        super().__init__(store, logger)
        self._auth = auth
        self._audit_conn = audit_conn
        self._collection: str = collection or self.COLLECTION

    # ------------------------------------------------------------------
    # Login-time reconciliation
    # ------------------------------------------------------------------

    async def ensure_profile_exists_and_touch_login(self, uid: str, snapshot: Identity) -> None:
        """Create the profile on first login; always refresh ``lastLoginAt``.

        When the document is absent it is seeded from *snapshot* with
        ``createdAt`` and ``lastLoginAt`` resolved from the same server
        timestamp.  When it exists only ``lastLoginAt`` is written, so
        user-edited fields are preserved.  One merge write either way.

        Raises
        ------
        Exception
            Any store failure, after logging.
        """
        try:
            existing = await self._store.get(self._collection, uid)
            updates: dict[str, object] = {"lastLoginAt": SERVER_TIMESTAMP}
            created = existing is None
            if created:
                updates.update(
                    uid=uid,
                    email=snapshot.email or "",
                    createdAt=SERVER_TIMESTAMP,
                    displayName=snapshot.display_name or "",
                    photoUrl=snapshot.photo_url or "",
                )
            await self._store.merge(self._collection, uid, updates)
        except Exception as exc:
            self._logger.error(
                "Profile reconciliation failed for %s: %s", uid, exc,
                extra={"event": "PROFILE_RECONCILE_FAILED", "uid": uid},
            )
            raise

        if created:
            log_audit_event(
                self._logger,
                action="PROFILE_CREATE",
                entity_type="UserProfile",
                entity_id=uid,
                user_id=uid,
                details={"email": snapshot.email or ""},
                conn=self._audit_conn,
            )
        else:
            self._logger.info(
                "Login recorded for %s.", uid,
                extra={"event": "PROFILE_TOUCH_LOGIN", "uid": uid},
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_current_profile(self, uid: str) -> Optional[UserProfile]:
        """Fetch the stored profile.  Returns ``None`` when absent."""
        try:
            row = await self._store.get(self._collection, uid)
        except Exception as exc:
            self._logger.error(
                "Profile read failed for %s: %s", uid, exc,
                extra={"event": "PROFILE_READ_FAILED", "uid": uid},
            )
            raise
        return UserProfile.model_validate(row) if row is not None else None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    async def update_display_name(self, uid: str, name: str) -> str:
        """Set the display name on the identity, then on the document.

        Returns the stored (trimmed) name.

        Raises
        ------
        ValueError
            If the trimmed name is empty.
        """
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValueError("Display name cannot be empty.")

        await self._auth.update_profile(display_name=trimmed)
        try:
            await self._store.update(self._collection, uid, {"displayName": trimmed})
        except Exception as exc:
            self._logger.error(
                "Display name saved to identity but not to profile %s: %s", uid, exc,
                extra={"event": "PROFILE_PARTIAL_UPDATE", "uid": uid},
            )
            raise

        log_audit_event(
            self._logger,
            action="UPDATE_DISPLAY_NAME",
            entity_type="UserProfile",
            entity_id=uid,
            user_id=uid,
            details={"displayName": trimmed},
            conn=self._audit_conn,
        )
        return trimmed

    async def update_photo_url(self, uid: str, url: str) -> str:
        """Set or clear (blank *url*) the photo URL on identity then document.

        Returns the stored value (``""`` when cleared).

        Raises
        ------
        ValueError
            If *url* is not an absolute http(s) URL.
        """
        trimmed = (url or "").strip()
        if trimmed:
            parts = urlsplit(trimmed)
            if parts.scheme.lower() not in _ALLOWED_PHOTO_SCHEMES or not parts.netloc:
                raise ValueError("Photo URL must be an absolute http(s) URL.")

        await self._auth.update_profile(photo_url=trimmed)
        try:
            await self._store.update(self._collection, uid, {"photoUrl": trimmed})
        except Exception as exc:
            self._logger.error(
                "Photo URL saved to identity but not to profile %s: %s", uid, exc,
                extra={"event": "PROFILE_PARTIAL_UPDATE", "uid": uid},
            )
            raise

        log_audit_event(
            self._logger,
            action="UPDATE_PHOTO_URL",
            entity_type="UserProfile",
            entity_id=uid,
            user_id=uid,
            details={"photoUrl": trimmed},
            conn=self._audit_conn,
        )
        return trimmed
