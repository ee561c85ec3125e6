"""
In-memory test doubles for the backend and presentation seams.

Each fake implements the matching protocol in ``authshell.interfaces``
and records the calls it receives.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from authshell.exceptions import DocumentNotFoundError
from authshell.models.auth_models import (
    GOOGLE_PROVIDER_ID,
    PASSWORD_PROVIDER_ID,
    Identity,
)
from authshell.models.enums import PopupKind, Screen
from authshell.models.profile import contains_server_timestamp, resolve_server_timestamps
from authshell.utils.events import EventChannel


def password_identity(uid: str = "user-1", email: str = "ana@example.com", verified: bool = True) -> Identity:
    return Identity(
        uid=uid,
        email=email,
        display_name="Ana",
        email_verified=verified,
        provider_ids=(PASSWORD_PROVIDER_ID,),
    )


def google_identity(uid: str = "user-2", email: str = "bo@example.com") -> Identity:
    return Identity(
        uid=uid,
        email=email,
        display_name="Bo",
        photo_url="https://example.com/bo.png",
        email_verified=True,
        provider_ids=(GOOGLE_PROVIDER_ID,),
    )


class BackendError(Exception):
    """Stand-in for a backend auth error carrying a GoTrue error code."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class FakeAuthProvider:
    def __init__(self, identity: Optional[Identity] = None):
        self._current = identity
        self._state_changed: EventChannel[None] = EventChannel("fake_auth_state")
        self.calls: list[tuple] = []

        self.available = True
        self.dependency_results: list[bool] = []
        self.reload_error: Optional[BaseException] = None
        self.reload_returns_none = False
        self.reload_gate: Optional[asyncio.Event] = None
        self.sign_in_error: Optional[BaseException] = None
        self.create_error: Optional[BaseException] = None
        self.verification_error: Optional[BaseException] = None
        self.sign_out_error: Optional[BaseException] = None
        self.reset_error: Optional[BaseException] = None
        self.update_error: Optional[BaseException] = None
        self.accounts: dict[str, Identity] = {}

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    @property
    def state_changed(self) -> EventChannel[None]:
        return self._state_changed

    def set_identity(self, identity: Optional[Identity]) -> None:
        """Change the signed-in account and notify, like a backend event."""
        self._current = identity
        self._state_changed.publish(None)

    async def check_dependencies(self) -> bool:
        self.calls.append(("check_dependencies",))
        if self.dependency_results:
            return self.dependency_results.pop(0)
        return self.available

    async def sign_in_with_password(self, email: str, password: str) -> Identity:
        self.calls.append(("sign_in_with_password", email, password))
        if self.sign_in_error is not None:
            raise self.sign_in_error
        identity = self.accounts.get(email) or password_identity(email=email)
        self.set_identity(identity)
        return identity

    async def create_account(self, email: str, password: str, display_name: str) -> Identity:
        self.calls.append(("create_account", email, password, display_name))
        if self.create_error is not None:
            raise self.create_error
        identity = Identity(
            uid=f"new-{email}",
            email=email,
            display_name=display_name,
            email_verified=False,
            provider_ids=(PASSWORD_PROVIDER_ID,),
        )
        self.set_identity(identity)
        return identity

    async def sign_in_with_id_token(self, provider: str, id_token: str) -> Identity:
        self.calls.append(("sign_in_with_id_token", provider, id_token))
        if self.sign_in_error is not None:
            raise self.sign_in_error
        identity = google_identity()
        self.set_identity(identity)
        return identity

    async def reload_identity(self) -> Optional[Identity]:
        self.calls.append(("reload_identity",))
        if self.reload_gate is not None:
            await self.reload_gate.wait()
        if self.reload_error is not None:
            raise self.reload_error
        if self.reload_returns_none:
            self._current = None
            return None
        return self._current

    async def sign_out(self) -> None:
        self.calls.append(("sign_out",))
        if self.sign_out_error is not None:
            raise self.sign_out_error
        if self._current is not None:
            self.set_identity(None)

    async def send_verification_email(self, email: str) -> None:
        self.calls.append(("send_verification_email", email))
        if self.verification_error is not None:
            raise self.verification_error

    async def send_password_reset(self, email: str) -> None:
        self.calls.append(("send_password_reset", email))
        if self.reset_error is not None:
            raise self.reset_error

    async def update_profile(
        self,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        self.calls.append(("update_profile", display_name, photo_url))
        if self.update_error is not None:
            raise self.update_error
        changes: dict[str, object] = {}
        if display_name is not None:
            changes["display_name"] = display_name
        if photo_url is not None:
            changes["photo_url"] = photo_url
        self._current = self._current.model_copy(update=changes)
        return self._current

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeDocumentStore:
    """Dict-backed store; each write resolves server timestamps to a fresh instant."""

    def __init__(self):
        self.documents: dict[tuple[str, str], dict[str, object]] = {}
        self.writes: list[tuple[str, str, str, dict[str, object]]] = []
        self.get_error: Optional[BaseException] = None
        self.merge_error: Optional[BaseException] = None
        self.update_error: Optional[BaseException] = None
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._clock

    def _resolve(self, data: dict[str, object]) -> dict[str, object]:
        if contains_server_timestamp(data):
            self._clock += timedelta(minutes=1)
        return resolve_server_timestamps(data, self._clock)

    async def get(self, collection: str, key: str) -> Optional[dict[str, object]]:
        if self.get_error is not None:
            raise self.get_error
        document = self.documents.get((collection, key))
        return dict(document) if document is not None else None

    async def merge(self, collection: str, key: str, data: dict[str, object]) -> None:
        if self.merge_error is not None:
            raise self.merge_error
        self.writes.append(("merge", collection, key, dict(data)))
        self.documents.setdefault((collection, key), {}).update(self._resolve(data))

    async def update(self, collection: str, key: str, data: dict[str, object]) -> None:
        if self.update_error is not None:
            raise self.update_error
        if (collection, key) not in self.documents:
            raise DocumentNotFoundError(collection, key)
        self.writes.append(("update", collection, key, dict(data)))
        self.documents[(collection, key)].update(self._resolve(data))


class FakePreferences:
    def __init__(self, remember_me: bool = False):
        self.remember_me = remember_me
        self.history: list[Optional[bool]] = []

    def is_remember_me_enabled(self) -> bool:
        return self.remember_me

    def set_remember_me(self, enabled: bool) -> None:
        self.remember_me = enabled
        self.history.append(enabled)

    def clear_remember_me(self) -> None:
        self.remember_me = False
        self.history.append(None)


class FakeTokenSource:
    def __init__(self, token: Optional[str] = "google-id-token", configured: bool = True):
        self.token = token
        self.configured = configured
        self.error: Optional[BaseException] = None

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def request_id_token(self) -> Optional[str]:
        if self.error is not None:
            raise self.error
        return self.token


class FakePresenter:
    def __init__(self):
        self._active: Optional[Screen] = None
        self.screens: list[Screen] = []
        self.errors: list[tuple[str, str]] = []
        self.infos: list[tuple[str, str]] = []
        self.confirmations: list[dict[str, object]] = []
        self.loading_depth = 0
        self.loading_shown = 0

    @property
    def active_screen(self) -> Optional[Screen]:
        return self._active

    def show_screen(self, screen: Screen) -> None:
        self._active = screen
        self.screens.append(screen)

    def show_error(self, title: str, message: str) -> None:
        self.errors.append((title, message))

    def show_info(self, title: str, message: str) -> None:
        self.infos.append((title, message))

    def show_confirmation(
        self,
        kind: PopupKind,
        title: str,
        message: str,
        on_confirm=None,
        on_cancel=None,
        confirm_text: str = "OK",
        cancel_text: str = "Cancel",
    ) -> None:
        self.confirmations.append({
            "kind": kind,
            "title": title,
            "message": message,
            "on_confirm": on_confirm,
            "on_cancel": on_cancel,
            "confirm_text": confirm_text,
            "cancel_text": cancel_text,
        })

    def show_loading(self) -> None:
        self.loading_depth += 1
        self.loading_shown += 1

    def hide_loading(self) -> None:
        self.loading_depth -= 1
