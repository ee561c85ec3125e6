"""
Supabase Auth Provider.

Implements ``IAuthProvider`` on top of the async Supabase auth client.

The client's own auth-state callback is translated into a payload-less
``state_changed`` event: the provider refreshes :attr:`current_identity`
first, then notifies subscribers, so a subscriber always reads the
identity that caused the notification.
"""

from __future__ import annotations

from typing import Optional

from authshell.backend.supabase_client import SupabaseConnection
from authshell.exceptions import AuthShellError
from authshell.logger import StructuredLogger
from authshell.models.auth_models import Identity
from authshell.utils.events import EventChannel

_SIGNED_OUT_EVENT: str = "SIGNED_OUT"


def identity_from_user(user: object) -> Identity:
    """Build an :class:`Identity` from a Supabase ``User`` object.

    Display name and photo prefer the keys this application writes
    (``display_name``, ``avatar_url``) and fall back to what Google
    populates (``full_name`` / ``name``, ``picture``).
    """
    metadata: dict[str, object] = dict(getattr(user, "user_metadata", None) or {})
    app_metadata: dict[str, object] = dict(getattr(user, "app_metadata", None) or {})

    providers = app_metadata.get("providers") or []
    if not providers and app_metadata.get("provider"):
        providers = [app_metadata["provider"]]

    if "display_name" in metadata:
        display_name = metadata.get("display_name")
    else:
        display_name = metadata.get("full_name") or metadata.get("name")

    if "avatar_url" in metadata:
        photo_url = metadata.get("avatar_url")
    else:
        photo_url = metadata.get("picture")

    return Identity(
        uid=str(getattr(user, "id")),
        email=getattr(user, "email", None),
        display_name=(str(display_name) if display_name else None),
        photo_url=(str(photo_url) if photo_url else None),
        email_verified=getattr(user, "email_confirmed_at", None) is not None,
        provider_ids=tuple(str(p) for p in providers),
    )


class SupabaseAuthProvider:
    """Async Supabase implementation of ``IAuthProvider``.

    Parameters
    ----------
    connection:
        Shared ``SupabaseConnection``.
    logger:
        Structured logger instance.
    email_redirect_url:
        Where the confirmation link sends the user.  Empty uses the
        project's Site URL.
    password_reset_redirect_url:
        Where the reset link sends the user.  Empty uses the Site URL.
    """

    def __init__(
        self,
        connection: SupabaseConnection,
        logger: StructuredLogger,
        email_redirect_url: str = "",
        password_reset_redirect_url: str = "",
    ) -> None:
        self._connection = connection
        self._logger = logger
        self._email_redirect_url = email_redirect_url
        self._password_reset_redirect_url = password_reset_redirect_url
        self._state_changed: EventChannel[None] = EventChannel("auth_state", logger)
        self._current: Optional[Identity] = None
        self._backend_subscription: Optional[object] = None
        # Emails whose confirmation mail was already dispatched by sign_up().
        self._confirmation_dispatched: set[str] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    @property
    def state_changed(self) -> EventChannel[None]:
        return self._state_changed

    async def check_dependencies(self) -> bool:
        """Connect, probe the server and restore any persisted session."""
        try:
            if not await self._connection.connect():
                return False
            if not await self._connection.ping():
                return False

            auth = self._connection.client.auth
            if self._backend_subscription is None:
                self._backend_subscription = auth.on_auth_state_change(
                    self._on_backend_event
                )

            session = await auth.get_session()
            self._current = (
                identity_from_user(session.user)
                if session is not None and session.user is not None
                else None
            )
            self._logger.info(
                "Auth backend ready; restored session: %s.", self._current is not None,
                extra={"event": "AUTH_READY"},
            )
            return True
        except Exception as exc:
            self._logger.error(
                "Auth dependency check failed: %s", exc,
                exc_info=True,
                extra={"event": "AUTH_DEPENDENCY_FAILED"},
            )
            return False

    # ------------------------------------------------------------------
    # Credential operations
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Identity:
        response = await self._connection.client.auth.sign_in_with_password(
            {"email": email, "password": password}
        )
        return self._adopt(response.user)

    async def create_account(self, email: str, password: str, display_name: str) -> Identity:
        options: dict[str, object] = {"data": {"display_name": display_name}}
        if self._email_redirect_url:
            options["email_redirect_to"] = self._email_redirect_url

        response = await self._connection.client.auth.sign_up(
            {"email": email, "password": password, "options": options}
        )
        if response.user is None:
            raise AuthShellError("Sign-up completed without returning an account.")

        if getattr(response.user, "confirmation_sent_at", None) is not None:
            self._confirmation_dispatched.add(email.lower())

        identity = identity_from_user(response.user)
        if response.session is not None:
            self._current = identity
        return identity

    async def sign_in_with_id_token(self, provider: str, id_token: str) -> Identity:
        response = await self._connection.client.auth.sign_in_with_id_token(
            {"provider": provider, "token": id_token}
        )
        return self._adopt(response.user)

    async def reload_identity(self) -> Optional[Identity]:
        response = await self._connection.client.auth.get_user()
        if response is None or response.user is None:
            self._current = None
            return None
        self._current = identity_from_user(response.user)
        return self._current

    async def sign_out(self) -> None:
        had_identity = self._current is not None
        try:
            await self._connection.client.auth.sign_out()
        except Exception as exc:
            # The server-side revoke failed; the local session is still dropped.
            self._logger.warning(
                "Server sign-out failed: %s. Clearing local session only.", exc,
                extra={"event": "SIGN_OUT_LOCAL_ONLY"},
            )
            await self._connection.storage.clear()
            self._current = None
            if had_identity:
                self._state_changed.publish(None)
            return
        self._current = None

    async def send_verification_email(self, email: str) -> None:
        key = email.lower()
        if key in self._confirmation_dispatched:
            self._confirmation_dispatched.discard(key)
            self._logger.debug("Confirmation mail already sent by sign-up for %s.", email)
            return

        payload: dict[str, object] = {"type": "signup", "email": email}
        if self._email_redirect_url:
            payload["options"] = {"email_redirect_to": self._email_redirect_url}
        await self._connection.client.auth.resend(payload)

    async def send_password_reset(self, email: str) -> None:
        auth = self._connection.client.auth
        if self._password_reset_redirect_url:
            await auth.reset_password_for_email(
                email, {"redirect_to": self._password_reset_redirect_url}
            )
        else:
            await auth.reset_password_for_email(email)

    async def update_profile(
        self,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        data: dict[str, str] = {}
        if display_name is not None:
            data["display_name"] = display_name
        if photo_url is not None:
            data["avatar_url"] = photo_url
        response = await self._connection.client.auth.update_user({"data": data})
        return self._adopt(response.user)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _adopt(self, user: object) -> Identity:
        if user is None:
            raise AuthShellError("The backend returned no account.")
        self._current = identity_from_user(user)
        return self._current

    def _on_backend_event(self, event: object, session: object) -> None:
        event_name = str(getattr(event, "value", event))
        user = getattr(session, "user", None) if session is not None else None
        if event_name == _SIGNED_OUT_EVENT or user is None:
            self._current = None
        else:
            self._current = identity_from_user(user)
        self._logger.debug(
            "Auth state event %s.", event_name,
            extra={"event": "AUTH_STATE", "backend_event": event_name},
        )
        self._state_changed.publish(None)
