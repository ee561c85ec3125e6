"""
Collaborator interfaces.

The routing core and the services depend on these protocols, not on the
Supabase or CustomTkinter implementations, so they can be exercised with
in-memory fakes.  Implementations live in ``authshell.backend`` (auth,
documents, identity tokens), ``authshell.services.app_settings_service``
(preferences) and ``authshell.ui.app_shell`` (presentation).
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

from authshell.models.auth_models import Identity
from authshell.models.enums import PopupKind, Screen
from authshell.utils.events import EventChannel

PopupCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class IAuthProvider(Protocol):
    """
    Interface for the backend authentication provider.

    State-change notifications carry no payload; subscribers re-read
    :attr:`current_identity` when notified.
    """

    @property
    def current_identity(self) -> Optional[Identity]:
        """The signed-in account as last seen by the provider, or None."""
        ...

    @property
    def state_changed(self) -> EventChannel[None]:
        """Channel fired on every sign-in, sign-out or session change."""
        ...

    async def check_dependencies(self) -> bool:
        """
        Connect to the backend and confirm it is usable.

        Returns:
            True when the provider is ready, False otherwise. Never raises.
        """
        ...

    async def sign_in_with_password(self, email: str, password: str) -> Identity:
        """
        Sign in with email and password.

        Raises:
            Backend-specific exceptions; callers classify them.
        """
        ...

    async def create_account(self, email: str, password: str, display_name: str) -> Identity:
        """
        Create an email/password account carrying *display_name*.

        Raises:
            Backend-specific exceptions; callers classify them.
        """
        ...

    async def sign_in_with_id_token(self, provider: str, id_token: str) -> Identity:
        """Exchange a federated identity token for a backend session."""
        ...

    async def reload_identity(self) -> Optional[Identity]:
        """
        Refetch the signed-in account from the server.

        Returns:
            The refreshed identity, or None when no account is signed in.

        Raises:
            Network-class exceptions when the server is unreachable, and
            backend exceptions when the session is no longer valid.
        """
        ...

    async def sign_out(self) -> None:
        """Terminate the local session. Never leaves an identity behind."""
        ...

    async def send_verification_email(self, email: str) -> None:
        """Send (or resend) the account confirmation email."""
        ...

    async def send_password_reset(self, email: str) -> None:
        """Send a password-reset email."""
        ...

    async def update_profile(
        self,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        """Update the signed-in account's display metadata.

        ``None`` leaves a field unchanged; an empty string clears it.
        """
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Interface for the keyed document database.

    Values equal to ``SERVER_TIMESTAMP`` are resolved to backend time,
    one instant per write.
    """

    async def get(self, collection: str, key: str) -> Optional[dict[str, object]]:
        """Return the stored document, or None when absent."""
        ...

    async def merge(self, collection: str, key: str, data: dict[str, object]) -> None:
        """Create the document or update only the given fields."""
        ...

    async def update(self, collection: str, key: str, data: dict[str, object]) -> None:
        """
        Update fields of an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        ...


@runtime_checkable
class IPreferenceStore(Protocol):
    """Interface for the persisted remember-me preference."""

    def is_remember_me_enabled(self) -> bool:
        ...

    def set_remember_me(self, enabled: bool) -> None:
        ...

    def clear_remember_me(self) -> None:
        ...


@runtime_checkable
class IIdentityTokenSource(Protocol):
    """Interface for an interactive federated identity picker."""

    @property
    def is_configured(self) -> bool:
        ...

    async def request_id_token(self) -> Optional[str]:
        """
        Let the user pick an account and return its OpenID id token.

        Returns:
            The id token, or None when the user cancelled.

        Raises:
            FederatedSignInError: If the picker or token exchange failed.
        """
        ...


@runtime_checkable
class IPresenter(Protocol):
    """Interface for the screen host that renders popups and screens."""

    @property
    def active_screen(self) -> Optional[Screen]:
        ...

    def show_screen(self, screen: Screen) -> None:
        ...

    def show_error(self, title: str, message: str) -> None:
        ...

    def show_info(self, title: str, message: str) -> None:
        ...

    def show_confirmation(
        self,
        kind: PopupKind,
        title: str,
        message: str,
        on_confirm: Optional[PopupCallback] = None,
        on_cancel: Optional[PopupCallback] = None,
        confirm_text: str = "OK",
        cancel_text: str = "Cancel",
    ) -> None:
        ...

    def show_loading(self) -> None:
        ...

    def hide_loading(self) -> None:
        ...
