"""Application Shell.

Root ``CTk`` window.  Implements the presenter the auth router drives:
it hosts exactly one screen at a time (login or profile), shows modal
popups and the loading overlay, and turns every failure published by
``AuthService`` into an error popup.  A sign-in refused because the
email is unconfirmed gets the same resend prompt the router shows for
unverified sessions.

The router and the asyncio bridge are owned here because both need the
window: the router presents through it and the bridge pumps the event
loop from its ``after()`` queue.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import customtkinter as ctk

from authshell import __version__
from authshell.config import AppConfig
from authshell.interfaces import PopupCallback
from authshell.logger import StructuredLogger, get_logger
from authshell.models.auth_models import ClassifiedAuthError
from authshell.models.enums import PopupKind, Screen
from authshell.services import ServiceContainer
from authshell.services.auth_router import (
    VERIFY_FAILED_MESSAGE,
    VERIFY_FAILED_TITLE,
    VERIFY_MESSAGE,
    VERIFY_TITLE,
    AuthRouter,
)
from authshell.services.navigation import SceneNavigator
from authshell.ui.components.loading_overlay import LoadingOverlay
from authshell.ui.components.popup_dialog import PopupDialog
from authshell.ui.event_loop import AsyncTkBridge
from authshell.ui.login_view import LoginView
from authshell.ui.profile_view import ProfileView
from authshell.ui.theme import (
    CONTENT_BG,
    LOGIN_WINDOW_HEIGHT,
    LOGIN_WINDOW_WIDTH,
    MAIN_WINDOW_HEIGHT,
    MAIN_WINDOW_WIDTH,
)

AUTH_ERROR_TITLE: str = "Authentication Error"
AUTH_NOTICE_TITLE: str = "Notice"
VERIFY_SENT_TITLE: str = "Verification Email Sent"


class AppShell(ctk.CTk):
    """Host window and ``IPresenter`` implementation.

    Lifecycle
    ---------
    1. On boot: starts the event-loop bridge and the router's startup
       (dependency check behind the loading overlay).
    2. The router calls :meth:`show_screen` for every transition.
    3. On close: the router shuts down (signing out when remember-me is
       off), then the window is destroyed.

    Parameters
    ----------
    config:
        Application configuration.
    services:
        Fully-wired service container.
    loop:
        Event loop the bridge pumps; must not be running.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        config: AppConfig,
        services: ServiceContainer,
        loop: asyncio.AbstractEventLoop,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(fg_color=CONTENT_BG)

        self._config = config
        self._services = services
        self._logger = logger

        self._active_screen: Optional[Screen] = None
        self._current_view: Optional[ctk.CTkFrame] = None
        self._closing: bool = False

        # Window defaults
        self.title(f"AuthShell v{__version__}")
        ctk.set_appearance_mode("light")
        ctk.set_default_color_theme("blue")
        self.geometry(f"{LOGIN_WINDOW_WIDTH}x{LOGIN_WINDOW_HEIGHT}")
        self.minsize(LOGIN_WINDOW_WIDTH, LOGIN_WINDOW_HEIGHT)

        self.protocol("WM_DELETE_WINDOW", self._on_close)

        self._bridge = AsyncTkBridge(
            root=self,
            loop=loop,
            logger=get_logger("event_loop"),
            interval_ms=config.EVENT_LOOP_INTERVAL_MS,
        )
        self._overlay = LoadingOverlay(self)

        self._router = AuthRouter(
            auth=services["auth_provider"],
            preferences=services["app_settings_service"],
            profiles=services["profile_repository"],
            presenter=self,
            navigator=SceneNavigator(self, get_logger("navigation")),
            session_context=services["session_context"],
            classifier=services["error_classifier"],
            logger=get_logger("router"),
            on_quit=self._on_close,
        )
        self._error_subscription = services["auth_service"].errors.subscribe(
            self._on_auth_error,
        )
        self._verification_subscription = services["auth_service"].verification_required.subscribe(
            self._on_verification_required,
        )

        self._bridge.start()
        self._bridge.spawn(self._router.start(), name="router_start")

    # ==================================================================
    # Presenter: screens
    # ==================================================================

    @property
    def active_screen(self) -> Optional[Screen]:
        return self._active_screen

    def show_screen(self, screen: Screen) -> None:
        """Replace the hosted view with *screen*."""
        if self._current_view is not None:
            self._current_view.destroy()
            self._current_view = None

        if screen is Screen.PROFILE:
            identity = self._services["auth_provider"].current_identity
            if identity is None:
                self._logger.warning("Profile screen requested without an identity.")
                screen = Screen.LOGIN
            else:
                self.geometry(f"{MAIN_WINDOW_WIDTH}x{MAIN_WINDOW_HEIGHT}")
                self._current_view = ProfileView(
                    parent=self,
                    bridge=self._bridge,
                    presenter=self,
                    identity=identity,
                    profiles=self._services["profile_repository"],
                    auth_service=self._services["auth_service"],
                    logger=get_logger("profile_view"),
                )

        if screen is Screen.LOGIN:
            self.geometry(f"{LOGIN_WINDOW_WIDTH}x{LOGIN_WINDOW_HEIGHT}")
            self._current_view = LoginView(
                parent=self,
                bridge=self._bridge,
                presenter=self,
                auth_service=self._services["auth_service"],
                session_context=self._services["session_context"],
                google_enabled=self._services.get("token_source") is not None,
                logger=get_logger("login_view"),
            )

        self._active_screen = screen
        self._current_view.pack(fill="both", expand=True)
        if self._overlay.is_visible:
            self._overlay.lift()

    # ==================================================================
    # Presenter: popups and overlay
    # ==================================================================

    def show_error(self, title: str, message: str) -> None:
        self._popup(PopupKind.ERROR, title, message)

    def show_info(self, title: str, message: str) -> None:
        self._popup(PopupKind.INFORMATION, title, message)

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
        self._popup(kind, title, message, on_confirm, on_cancel, confirm_text, cancel_text)

    def show_loading(self) -> None:
        self._overlay.show()

    def hide_loading(self) -> None:
        self._overlay.hide()

    def _popup(
        self,
        kind: PopupKind,
        title: str,
        message: str,
        on_confirm: Optional[PopupCallback] = None,
        on_cancel: Optional[PopupCallback] = None,
        confirm_text: str = "OK",
        cancel_text: Optional[str] = None,
    ) -> None:
        if self._closing:
            return
        self._logger.debug("Popup %s: %s", kind, title, extra={"event": "POPUP", "kind": kind})
        PopupDialog(
            parent=self,
            bridge=self._bridge,
            kind=kind,
            title=title,
            message=message,
            on_confirm=on_confirm,
            on_cancel=on_cancel,
            confirm_text=confirm_text,
            cancel_text=cancel_text,
        )

    def _on_auth_error(self, error: ClassifiedAuthError) -> None:
        if error.informational:
            self.show_info(AUTH_NOTICE_TITLE, error.message)
        else:
            self.show_error(AUTH_ERROR_TITLE, error.message)

    def _on_verification_required(self, email: str) -> None:
        self.show_confirmation(
            PopupKind.WARNING,
            VERIFY_TITLE,
            VERIFY_MESSAGE,
            on_confirm=lambda: self._resend_verification(email),
            confirm_text="Resend",
            cancel_text="Cancel",
        )

    async def _resend_verification(self, email: str) -> None:
        self.show_loading()
        try:
            result = await self._services["auth_service"].resend_verification(email)
        finally:
            self.hide_loading()
        if result.success:
            self.show_info(VERIFY_SENT_TITLE, result.message or "")
        else:
            self.show_error(VERIFY_FAILED_TITLE, VERIFY_FAILED_MESSAGE)

    # ==================================================================
    # Window close
    # ==================================================================

    def _on_close(self) -> None:
        """Shut the router down on the event loop, then destroy."""
        if self._closing:
            return
        self._closing = True
        self._error_subscription.unsubscribe()
        self._verification_subscription.unsubscribe()
        self._bridge.spawn(self._shutdown(), name="shutdown")

    async def _shutdown(self) -> None:
        try:
            await self._router.shutdown()
        finally:
            self.after(0, self._finish_close)

    def _finish_close(self) -> None:
        self._bridge.stop()
        self.destroy()
