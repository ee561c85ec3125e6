"""
Authentication Router.

Decides which screen the user sees after every authentication-state
transition, and owns the application's one-time auth bootstrap.

A routing pass walks these steps and stops at the first that decides:

1. **Cold start** (first pass of the process only): without remember-me,
   any restored session is signed out and the login screen is shown.
2. **Unauthenticated**: no identity, show login.
3. **Reload identity**: refetch the account from the server.  If the
   server cannot be reached the cached identity is used as-is.  Any other
   failure, or an account that no longer exists, signs out and shows login.
4. **Verification gate**: an unverified email/password account gets a
   confirm/cancel prompt to resend the confirmation mail; both choices
   end signed out on the login screen.  Skipped while sign-up is running.
5. **Profile reconciliation**: create/touch the profile document, then
   show the profile screen.

At most one pass runs at a time; triggers arriving during a pass are
dropped, not queued.  A notification whose identity matches the last one
observed (same account) is ignored.  An unexpected exception in a pass
shows a startup error and the login screen.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from authshell.auth import AuthSessionContext
from authshell.interfaces import IAuthProvider, IPreferenceStore, IPresenter
from authshell.logger import StructuredLogger
from authshell.models.auth_models import Identity
from authshell.models.enums import (
    BootstrapState,
    PopupKind,
    RouteOutcome,
    RouteStep,
    RoutingGate,
    Screen,
)
from authshell.repositories.profile_repository import ProfileRepository
from authshell.services.auth_errors import AuthErrorClassifier
from authshell.services.navigation import SceneNavigator
from authshell.utils.events import Subscription

# ---------------------------------------------------------------------------
# User-facing copy
# ---------------------------------------------------------------------------

CONNECTION_ERROR_TITLE: str = "Connection Error"
CONNECTION_ERROR_MESSAGE: str = (
    "Unable to connect to server.\n\nPlease check your internet connection and try again."
)
VERIFY_TITLE: str = "Email Not Verified"
VERIFY_MESSAGE: str = (
    "You need to verify your email.\nWould you like us to resend the verification email?"
)
VERIFY_FAILED_TITLE: str = "Verification Failed"
VERIFY_FAILED_MESSAGE: str = (
    "We couldn't send the verification email.\n\nPlease try again later."
)
STARTUP_ERROR_TITLE: str = "Startup Error"
STARTUP_ERROR_MESSAGE: str = "Something went wrong while starting the app."


class AuthRouter:
    """Routing state machine driven by auth-state notifications.

    Parameters
    ----------
    auth:
        Backend auth provider; its ``state_changed`` channel drives routing.
    preferences:
        Remember-me preference store.
    profiles:
        Profile repository for login-time reconciliation.
    presenter:
        Screen host for popups and the loading overlay.
    navigator:
        Idempotent screen switcher.
    session_context:
        Shared sign-up-in-progress flag.
    classifier:
        Used to tell network failures from session failures on reload.
    logger:
        Structured logger instance.
    on_quit:
        Invoked when the user chooses to quit from the connection error.
    """

    def __init__(
        self,
        auth: IAuthProvider,
        preferences: IPreferenceStore,
        profiles: ProfileRepository,
        presenter: IPresenter,
        navigator: SceneNavigator,
        session_context: AuthSessionContext,
        classifier: AuthErrorClassifier,
        logger: StructuredLogger,
        on_quit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._auth = auth
        self._preferences = preferences
        self._profiles = profiles
        self._presenter = presenter
        self._navigator = navigator
        self._session_context = session_context
        self._classifier = classifier
        self._logger = logger
        self._on_quit = on_quit

        self._state: BootstrapState = BootstrapState.UNINITIALIZED
        self._gate: RoutingGate = RoutingGate.COLD_START
        self._previous: Optional[Identity] = None
        self._subscription: Optional[Subscription] = None
        self._tasks: set[asyncio.Task[RouteOutcome]] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> BootstrapState:
        return self._state

    @property
    def gate(self) -> RoutingGate:
        return self._gate

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Optional[RouteOutcome]:
        """Check backend dependencies, subscribe, and route once.

        Returns the outcome of the initial routing pass, or ``None`` when
        startup did not reach it (already started, or backend unavailable).
        """
        if self._state is not BootstrapState.UNINITIALIZED:
            self._logger.debug("start() ignored in state %s.", self._state)
            return None

        self._state = BootstrapState.INITIALIZING
        self._presenter.show_loading()
        try:
            available = await self._auth.check_dependencies()
        except Exception as exc:
            self._logger.error("Dependency check raised: %s", exc, exc_info=True)
            available = False
        finally:
            self._presenter.hide_loading()

        if not available:
            self._state = BootstrapState.UNINITIALIZED
            self._logger.warning(
                "Backend unavailable at startup.", extra={"event": "BOOTSTRAP_FAILED"},
            )
            self._presenter.show_confirmation(
                PopupKind.ERROR,
                CONNECTION_ERROR_TITLE,
                CONNECTION_ERROR_MESSAGE,
                on_confirm=self._retry_start,
                on_cancel=self._quit,
                confirm_text="Retry",
                cancel_text="Quit",
            )
            return None

        self._previous = self._auth.current_identity
        self._subscription = self._auth.state_changed.subscribe(self._on_auth_state_changed)
        self._state = BootstrapState.READY
        self._logger.info("Auth router ready.", extra={"event": "BOOTSTRAP_READY"})
        return await self.route()

    async def shutdown(self) -> None:
        """Stop routing; sign out unless the user asked to be remembered."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        await self.wait_for_pending()

        if self._state is BootstrapState.READY and not self._preferences.is_remember_me_enabled():
            if self._auth.current_identity is not None:
                try:
                    await self._auth.sign_out()
                    self._logger.info(
                        "Signed out on quit (remember-me off).",
                        extra={"event": "QUIT_SIGN_OUT"},
                    )
                except Exception as exc:
                    self._logger.warning("Sign-out on quit failed: %s", exc)
        self._state = BootstrapState.UNINITIALIZED

    async def wait_for_pending(self) -> None:
        """Await routing passes spawned by notifications."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def _on_auth_state_changed(self, _payload: None = None) -> None:
        if self._state is not BootstrapState.READY:
            return

        current = self._auth.current_identity
        if Identity.same_account(current, self._previous):
            self._logger.debug("Auth notification for unchanged account ignored.")
            return

        # Recorded before routing so a dropped pass still updates it.
        self._previous = current
        task = asyncio.get_running_loop().create_task(self.route())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def route(self) -> RouteOutcome:
        """Run one routing pass, or drop it if another is in flight."""
        if self._gate is RoutingGate.BUSY:
            self._logger.debug("Routing in flight; trigger dropped.")
            return RouteOutcome.DROPPED

        cold_start = self._gate is RoutingGate.COLD_START
        self._gate = RoutingGate.BUSY
        try:
            outcome = await self._decide(cold_start)
        except Exception as exc:
            self._logger.error(
                "Routing failed: %s", exc,
                exc_info=True,
                extra={"event": "ROUTE_FAILED"},
            )
            self._presenter.show_error(STARTUP_ERROR_TITLE, STARTUP_ERROR_MESSAGE)
            self._navigator.navigate(Screen.LOGIN)
            outcome = RouteOutcome.NAVIGATE_LOGIN
        finally:
            self._gate = RoutingGate.IDLE

        self._logger.info(
            "Routing outcome %s.", outcome,
            extra={"event": "ROUTE", "outcome": outcome, "cold_start": cold_start},
        )
        return outcome

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    async def _decide(self, cold_start: bool) -> RouteOutcome:
        identity = self._auth.current_identity

        if cold_start:
            self._step(RouteStep.COLD_START_CHECK)
            if not self._preferences.is_remember_me_enabled():
                if identity is not None:
                    await self._auth.sign_out()
                return self._to_login()

        if identity is None:
            self._step(RouteStep.UNAUTHENTICATED)
            return self._to_login()

        self._step(RouteStep.RELOADING_IDENTITY)
        try:
            refreshed = await self._auth.reload_identity()
        except Exception as exc:
            if not self._classifier.is_network_error(exc):
                self._logger.warning(
                    "Identity reload rejected: %s. Signing out.", exc,
                    extra={"event": "RELOAD_REJECTED"},
                )
                await self._auth.sign_out()
                return self._to_login()
            self._logger.warning(
                "Identity reload unreachable: %s. Using cached identity.", exc,
                extra={"event": "RELOAD_OFFLINE"},
            )
            refreshed = identity

        if refreshed is None:
            self._logger.warning("Account vanished during reload. Signing out.")
            await self._auth.sign_out()
            return self._to_login()
        identity = refreshed

        if identity.uses_password_provider and not identity.email_verified:
            self._step(RouteStep.VERIFICATION_GATE)
            if self._session_context.is_sign_up_in_progress:
                return RouteOutcome.SIGN_UP_IN_PROGRESS
            email = identity.email or ""
            self._presenter.show_confirmation(
                PopupKind.WARNING,
                VERIFY_TITLE,
                VERIFY_MESSAGE,
                on_confirm=lambda: self._resend_verification(email),
                on_cancel=self._sign_out_to_login,
                confirm_text="Resend",
                cancel_text="Cancel",
            )
            return RouteOutcome.AWAITING_USER_CHOICE

        self._step(RouteStep.PROFILE_RECONCILING)
        await self._profiles.ensure_profile_exists_and_touch_login(identity.uid, identity)
        self._navigator.navigate(Screen.PROFILE)
        return RouteOutcome.NAVIGATE_PROFILE

    def _step(self, step: RouteStep) -> None:
        self._logger.debug("Routing step %s.", step, extra={"event": "ROUTE_STEP", "step": step})

    def _to_login(self) -> RouteOutcome:
        self._navigator.navigate(Screen.LOGIN)
        return RouteOutcome.NAVIGATE_LOGIN

    # ------------------------------------------------------------------
    # Popup callbacks
    # ------------------------------------------------------------------

    async def _resend_verification(self, email: str) -> None:
        try:
            await self._auth.send_verification_email(email)
            self._logger.info(
                "Verification email resent to %s.", email,
                extra={"event": "VERIFICATION_RESENT"},
            )
        except Exception as exc:
            self._logger.warning(
                "Verification resend failed: %s", exc,
                extra={"event": "VERIFICATION_RESEND_FAILED"},
            )
            self._presenter.show_error(VERIFY_FAILED_TITLE, VERIFY_FAILED_MESSAGE)
        finally:
            await self._sign_out_to_login()

    async def _sign_out_to_login(self) -> None:
        try:
            await self._auth.sign_out()
        finally:
            self._navigator.navigate(Screen.LOGIN)

    async def _retry_start(self) -> None:
        await self.start()

    async def _quit(self) -> None:
        if self._on_quit is not None:
            self._on_quit()
