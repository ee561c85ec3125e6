"""
Authentication Service.

Single orchestrator for the credential operations behind the login
screen: sign-in, sign-up, password reset, sign-out and Google sign-in.

Sits between the UI layer and the auth provider so that ``LoginView``
remains a thin form handler.  Every method returns a typed
``AuthResult`` (or ``bool`` for sign-up); backend exceptions are
classified, logged and published on :attr:`AuthService.errors`, never
raised to the caller.
"""

from __future__ import annotations

import re
from typing import Optional

from authshell.interfaces import IAuthProvider, IIdentityTokenSource, IPreferenceStore
from authshell.logger import StructuredLogger
from authshell.models.auth_models import (
    AuthErrorCategory,
    AuthErrorCode,
    AuthResult,
    ClassifiedAuthError,
    GOOGLE_PROVIDER_ID,
    ValidationResult,
)
from authshell.services.auth_errors import AuthErrorClassifier
from authshell.services.base_service import BaseService
from authshell.utils.events import EventChannel


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

PASSWORD_RESET_MESSAGE: str = (
    "If an account exists for this email, a password reset link has been sent."
)

_GOOGLE_NOT_CONFIGURED: str = "Google Sign-In is not configured correctly."
_GOOGLE_CANCELLED: str = "Google sign-in was cancelled."
_GOOGLE_EMPTY_TOKEN: str = "Google authentication failed. Please try again."

VERIFICATION_SENT_MESSAGE: str = (
    "A new verification email has been sent. Please check your inbox."
)

# Reset failures in these categories would reveal whether an account exists.
_RESET_SUPPRESSED: frozenset[AuthErrorCategory] = frozenset({
    AuthErrorCategory.ACCOUNT_STATE,
    AuthErrorCategory.CREDENTIAL_PROVIDER,
})


class AuthService(BaseService):
    """Credential operations over an ``IAuthProvider``.

    Parameters
    ----------
    auth:
        Backend auth provider.
    preferences:
        Remember-me preference store.
    classifier:
        Error classifier.
    logger:
        Structured logger instance.
    token_source:
        Google identity token source; ``None`` disables Google sign-in.
    """

    def __init__(
        self,
        auth: IAuthProvider,
        preferences: IPreferenceStore,
        classifier: AuthErrorClassifier,
        logger: StructuredLogger,
        token_source: Optional[IIdentityTokenSource] = None,
    ) -> None:
        super().__init__(logger)
        self._auth = auth
        self._preferences = preferences
        self._classifier = classifier
        self._token_source = token_source
        self._errors: EventChannel[ClassifiedAuthError] = EventChannel("auth_errors", logger)
        self._verification_required: EventChannel[str] = EventChannel(
            "verification_required", logger,
        )

    @property
    def errors(self) -> EventChannel[ClassifiedAuthError]:
        """Channel carrying every classified failure reported by this service."""
        return self._errors

    @property
    def verification_required(self) -> EventChannel[str]:
        """Channel carrying the email of a sign-in refused as unconfirmed.

        While something listens here, such refusals are published on this
        channel instead of :attr:`errors` so the listener can offer to
        resend the confirmation mail.
        """
        return self._verification_required

    # ------------------------------------------------------------------
    # Client-side validation
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        """Validate presence and shape of an email address."""
        if not email or not email.strip():
            return ValidationResult.fail(AuthErrorCode.MISSING_EMAIL)
        if not _EMAIL_RE.match(email.strip()):
            return ValidationResult.fail(AuthErrorCode.INVALID_EMAIL)
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_sign_in(email: str, password: str) -> ValidationResult:
        if not email or not email.strip():
            return ValidationResult.fail(AuthErrorCode.MISSING_EMAIL)
        if not password:
            return ValidationResult.fail(AuthErrorCode.MISSING_PASSWORD)
        return ValidationResult(is_valid=True)

    @classmethod
    def validate_sign_up(
        cls,
        email: str,
        password: str,
        display_name: str,
        confirm_password: Optional[str] = None,
    ) -> ValidationResult:
        """Validate the sign-up form.

        Checks, in order: email present and well-formed, password present,
        display name present, and (when given) the confirmation matches.
        """
        email_check = cls.validate_email(email)
        if not email_check.is_valid:
            return email_check
        if not password:
            return ValidationResult.fail(AuthErrorCode.MISSING_PASSWORD)
        if not display_name or not display_name.strip():
            return ValidationResult.fail(AuthErrorCode.MISSING_DISPLAY_NAME)
        if confirm_password is not None and confirm_password != password:
            return ValidationResult.fail(AuthErrorCode.PASSWORD_MISMATCH)
        return ValidationResult(is_valid=True)

    # ------------------------------------------------------------------
    # Sign-in
    # ------------------------------------------------------------------

    async def sign_in(self, email: str, password: str, remember_me: bool) -> AuthResult:
        """Sign in with email and password.

        The remember-me choice is persisted before the backend call, so
        the routing that the resulting state change triggers already sees
        it.

        Returns
        -------
        AuthResult
        """
        check = self.validate_sign_in(email, password)
        if not check.is_valid:
            return self._report_validation(check)

        self._preferences.set_remember_me(remember_me)
        normalized = self.normalize_email(email)

        try:
            identity = await self._auth.sign_in_with_password(normalized, password)
        except Exception as exc:
            classified = self._classifier.classify(exc)
            if (
                classified.code == AuthErrorCode.UNVERIFIED_EMAIL
                and self._verification_required.subscriber_count
            ):
                self._logger.info(
                    "Sign-in refused for unconfirmed %s.", normalized,
                    extra={"event": "LOGIN_UNVERIFIED", "email": normalized},
                )
                self._verification_required.publish(normalized)
                return AuthResult(success=False, error=classified)
            return self._publish(classified, exc, operation="LOGIN", email=normalized)

        self._logger.info(
            "User signed in: %s.", normalized,
            extra={"event": "LOGIN", "email": normalized, "remember_me": remember_me},
        )
        return AuthResult(success=True, identity=identity)

    # ------------------------------------------------------------------
    # Sign-up
    # ------------------------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
        confirm_password: Optional[str] = None,
    ) -> bool:
        """Create an account, send the confirmation email, then sign out.

        The caller holds ``AuthSessionContext.sign_up_flow()`` around this
        call so the router does not prompt for verification of the account
        being created.

        Returns
        -------
        bool
            ``True`` only when creation, verification send and sign-out
            all completed.  A failure after creation leaves the account in
            place.
        """
        check = self.validate_sign_up(email, password, display_name, confirm_password)
        if not check.is_valid:
            self._report_validation(check)
            return False

        normalized = self.normalize_email(email)
        name = display_name.strip()
        created = False

        try:
            identity = await self._auth.create_account(normalized, password, name)
            created = True
            await self._auth.send_verification_email(normalized)
            await self._auth.sign_out()
        except Exception as exc:
            if created:
                self._logger.warning(
                    "Account %s was created but sign-up did not finish.", normalized,
                    extra={"event": "SIGN_UP_PARTIAL", "email": normalized},
                )
            self._report(exc, operation="SIGN_UP", email=normalized)
            return False

        self._logger.info(
            "Account created: %s (%s).", normalized, identity.uid,
            extra={"event": "SIGN_UP", "email": normalized, "uid": identity.uid},
        )
        return True

    async def resend_verification(self, email: str) -> AuthResult:
        """Send the confirmation mail again.

        Failures are logged and returned, not published; the caller shows
        its own message for them.
        """
        check = self.validate_email(email)
        if not check.is_valid:
            code = check.error_code or AuthErrorCode.UNKNOWN
            return AuthResult(success=False, error=ClassifiedAuthError.of(code, check.error_message))

        normalized = self.normalize_email(email)
        try:
            await self._auth.send_verification_email(normalized)
        except Exception as exc:
            classified = self._classifier.classify(exc)
            self._logger.warning(
                "Verification resend failed (%s): %s", classified.code, exc,
                extra={"event": "VERIFICATION_RESEND_FAILED", "error_code": classified.code},
            )
            return AuthResult(success=False, error=classified)

        self._logger.info(
            "Verification email resent to %s.", normalized,
            extra={"event": "VERIFICATION_RESENT", "email": normalized},
        )
        return AuthResult(success=True, message=VERIFICATION_SENT_MESSAGE)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def send_password_reset(self, email: str) -> AuthResult:
        """Request a reset email without revealing whether the account exists.

        Succeeds with :data:`PASSWORD_RESET_MESSAGE` unless the input is
        invalid or the failure is unrelated to the account (network,
        configuration, rate limit).
        """
        check = self.validate_email(email)
        if not check.is_valid:
            return self._report_validation(check)

        normalized = self.normalize_email(email)
        try:
            await self._auth.send_password_reset(normalized)
        except Exception as exc:
            classified = self._classifier.classify(exc)
            if classified.category not in _RESET_SUPPRESSED:
                return self._publish(classified, exc, operation="PASSWORD_RESET", email=normalized)
            self._logger.info(
                "Password reset suppressed (%s) for %s.", classified.code, normalized,
                extra={"event": "PASSWORD_RESET_SUPPRESSED", "error_code": classified.code},
            )

        self._logger.info(
            "Password reset requested for %s.", normalized,
            extra={"event": "PASSWORD_RESET", "email": normalized},
        )
        return AuthResult(success=True, message=PASSWORD_RESET_MESSAGE)

    # ------------------------------------------------------------------
    # Sign-out
    # ------------------------------------------------------------------

    async def sign_out(self) -> None:
        """Terminate the session.  No-op when nobody is signed in."""
        identity = self._auth.current_identity
        if identity is None:
            return
        await self._auth.sign_out()
        self._logger.info(
            "User signed out: %s.", identity.uid,
            extra={"event": "LOGOUT", "uid": identity.uid},
        )

    async def logout(self) -> None:
        """Explicit user logout: forget remember-me, then sign out."""
        self._preferences.clear_remember_me()
        await self.sign_out()

    # ------------------------------------------------------------------
    # Google sign-in
    # ------------------------------------------------------------------

    async def sign_in_with_google(self, remember_me: bool) -> AuthResult:
        """Sign in through the Google account chooser.

        Closing the chooser is reported as an informational event, not
        as a failure.
        """
        self._preferences.set_remember_me(remember_me)

        if self._token_source is None or not self._token_source.is_configured:
            return self._publish(
                ClassifiedAuthError.of(AuthErrorCode.CONFIGURATION_ERROR, _GOOGLE_NOT_CONFIGURED),
                None,
                operation="GOOGLE_LOGIN",
            )

        try:
            token = await self._token_source.request_id_token()
        except Exception as exc:
            return self._publish(
                self._classifier.classify_federated(exc), exc, operation="GOOGLE_LOGIN",
            )

        if token is None:
            return self._publish(
                ClassifiedAuthError.of(AuthErrorCode.UNKNOWN, _GOOGLE_CANCELLED, informational=True),
                None,
                operation="GOOGLE_LOGIN",
            )
        if not token:
            return self._publish(
                ClassifiedAuthError.of(AuthErrorCode.CREDENTIAL_INVALID, _GOOGLE_EMPTY_TOKEN),
                None,
                operation="GOOGLE_LOGIN",
            )

        try:
            identity = await self._auth.sign_in_with_id_token(GOOGLE_PROVIDER_ID, token)
        except Exception as exc:
            return self._report(exc, operation="GOOGLE_LOGIN")

        self._logger.info(
            "User signed in with Google: %s.", identity.uid,
            extra={"event": "GOOGLE_LOGIN", "uid": identity.uid, "remember_me": remember_me},
        )
        return AuthResult(success=True, identity=identity)

    # ------------------------------------------------------------------
    # Error reporting
    # ------------------------------------------------------------------

    def _report(self, exc: Exception, *, operation: str, email: str = "") -> AuthResult:
        return self._publish(self._classifier.classify(exc), exc, operation=operation, email=email)

    def _report_validation(self, check: ValidationResult) -> AuthResult:
        code = check.error_code or AuthErrorCode.UNKNOWN
        classified = ClassifiedAuthError.of(code, check.error_message)
        self._errors.publish(classified)
        return AuthResult(success=False, error=classified)

    def _publish(
        self,
        classified: ClassifiedAuthError,
        exc: Optional[Exception],
        *,
        operation: str,
        email: str = "",
    ) -> AuthResult:
        level = self._logger.info if classified.informational else self._logger.warning
        level(
            "%s failed (%s): %s", operation, classified.code, exc if exc is not None else classified.message,
            extra={
                "event": f"{operation}_FAILED",
                "error_code": classified.code,
                "category": classified.category,
                "email": email,
            },
        )
        self._errors.publish(classified)
        return AuthResult(success=False, error=classified)
