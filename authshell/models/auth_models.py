"""
Authentication Pipeline Models.

Pydantic models and enumerations for the contracts between the auth
provider, ``AuthService``, the router and the UI layer.  Every auth
operation returns a structured, inspectable result; backend exceptions
are translated into :class:`ClassifiedAuthError` before they reach a view.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCategory(StrEnum):
    """Coarse grouping of :class:`AuthErrorCode` values."""

    INPUT_VALIDATION = "input_validation"
    ACCOUNT_STATE = "account_state"
    CREDENTIAL_PROVIDER = "credential_provider"
    NETWORK_PLATFORM = "network_platform"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class AuthErrorCode(StrEnum):
    """Closed set of authentication failure kinds shown to the user."""

    INVALID_EMAIL = "invalid_email"
    MISSING_EMAIL = "missing_email"
    MISSING_PASSWORD = "missing_password"
    MISSING_DISPLAY_NAME = "missing_display_name"
    PASSWORD_MISMATCH = "password_mismatch"
    UNVERIFIED_EMAIL = "unverified_email"
    WEAK_PASSWORD = "weak_password"
    USER_NOT_FOUND = "user_not_found"
    EMAIL_ALREADY_IN_USE = "email_already_in_use"
    USER_DISABLED = "user_disabled"
    OPERATION_NOT_ALLOWED = "operation_not_allowed"
    WRONG_PASSWORD = "wrong_password"
    CREDENTIAL_INVALID = "credential_invalid"
    CREDENTIAL_ALREADY_IN_USE = "credential_already_in_use"
    ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL = "account_exists_with_different_credential"
    NETWORK_ERROR = "network_error"
    TOO_MANY_REQUESTS = "too_many_requests"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN = "unknown"


ERROR_CATEGORIES: dict[AuthErrorCode, AuthErrorCategory] = {
    AuthErrorCode.INVALID_EMAIL: AuthErrorCategory.INPUT_VALIDATION,
    AuthErrorCode.MISSING_EMAIL: AuthErrorCategory.INPUT_VALIDATION,
    AuthErrorCode.MISSING_PASSWORD: AuthErrorCategory.INPUT_VALIDATION,
    AuthErrorCode.MISSING_DISPLAY_NAME: AuthErrorCategory.INPUT_VALIDATION,
    AuthErrorCode.PASSWORD_MISMATCH: AuthErrorCategory.INPUT_VALIDATION,
    AuthErrorCode.WEAK_PASSWORD: AuthErrorCategory.INPUT_VALIDATION,
    AuthErrorCode.UNVERIFIED_EMAIL: AuthErrorCategory.ACCOUNT_STATE,
    AuthErrorCode.USER_NOT_FOUND: AuthErrorCategory.ACCOUNT_STATE,
    AuthErrorCode.EMAIL_ALREADY_IN_USE: AuthErrorCategory.ACCOUNT_STATE,
    AuthErrorCode.USER_DISABLED: AuthErrorCategory.ACCOUNT_STATE,
    AuthErrorCode.OPERATION_NOT_ALLOWED: AuthErrorCategory.ACCOUNT_STATE,
    AuthErrorCode.WRONG_PASSWORD: AuthErrorCategory.CREDENTIAL_PROVIDER,
    AuthErrorCode.CREDENTIAL_INVALID: AuthErrorCategory.CREDENTIAL_PROVIDER,
    AuthErrorCode.CREDENTIAL_ALREADY_IN_USE: AuthErrorCategory.CREDENTIAL_PROVIDER,
    AuthErrorCode.ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL: AuthErrorCategory.CREDENTIAL_PROVIDER,
    AuthErrorCode.NETWORK_ERROR: AuthErrorCategory.NETWORK_PLATFORM,
    AuthErrorCode.TOO_MANY_REQUESTS: AuthErrorCategory.NETWORK_PLATFORM,
    AuthErrorCode.CONFIGURATION_ERROR: AuthErrorCategory.CONFIGURATION,
    AuthErrorCode.UNKNOWN: AuthErrorCategory.UNKNOWN,
}


ERROR_MESSAGES: dict[AuthErrorCode, str] = {
    AuthErrorCode.INVALID_EMAIL: "The email address is not valid.",
    AuthErrorCode.MISSING_EMAIL: "Email address is required.",
    AuthErrorCode.MISSING_PASSWORD: "Password is required.",
    AuthErrorCode.MISSING_DISPLAY_NAME: "Username is required.",
    AuthErrorCode.PASSWORD_MISMATCH: "Passwords do not match.",
    AuthErrorCode.UNVERIFIED_EMAIL: "Email is not verified.",
    AuthErrorCode.WEAK_PASSWORD: "Password is too weak.",
    AuthErrorCode.USER_NOT_FOUND: "No account found with this email.",
    AuthErrorCode.EMAIL_ALREADY_IN_USE: "This email is already in use.",
    AuthErrorCode.USER_DISABLED: "This account has been disabled.",
    AuthErrorCode.OPERATION_NOT_ALLOWED: "This authentication method is not enabled.",
    AuthErrorCode.WRONG_PASSWORD: "Incorrect password.",
    AuthErrorCode.CREDENTIAL_INVALID: "The authentication credential is invalid or expired.",
    AuthErrorCode.CREDENTIAL_ALREADY_IN_USE: (
        "This credential is already associated with another account."
    ),
    AuthErrorCode.ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL: (
        "An account already exists with a different sign-in method."
    ),
    AuthErrorCode.NETWORK_ERROR: "Network error. Please check your internet connection.",
    AuthErrorCode.TOO_MANY_REQUESTS: "Too many attempts. Please try again later.",
    AuthErrorCode.CONFIGURATION_ERROR: "Authentication is not configured correctly.",
    AuthErrorCode.UNKNOWN: "Authentication failed. Please try again.",
}


# ---------------------------------------------------------------------------
# Supabase error-code mapping
# ---------------------------------------------------------------------------
# Keys are GoTrue ``error_code`` values; they double as substrings for the
# fallback scan of error text when an exception carries no code.

SUPABASE_ERROR_MAP: dict[str, AuthErrorCode] = {
    "email_address_invalid": AuthErrorCode.INVALID_EMAIL,
    "validation_failed": AuthErrorCode.INVALID_EMAIL,
    "email_not_confirmed": AuthErrorCode.UNVERIFIED_EMAIL,
    "weak_password": AuthErrorCode.WEAK_PASSWORD,
    "user_not_found": AuthErrorCode.USER_NOT_FOUND,
    "email_exists": AuthErrorCode.EMAIL_ALREADY_IN_USE,
    "user_already_exists": AuthErrorCode.EMAIL_ALREADY_IN_USE,
    "user_banned": AuthErrorCode.USER_DISABLED,
    "signup_disabled": AuthErrorCode.OPERATION_NOT_ALLOWED,
    "email_provider_disabled": AuthErrorCode.OPERATION_NOT_ALLOWED,
    "provider_disabled": AuthErrorCode.OPERATION_NOT_ALLOWED,
    "anonymous_provider_disabled": AuthErrorCode.OPERATION_NOT_ALLOWED,
    "invalid_credentials": AuthErrorCode.WRONG_PASSWORD,
    "invalid login credentials": AuthErrorCode.WRONG_PASSWORD,
    "bad_jwt": AuthErrorCode.CREDENTIAL_INVALID,
    "bad_oauth_state": AuthErrorCode.CREDENTIAL_INVALID,
    "bad_oauth_callback": AuthErrorCode.CREDENTIAL_INVALID,
    "otp_expired": AuthErrorCode.CREDENTIAL_INVALID,
    "session_not_found": AuthErrorCode.CREDENTIAL_INVALID,
    "session_expired": AuthErrorCode.CREDENTIAL_INVALID,
    "refresh_token_not_found": AuthErrorCode.CREDENTIAL_INVALID,
    "refresh_token_already_used": AuthErrorCode.CREDENTIAL_INVALID,
    "identity_already_exists": AuthErrorCode.CREDENTIAL_ALREADY_IN_USE,
    "email_conflict_identity_not_deletable": (
        AuthErrorCode.ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL
    ),
    "over_request_rate_limit": AuthErrorCode.TOO_MANY_REQUESTS,
    "over_email_send_rate_limit": AuthErrorCode.TOO_MANY_REQUESTS,
    "request_timeout": AuthErrorCode.NETWORK_ERROR,
    "no_authorization": AuthErrorCode.CONFIGURATION_ERROR,
    "invalid api key": AuthErrorCode.CONFIGURATION_ERROR,
    "email_address_not_authorized": AuthErrorCode.CONFIGURATION_ERROR,
}


class ClassifiedAuthError(BaseModel):
    """An auth failure translated into the closed taxonomy.

    Attributes
    ----------
    code:
        The specific failure kind.
    category:
        Coarse grouping derived from ``code``.
    message:
        Human-readable text suitable for a popup.
    informational:
        ``True`` for outcomes that are reported but are not failures,
        such as the user closing the Google account picker.
    """

    code: AuthErrorCode
    category: AuthErrorCategory
    message: str
    informational: bool = False

    model_config = {"frozen": True}

    @classmethod
    def of(
        cls,
        code: AuthErrorCode,
        message: Optional[str] = None,
        *,
        informational: bool = False,
    ) -> "ClassifiedAuthError":
        """Build an error for *code*, defaulting to its canonical message."""
        return cls(
            code=code,
            category=ERROR_CATEGORIES[code],
            message=message or ERROR_MESSAGES[code],
            informational=informational,
        )


# ---------------------------------------------------------------------------
# Identity snapshot
# ---------------------------------------------------------------------------

PASSWORD_PROVIDER_ID: str = "email"
GOOGLE_PROVIDER_ID: str = "google"


class Identity(BaseModel):
    """Read-only snapshot of the authenticated account.

    Adapters rebuild this value on every backend notification, so two
    snapshots of the same account compare by ``uid`` via :meth:`same_account`
    rather than by object identity.
    """

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False
    provider_ids: tuple[str, ...] = ()

    model_config = {"frozen": True, "from_attributes": True}

    @property
    def uses_password_provider(self) -> bool:
        """``True`` when the account signs in with email and password."""
        return PASSWORD_PROVIDER_ID in self.provider_ids

    @staticmethod
    def same_account(a: Optional["Identity"], b: Optional["Identity"]) -> bool:
        """Account equality: both absent, or both present with the same uid."""
        if a is None or b is None:
            return a is None and b is None
        return a.uid == b.uid


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a client-side field validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes the validation rule.
    error_code:
        Taxonomy code for the failure, or ``None`` on success.
    error_message:
        Human-readable description of the failure, or ``None`` on success.
    """

    is_valid: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def fail(cls, code: AuthErrorCode, message: Optional[str] = None) -> "ValidationResult":
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message or ERROR_MESSAGES[code],
        )


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for sign-in, sign-up, reset and federated sign-in.

    The UI layer inspects ``success`` to choose the happy path and uses
    ``error`` to render feedback.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error:
        The classified failure (``None`` on success).
    message:
        Optional confirmation text for successful operations.
    identity:
        The signed-in identity, when the operation produced one.
    """

    success: bool
    error: Optional[ClassifiedAuthError] = None
    message: Optional[str] = None
    identity: Optional[Identity] = None

    model_config = {"from_attributes": True}

    @property
    def error_code(self) -> Optional[AuthErrorCode]:
        return self.error.code if self.error is not None else None

    @property
    def cancelled(self) -> bool:
        """``True`` when the user abandoned the operation."""
        return self.error is not None and self.error.informational

