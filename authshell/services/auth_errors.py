"""
Authentication Error Classifier.

Maps exceptions raised by the Supabase client, the HTTP stack and the
Google identity-token source into the closed :class:`AuthErrorCode`
taxonomy.  Pure: no I/O, no state, and :meth:`classify` never raises.
"""

from __future__ import annotations

import httpx
from supabase import AuthApiError, AuthError, AuthRetryableError

from authshell.exceptions import FederatedSignInError
from authshell.models.auth_models import (
    AuthErrorCode,
    ClassifiedAuthError,
    SUPABASE_ERROR_MAP,
)

_NETWORK_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
    AuthRetryableError,
)

_HTTP_TOO_MANY_REQUESTS: int = 429
_UNEXPECTED_MESSAGE: str = "An unexpected error occurred."


class AuthErrorClassifier:
    """Translate backend exceptions into :class:`ClassifiedAuthError`.

    Resolution order:

    1. Network-class exceptions (connection, timeout, transport, retryable).
    2. The exception's ``code`` attribute, looked up in
       :data:`SUPABASE_ERROR_MAP`.
    3. HTTP 429 status.
    4. A substring scan of the lower-cased error text against the map.
    5. :attr:`AuthErrorCode.UNKNOWN`.
    """

    @staticmethod
    def is_network_error(exc: BaseException) -> bool:
        """``True`` when *exc* means the server could not be reached."""
        if isinstance(exc, _NETWORK_EXCEPTIONS):
            return True
        return isinstance(exc.__cause__, _NETWORK_EXCEPTIONS)

    def classify(self, exc: BaseException) -> ClassifiedAuthError:
        try:
            code = self._resolve_code(exc)
        except Exception:
            code = AuthErrorCode.UNKNOWN
        if code is AuthErrorCode.UNKNOWN and not isinstance(exc, AuthError):
            return ClassifiedAuthError.of(code, _UNEXPECTED_MESSAGE)
        return ClassifiedAuthError.of(code)

    def classify_federated(self, exc: BaseException) -> ClassifiedAuthError:
        """Classify a failure from the Google sign-in flow."""
        if isinstance(exc, FederatedSignInError):
            return ClassifiedAuthError.of(
                AuthErrorCode.NETWORK_ERROR, "Google sign-in failed."
            )
        return self.classify(exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_code(self, exc: BaseException) -> AuthErrorCode:
        if self.is_network_error(exc):
            return AuthErrorCode.NETWORK_ERROR

        code = getattr(exc, "code", None)
        if isinstance(code, str) and code.lower() in SUPABASE_ERROR_MAP:
            return SUPABASE_ERROR_MAP[code.lower()]

        if isinstance(exc, AuthApiError) and getattr(exc, "status", None) == _HTTP_TOO_MANY_REQUESTS:
            return AuthErrorCode.TOO_MANY_REQUESTS

        error_str = str(exc).lower()
        for code_key, error_code in SUPABASE_ERROR_MAP.items():
            if code_key in error_str:
                return error_code

        return AuthErrorCode.UNKNOWN
