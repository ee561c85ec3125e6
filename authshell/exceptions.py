"""
AuthShell exceptions.

Raised by the backend adapters and the profile repository.  Credential
operations never let these reach a view; they are classified by
``AuthErrorClassifier`` first.
"""

from __future__ import annotations

from typing import Optional


class AuthShellError(Exception):
    """Base class for application exceptions."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class BackendUnavailableError(AuthShellError):
    """Raised when the backend client is used before a successful connect."""

    def __init__(self, message: str = "Backend client is not connected.") -> None:
        super().__init__(message)


class ProfileStoreError(AuthShellError):
    """Raised when a profile document cannot be read or written."""


class DocumentNotFoundError(ProfileStoreError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, collection: str, key: str) -> None:
        self.collection = collection
        self.key = key
        super().__init__(f"Document not found: {collection}/{key}")


class FederatedSignInError(AuthShellError):
    """Raised when the Google account picker or token exchange fails."""
