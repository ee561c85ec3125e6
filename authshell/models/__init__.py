"""
Data Models Package.

Re-exports the Pydantic models and enumerations::

    from authshell.models import Identity, UserProfile, AuthResult
    from authshell.models import Screen, RouteOutcome, AuthErrorCode
"""

from __future__ import annotations

from authshell.models.auth_models import (
    AuthErrorCategory,
    AuthErrorCode,
    AuthResult,
    ClassifiedAuthError,
    Identity,
    ValidationResult,
)
from authshell.models.enums import (
    BootstrapState,
    PopupKind,
    RouteOutcome,
    RouteStep,
    RoutingGate,
    Screen,
)
from authshell.models.profile import SERVER_TIMESTAMP, UserProfile

__all__ = [
    "AuthErrorCategory",
    "AuthErrorCode",
    "AuthResult",
    "BootstrapState",
    "ClassifiedAuthError",
    "Identity",
    "PopupKind",
    "RouteOutcome",
    "RouteStep",
    "RoutingGate",
    "SERVER_TIMESTAMP",
    "Screen",
    "UserProfile",
    "ValidationResult",
]
