"""
Shared Enumerations for AuthShell Models.

All string enumerations for type-safe field constraints.  StrEnum values
compare equal to their string equivalents, so they serialise into log
``extra`` fields without conversion.
"""

from __future__ import annotations
from enum import StrEnum


class Screen(StrEnum):
    """Top-level screens the router can navigate to."""

    LOGIN = "LOGIN"
    PROFILE = "PROFILE"


class PopupKind(StrEnum):
    """Visual severity of a popup request."""

    INFORMATION = "INFORMATION"
    WARNING = "WARNING"
    ERROR = "ERROR"


class BootstrapState(StrEnum):
    """Lifecycle of the auth router's one-time startup."""

    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"


class RoutingGate(StrEnum):
    """Admission state for routing decisions.

    ``COLD_START`` holds until the first decision of the process begins;
    that decision alone consults the remember-me preference.  ``BUSY``
    marks a decision in flight; triggers arriving then are dropped.
    """

    COLD_START = "COLD_START"
    IDLE = "IDLE"
    BUSY = "BUSY"


class RouteStep(StrEnum):
    """Decision steps, in the order a routing pass visits them."""

    COLD_START_CHECK = "COLD_START_CHECK"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    RELOADING_IDENTITY = "RELOADING_IDENTITY"
    VERIFICATION_GATE = "VERIFICATION_GATE"
    PROFILE_RECONCILING = "PROFILE_RECONCILING"


class RouteOutcome(StrEnum):
    """Result of a single routing pass.

    The first three are terminal decisions.  The rest mean no decision
    was taken for the trigger.
    """

    NAVIGATE_LOGIN = "NAVIGATE_LOGIN"
    NAVIGATE_PROFILE = "NAVIGATE_PROFILE"
    AWAITING_USER_CHOICE = "AWAITING_USER_CHOICE"
    SIGN_UP_IN_PROGRESS = "SIGN_UP_IN_PROGRESS"
    DROPPED = "DROPPED"
