"""
User Profile Model.

One record per authenticated account, stored in the backend document
store under the account's uid.  Field aliases match the stored column
names so rows validate directly via ``UserProfile.model_validate(row)``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Final, Optional

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Represents the stored profile of one account.

    ``uid``, ``email`` and ``created_at`` are fixed at creation.
    ``display_name`` and ``photo_url`` are user-editable and never
    overwritten by login-time reconciliation.
    """

    uid: str
    email: str = ""
    display_name: str = Field(default="", alias="displayName")
    photo_url: str = Field(default="", alias="photoUrl")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_login_at: Optional[datetime] = Field(default=None, alias="lastLoginAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


# ---------------------------------------------------------------------------
# Server timestamp sentinel
# ---------------------------------------------------------------------------

class ServerTimestamp:
    """Placeholder resolved by the document store to backend time.

    Every sentinel in a single write resolves to the same instant.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Final[ServerTimestamp] = ServerTimestamp()


def resolve_server_timestamps(data: dict[str, object], now: object) -> dict[str, object]:
    """Return a copy of *data* with every :data:`SERVER_TIMESTAMP` replaced by *now*."""
    return {
        key: (now if value is SERVER_TIMESTAMP else value)
        for key, value in data.items()
    }


def contains_server_timestamp(data: dict[str, object]) -> bool:
    return any(value is SERVER_TIMESTAMP for value in data.values())
