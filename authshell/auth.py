"""
Authentication Session Context.

Process-local flags shared between the sign-up flow and the auth router.
Nothing here is persisted; a restart always begins with every flag clear.

Usage::

    from authshell.auth import AuthSessionContext

    context = AuthSessionContext()
    with context.sign_up_flow():
        created = await auth_service.sign_up(email, password, name)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class AuthSessionContext:
    """Injectable holder for the sign-up-in-progress flag.

    While the flag is set, the router does not show the "verify your
    email" prompt for the account that sign-up just created and is about
    to sign out.  Pass a single instance to both the router and the view
    that drives sign-up.
    """

    def __init__(self) -> None:
        self._sign_up_in_progress: bool = False

    @property
    def is_sign_up_in_progress(self) -> bool:
        return self._sign_up_in_progress

    def begin_sign_up(self) -> None:
        self._sign_up_in_progress = True

    def end_sign_up(self) -> None:
        self._sign_up_in_progress = False

    @contextmanager
    def sign_up_flow(self) -> Iterator[None]:
        """Hold the sign-up flag for the body; clear it on every exit path."""
        self.end_sign_up()
        self.begin_sign_up()
        try:
            yield
        finally:
            self.end_sign_up()
