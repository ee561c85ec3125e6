"""
Screen Navigation.

Idempotent screen switching on top of ``IPresenter``: asking for the
screen that is already active does nothing, so repeated routing
decisions never rebuild a view or drop its unsaved input.
"""

from __future__ import annotations

from authshell.interfaces import IPresenter
from authshell.logger import StructuredLogger
from authshell.models.enums import Screen


class SceneNavigator:
    """Switches the presenter's active screen at most once per target."""

    def __init__(self, presenter: IPresenter, logger: StructuredLogger) -> None:
        self._presenter = presenter
        self._logger = logger

    def navigate(self, screen: Screen) -> bool:
        """Show *screen*.  Returns ``False`` when it was already active."""
        if self._presenter.active_screen == screen:
            self._logger.debug("Already on %s; navigation skipped.", screen)
            return False
        self._logger.info(
            "Navigating to %s.", screen,
            extra={"event": "NAVIGATE", "screen": screen},
        )
        self._presenter.show_screen(screen)
        return True
