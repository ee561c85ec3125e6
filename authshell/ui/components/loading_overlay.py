"""Loading Overlay Component.

Full-window cover with a busy label and an indeterminate progress bar.
Show/hide calls are counted so nested operations keep the overlay up
until the outermost one finishes.
"""

from __future__ import annotations

import customtkinter as ctk

from authshell.ui.theme import (
    ACCENT_PRIMARY,
    FONT_SUBTITLE,
    OVERLAY_BG,
    PADDING_MD,
    TEXT_SECONDARY,
)


class LoadingOverlay(ctk.CTkFrame):
    """Reference-counted busy indicator placed over the whole parent."""

    def __init__(self, parent: ctk.CTk, text: str = "Please wait...") -> None:
        super().__init__(parent, fg_color=OVERLAY_BG, corner_radius=0)
        self._depth: int = 0

        inner = ctk.CTkFrame(self, fg_color="transparent")
        inner.place(relx=0.5, rely=0.5, anchor="center")

        ctk.CTkLabel(
            inner,
            text=text,
            font=FONT_SUBTITLE,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, PADDING_MD))

        self._progress = ctk.CTkProgressBar(
            inner, mode="indeterminate", width=200, progress_color=ACCENT_PRIMARY,
        )
        self._progress.pack()

    @property
    def is_visible(self) -> bool:
        return self._depth > 0

    def show(self) -> None:
        self._depth += 1
        if self._depth == 1:
            self.place(relx=0, rely=0, relwidth=1, relheight=1)
            self.lift()
            self._progress.start()

    def hide(self) -> None:
        if self._depth == 0:
            return
        self._depth -= 1
        if self._depth == 0:
            self._progress.stop()
            self.place_forget()
