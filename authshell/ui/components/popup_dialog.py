"""Popup Dialog Component.

Modal ``CTkToplevel`` used for every message box the application shows:
single-button information/error notices and two-button confirmations.
Button callbacks are coroutine functions, run on the shared event loop
through ``AsyncTkBridge`` after the dialog has closed.
"""

from __future__ import annotations

from typing import Optional

import customtkinter as ctk

from authshell.interfaces import PopupCallback
from authshell.models.enums import PopupKind
from authshell.ui.event_loop import AsyncTkBridge
from authshell.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    DIALOG_WIDTH,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BUTTON,
    FONT_HEADING,
    INPUT_BORDER,
    PADDING_LG,
    PADDING_MD,
    PADDING_SM,
    TAB_HOVER,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
    WARNING_TEXT,
)

_KIND_COLOURS: dict[PopupKind, str] = {
    PopupKind.INFORMATION: ACCENT_PRIMARY,
    PopupKind.WARNING: WARNING_TEXT,
    PopupKind.ERROR: ERROR_TEXT,
}
_KIND_ICONS: dict[PopupKind, str] = {
    PopupKind.INFORMATION: "\u2139",
    PopupKind.WARNING: "\u26A0",
    PopupKind.ERROR: "\u2716",
}
_BUTTON_HEIGHT: int = 38


class PopupDialog(ctk.CTkToplevel):
    """Modal message box.

    A cancel button is only shown when *cancel_text* is given.  Closing
    the window with the title-bar button counts as cancel.

    Parameters
    ----------
    parent:
        Owning window.
    bridge:
        Event-loop bridge used to run the callbacks.
    kind:
        Severity, controls the accent colour and icon.
    title, message:
        Dialog copy.
    on_confirm, on_cancel:
        Coroutine functions run after the matching choice.
    confirm_text, cancel_text:
        Button captions.
    """

    def __init__(
        self,
        parent: ctk.CTk,
        bridge: AsyncTkBridge,
        kind: PopupKind,
        title: str,
        message: str,
        on_confirm: Optional[PopupCallback] = None,
        on_cancel: Optional[PopupCallback] = None,
        confirm_text: str = "OK",
        cancel_text: Optional[str] = None,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_CARD_BG)
        self._bridge = bridge
        self._on_confirm = on_confirm
        self._on_cancel = on_cancel
        self._closed: bool = False

        self.title(title)
        self.resizable(False, False)
        self.transient(parent)
        self.protocol("WM_DELETE_WINDOW", self._cancel)

        accent = _KIND_COLOURS.get(kind, ACCENT_PRIMARY)

        body = ctk.CTkFrame(self, fg_color="transparent")
        body.pack(fill="both", expand=True, padx=PADDING_LG, pady=PADDING_LG)

        header = ctk.CTkFrame(body, fg_color="transparent")
        header.pack(fill="x", pady=(0, PADDING_MD))
        ctk.CTkLabel(
            header,
            text=_KIND_ICONS.get(kind, ""),
            font=FONT_HEADING,
            text_color=accent,
        ).pack(side="left", padx=(0, PADDING_SM))
        ctk.CTkLabel(
            header,
            text=title,
            font=FONT_HEADING,
            text_color=TEXT_PRIMARY,
            anchor="w",
        ).pack(side="left", fill="x")

        ctk.CTkLabel(
            body,
            text=message,
            font=FONT_BODY,
            text_color=TEXT_SECONDARY,
            justify="left",
            anchor="w",
            wraplength=DIALOG_WIDTH - 2 * PADDING_LG,
        ).pack(fill="x", pady=(0, PADDING_LG))

        buttons = ctk.CTkFrame(body, fg_color="transparent")
        buttons.pack(fill="x")

        self._confirm_button = ctk.CTkButton(
            buttons,
            text=confirm_text,
            font=FONT_BUTTON,
            fg_color=accent,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            height=_BUTTON_HEIGHT,
            corner_radius=CORNER_RADIUS,
            command=self._confirm,
        )
        self._confirm_button.pack(side="right")

        if cancel_text:
            ctk.CTkButton(
                buttons,
                text=cancel_text,
                font=FONT_BUTTON,
                fg_color="transparent",
                hover_color=TAB_HOVER,
                text_color=TEXT_SECONDARY,
                border_width=1,
                border_color=INPUT_BORDER,
                height=_BUTTON_HEIGHT,
                corner_radius=CORNER_RADIUS,
                command=self._cancel,
            ).pack(side="right", padx=(0, PADDING_SM))

        self.bind("<Return>", lambda _e: self._confirm())
        self.bind("<Escape>", lambda _e: self._cancel())

        self.after(10, self._grab)

    def _grab(self) -> None:
        # Toplevels must be viewable before grab_set succeeds.
        if self.winfo_exists():
            self.lift()
            self._confirm_button.focus_set()
            self.grab_set()

    def _confirm(self) -> None:
        self._finish(self._on_confirm, "popup_confirm")

    def _cancel(self) -> None:
        self._finish(self._on_cancel, "popup_cancel")

    def _finish(self, callback: Optional[PopupCallback], name: str) -> None:
        if self._closed:
            return
        self._closed = True
        self.grab_release()
        self.destroy()
        if callback is not None:
            self._bridge.spawn(callback(), name=name)
