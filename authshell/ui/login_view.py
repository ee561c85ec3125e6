"""Login View: Authentication Screen.

Sign In / Create Account tabs plus an inline password-reset form and an
optional "Continue with Google" button.

**Thin UI Rule**: This module contains ZERO business logic.  It gathers
inputs, delegates to ``AuthService`` on the shared event loop, and
toggles its own busy state.  Failures reach the user through the
popups ``AppShell`` raises for ``AuthService.errors``; navigation after
a successful sign-in is the router's job.
"""

from __future__ import annotations

import tkinter as tk
from typing import Callable, Optional

import customtkinter as ctk

from authshell.auth import AuthSessionContext
from authshell.interfaces import IPresenter
from authshell.logger import StructuredLogger
from authshell.services.auth_service import AuthService
from authshell.ui.event_loop import AsyncTkBridge
from authshell.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CARD_WIDTH,
    CONTENT_BG,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    FONT_BODY,
    FONT_BRAND,
    FONT_BUTTON,
    FONT_CAPTION,
    FONT_LABEL,
    FONT_SMALL,
    FONT_SUBTITLE,
    INPUT_BG,
    INPUT_BORDER,
    PADDING_LG,
    PADDING_MD,
    PADDING_SM,
    SUCCESS_TEXT,
    TAB_BORDER,
    TAB_HOVER,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_TAB_HEIGHT: int = 42
_INPUT_HEIGHT: int = 42
_BUTTON_HEIGHT: int = 46
_TAB_SIGN_IN: str = "sign_in"
_TAB_SIGN_UP: str = "sign_up"
_SIGN_IN_TEXT: str = "Sign In  \u2192"
_SIGN_UP_TEXT: str = "Create Account  \u2192"

MISSING_INFO_TITLE: str = "Missing Information"
MISSING_INFO_MESSAGE: str = "Please enter both email and password."
VERIFICATION_SENT_TITLE: str = "Verification Email Sent"


class LoginView(ctk.CTkFrame):
    """Full-window login frame.

    Parameters
    ----------
    parent:
        The root window.
    bridge:
        Runs the auth coroutines on the shared event loop.
    presenter:
        Popup host.
    auth_service:
        Credential operations.
    session_context:
        Sign-up flag, held for the duration of account creation.
    google_enabled:
        Whether to offer Google sign-in.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        parent: ctk.CTk,
        bridge: AsyncTkBridge,
        presenter: IPresenter,
        auth_service: AuthService,
        session_context: AuthSessionContext,
        google_enabled: bool,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)

        self._bridge = bridge
        self._presenter = presenter
        self._auth_service = auth_service
        self._session_context = session_context
        self._google_enabled = google_enabled
        self._logger = logger

        self._alive: bool = True
        self._busy: bool = False
        self._active_tab: str = _TAB_SIGN_IN

        self._remember_var = tk.BooleanVar(master=self, value=False)

        self._build_ui()

    def destroy(self) -> None:
        self._alive = False
        super().destroy()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.grid_rowconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=0)
        self.grid_rowconfigure(2, weight=0)
        self.grid_rowconfigure(3, weight=1)
        self.grid_columnconfigure(0, weight=1)

        card = ctk.CTkFrame(
            self,
            width=CARD_WIDTH,
            fg_color=CONTENT_CARD_BG,
            corner_radius=16,
            border_width=1,
            border_color=TAB_BORDER,
        )
        card.grid(row=1, column=0, padx=PADDING_MD, pady=(0, PADDING_SM))

        inner = ctk.CTkFrame(card, fg_color="transparent")
        inner.pack(fill="both", expand=True, padx=32, pady=24)

        ctk.CTkLabel(
            inner, text="Welcome", font=FONT_BRAND, text_color=TEXT_PRIMARY,
        ).pack(pady=(0, 2))
        ctk.CTkLabel(
            inner,
            text="Sign in to manage your profile",
            font=FONT_SUBTITLE,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, PADDING_LG))

        # -- Tab bar --
        tab_bar = ctk.CTkFrame(inner, fg_color="transparent", height=_TAB_HEIGHT)
        tab_bar.pack(fill="x", pady=(0, PADDING_SM))
        tab_bar.pack_propagate(False)
        tab_bar.grid_columnconfigure(0, weight=1)
        tab_bar.grid_columnconfigure(1, weight=1)

        self._sign_in_tab = self._tab_button(tab_bar, "Sign In", _TAB_SIGN_IN)
        self._sign_in_tab.grid(row=0, column=0, sticky="nsew")
        self._sign_up_tab = self._tab_button(tab_bar, "Create Account", _TAB_SIGN_UP)
        self._sign_up_tab.grid(row=0, column=1, sticky="nsew")

        self._sign_in_frame = ctk.CTkFrame(inner, fg_color="transparent")
        self._build_sign_in_tab(self._sign_in_frame)
        self._sign_up_frame = ctk.CTkFrame(inner, fg_color="transparent")
        self._build_sign_up_tab(self._sign_up_frame)

        self._sign_in_frame.pack(fill="both", expand=True)
        self._style_tabs()

        ctk.CTkLabel(
            self,
            text="Your session is kept only when \"Remember me\" is checked.",
            font=FONT_CAPTION,
            text_color=TEXT_SECONDARY,
        ).grid(row=2, column=0, pady=(PADDING_SM, 0))

    def _tab_button(self, parent: ctk.CTkFrame, text: str, tab: str) -> ctk.CTkButton:
        return ctk.CTkButton(
            parent,
            text=text,
            font=FONT_BUTTON,
            fg_color="transparent",
            hover_color=TAB_HOVER,
            height=_TAB_HEIGHT,
            corner_radius=0,
            command=lambda: self._switch_tab(tab),
        )

    def _entry(self, parent: ctk.CTkFrame, label: str, placeholder: str, secret: bool = False) -> ctk.CTkEntry:
        ctk.CTkLabel(
            parent, text=label, font=FONT_LABEL, text_color=TEXT_PRIMARY, anchor="w",
        ).pack(fill="x", pady=(PADDING_SM, 4))
        entry = ctk.CTkEntry(
            parent,
            placeholder_text=placeholder,
            font=FONT_BODY,
            fg_color=INPUT_BG,
            border_color=INPUT_BORDER,
            text_color=TEXT_PRIMARY,
            show="*" if secret else "",
            height=_INPUT_HEIGHT,
            corner_radius=CORNER_RADIUS,
        )
        entry.pack(fill="x")
        return entry

    def _primary_button(self, parent: ctk.CTkFrame, text: str, command: Callable[[], None]) -> ctk.CTkButton:
        return ctk.CTkButton(
            parent,
            text=text,
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            height=_BUTTON_HEIGHT,
            corner_radius=CORNER_RADIUS,
            command=command,
        )

    def _build_sign_in_tab(self, parent: ctk.CTkFrame) -> None:
        self._email_entry = self._entry(parent, "EMAIL ADDRESS", "name@example.com")
        self._password_entry = self._entry(
            parent, "PASSWORD", "\u2022\u2022\u2022\u2022\u2022\u2022\u2022\u2022", secret=True,
        )

        ctk.CTkCheckBox(
            parent,
            text="Remember me",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
            variable=self._remember_var,
            onvalue=True,
            offvalue=False,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
        ).pack(anchor="w", pady=(PADDING_MD, PADDING_MD))

        self._login_button = self._primary_button(parent, _SIGN_IN_TEXT, self._handle_login)
        self._login_button.pack(fill="x", pady=(0, PADDING_SM))

        self._google_button: Optional[ctk.CTkButton] = None
        if self._google_enabled:
            self._google_button = ctk.CTkButton(
                parent,
                text="Continue with Google",
                font=FONT_BUTTON,
                fg_color="transparent",
                hover_color=TAB_HOVER,
                text_color=TEXT_PRIMARY,
                border_width=1,
                border_color=INPUT_BORDER,
                height=_BUTTON_HEIGHT,
                corner_radius=CORNER_RADIUS,
                command=self._handle_google,
            )
            self._google_button.pack(fill="x", pady=(0, PADDING_SM))

        ctk.CTkButton(
            parent,
            text="Forgot Password?",
            font=FONT_SMALL,
            fg_color="transparent",
            hover_color=TAB_HOVER,
            text_color=ACCENT_PRIMARY,
            height=28,
            corner_radius=CORNER_RADIUS,
            command=self._toggle_forgot_password,
        ).pack(pady=(PADDING_SM, 0))

        # Inline reset form (hidden by default)
        self._forgot_frame = ctk.CTkFrame(parent, fg_color="transparent")
        ctk.CTkLabel(
            self._forgot_frame,
            text="Enter your email to receive a reset link:",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
        ).pack(fill="x", pady=(0, 4))
        self._forgot_email_entry = ctk.CTkEntry(
            self._forgot_frame,
            placeholder_text="name@example.com",
            font=FONT_BODY,
            fg_color=INPUT_BG,
            border_color=INPUT_BORDER,
            text_color=TEXT_PRIMARY,
            height=_INPUT_HEIGHT,
            corner_radius=CORNER_RADIUS,
        )
        self._forgot_email_entry.pack(fill="x", pady=(0, PADDING_SM))
        self._forgot_button = ctk.CTkButton(
            self._forgot_frame,
            text="Send Reset Link",
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            height=36,
            corner_radius=CORNER_RADIUS,
            command=self._handle_forgot_password,
        )
        self._forgot_button.pack(fill="x", pady=(0, PADDING_SM))
        self._forgot_message_label = ctk.CTkLabel(
            self._forgot_frame,
            text="",
            font=FONT_SMALL,
            text_color=SUCCESS_TEXT,
            wraplength=CARD_WIDTH - 80,
        )
        self._forgot_message_label.pack(fill="x")

        self._email_entry.bind("<Return>", self._on_enter_key)
        self._password_entry.bind("<Return>", self._on_enter_key)

    def _build_sign_up_tab(self, parent: ctk.CTkFrame) -> None:
        self._su_email_entry = self._entry(parent, "EMAIL ADDRESS", "name@example.com")
        self._su_name_entry = self._entry(parent, "USERNAME", "How others will see you")
        self._su_password_entry = self._entry(parent, "PASSWORD", "Choose a password", secret=True)
        self._su_confirm_entry = self._entry(parent, "CONFIRM PASSWORD", "Repeat the password", secret=True)

        self._sign_up_button = self._primary_button(parent, _SIGN_UP_TEXT, self._handle_sign_up)
        self._sign_up_button.pack(fill="x", pady=(PADDING_LG, 0))

    # ------------------------------------------------------------------
    # Tab switching
    # ------------------------------------------------------------------

    def _switch_tab(self, tab: str) -> None:
        if tab == self._active_tab:
            return
        self._active_tab = tab
        if tab == _TAB_SIGN_IN:
            self._sign_up_frame.pack_forget()
            self._sign_in_frame.pack(fill="both", expand=True)
        else:
            self._sign_in_frame.pack_forget()
            self._sign_up_frame.pack(fill="both", expand=True)
        self._style_tabs()

    def _style_tabs(self) -> None:
        for tab, button in ((_TAB_SIGN_IN, self._sign_in_tab), (_TAB_SIGN_UP, self._sign_up_tab)):
            active = tab == self._active_tab
            button.configure(
                text_color=ACCENT_PRIMARY if active else TEXT_SECONDARY,
                border_color=ACCENT_PRIMARY if active else INPUT_BORDER,
                border_width=2 if active else 1,
            )

    # ------------------------------------------------------------------
    # Event Handlers: Sign In
    # ------------------------------------------------------------------

    def _on_enter_key(self, event: tk.Event) -> None:
        self._handle_login()

    def _handle_login(self) -> None:
        if self._busy:
            return
        email = self._email_entry.get().strip()
        password = self._password_entry.get()
        if not email or not password:
            self._presenter.show_error(MISSING_INFO_TITLE, MISSING_INFO_MESSAGE)
            return

        self._set_busy(True)
        self._bridge.spawn(self._sign_in(email, password, self._remember_var.get()), name="sign_in")

    async def _sign_in(self, email: str, password: str, remember_me: bool) -> None:
        try:
            await self._auth_service.sign_in(email, password, remember_me)
        finally:
            self._set_busy(False)

    def _handle_google(self) -> None:
        if self._busy:
            return
        self._set_busy(True)
        self._bridge.spawn(self._sign_in_google(self._remember_var.get()), name="google_sign_in")

    async def _sign_in_google(self, remember_me: bool) -> None:
        try:
            await self._auth_service.sign_in_with_google(remember_me)
        finally:
            self._set_busy(False)

    # ------------------------------------------------------------------
    # Event Handlers: Create Account
    # ------------------------------------------------------------------

    def _handle_sign_up(self) -> None:
        if self._busy:
            return
        self._set_busy(True)
        self._bridge.spawn(
            self._sign_up(
                self._su_email_entry.get().strip(),
                self._su_password_entry.get(),
                self._su_name_entry.get(),
                self._su_confirm_entry.get(),
            ),
            name="sign_up",
        )

    async def _sign_up(self, email: str, password: str, display_name: str, confirm: str) -> None:
        try:
            with self._session_context.sign_up_flow():
                created = await self._auth_service.sign_up(email, password, display_name, confirm)
        finally:
            self._set_busy(False)

        if not created or not self._alive:
            return
        for entry in (self._su_email_entry, self._su_name_entry, self._su_password_entry, self._su_confirm_entry):
            entry.delete(0, "end")
        self._switch_tab(_TAB_SIGN_IN)
        self._email_entry.delete(0, "end")
        self._email_entry.insert(0, email)
        self._presenter.show_info(
            VERIFICATION_SENT_TITLE,
            f"A verification email has been sent to {email}.\n\n"
            "Please verify your email, then sign in.",
        )

    # ------------------------------------------------------------------
    # Event Handlers: Forgot Password
    # ------------------------------------------------------------------

    def _toggle_forgot_password(self) -> None:
        if self._forgot_frame.winfo_manager():
            self._forgot_frame.pack_forget()
            return
        self._forgot_message_label.configure(text="")
        email = self._email_entry.get().strip()
        if email and not self._forgot_email_entry.get():
            self._forgot_email_entry.insert(0, email)
        self._forgot_frame.pack(fill="x", pady=(PADDING_SM, 0))

    def _handle_forgot_password(self) -> None:
        self._forgot_button.configure(state="disabled")
        self._forgot_message_label.configure(text="")
        self._bridge.spawn(
            self._send_reset(self._forgot_email_entry.get().strip()), name="password_reset",
        )

    async def _send_reset(self, email: str) -> None:
        self._presenter.show_loading()
        try:
            result = await self._auth_service.send_password_reset(email)
        finally:
            self._presenter.hide_loading()
        if not self._alive:
            return
        self._forgot_button.configure(state="normal")
        if result.success:
            self._forgot_message_label.configure(text=result.message or "")

    # ------------------------------------------------------------------
    # UI Helper Methods
    # ------------------------------------------------------------------

    def _set_busy(self, busy: bool) -> None:
        """Disable the submit buttons and cover the window while an auth call is in flight."""
        self._busy = busy
        if busy:
            self._presenter.show_loading()
        else:
            self._presenter.hide_loading()
        if not self._alive:
            return
        state = "disabled" if busy else "normal"
        self._login_button.configure(state=state, text="Signing in..." if busy else _SIGN_IN_TEXT)
        self._sign_up_button.configure(state=state, text="Creating account..." if busy else _SIGN_UP_TEXT)
        if self._google_button is not None:
            self._google_button.configure(state=state)
