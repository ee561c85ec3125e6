"""Profile View.

Post-login screen: shows the signed-in account and its stored profile,
lets the user edit the display name and photo URL, and offers logout.

**Thin UI Rule**: reads and writes go through ``ProfileRepository``;
logout goes through ``AuthService``.  The router navigates back to the
login screen once the sign-out notification arrives.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import customtkinter as ctk

from authshell.interfaces import IPresenter
from authshell.logger import StructuredLogger
from authshell.models.auth_models import Identity
from authshell.models.enums import PopupKind
from authshell.models.profile import UserProfile
from authshell.repositories.profile_repository import ProfileRepository
from authshell.services.auth_service import AuthService
from authshell.ui.event_loop import AsyncTkBridge
from authshell.ui.theme import (
    ACCENT_HOVER,
    ACCENT_PRIMARY,
    CONTENT_BG,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    ERROR_TEXT,
    FONT_BODY,
    FONT_BUTTON,
    FONT_HEADING,
    FONT_LABEL,
    FONT_SMALL,
    INPUT_BG,
    INPUT_BORDER,
    LOGOUT_HOVER,
    LOGOUT_PRIMARY,
    PADDING_LG,
    PADDING_MD,
    PADDING_SM,
    SUCCESS_TEXT,
    TAB_BORDER,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

_INPUT_HEIGHT: int = 38
_SAVE_WIDTH: int = 96

PROFILE_ERROR_TITLE: str = "Profile Error"
PROFILE_ERROR_MESSAGE: str = "We couldn't load your profile.\n\nRetry, or log out and sign in again."
INVALID_NAME_TITLE: str = "Invalid Name"
INVALID_PHOTO_TITLE: str = "Invalid Photo URL"
UPDATE_FAILED_TITLE: str = "Update Failed"
UPDATE_FAILED_MESSAGE: str = "We couldn't save your changes. Please try again."


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


class ProfileView(ctk.CTkFrame):
    """Profile screen for the signed-in account.

    Parameters
    ----------
    parent:
        The root window.
    bridge:
        Runs repository and service coroutines.
    presenter:
        Popup host.
    identity:
        The account the router just admitted.
    profiles:
        Profile repository.
    auth_service:
        Used for logout.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        parent: ctk.CTk,
        bridge: AsyncTkBridge,
        presenter: IPresenter,
        identity: Identity,
        profiles: ProfileRepository,
        auth_service: AuthService,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)

        self._bridge = bridge
        self._presenter = presenter
        self._identity = identity
        self._profiles = profiles
        self._auth_service = auth_service
        self._logger = logger

        self._alive: bool = True
        self._saving: bool = False
        self._profile: Optional[UserProfile] = None

        self._build_ui()
        self._bridge.spawn(self._load_profile(), name="load_profile")

    def destroy(self) -> None:
        self._alive = False
        super().destroy()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        # -- Header --
        header = ctk.CTkFrame(self, fg_color=CONTENT_CARD_BG, corner_radius=0)
        header.grid(row=0, column=0, sticky="ew")
        header.grid_columnconfigure(0, weight=1)

        self._name_label = ctk.CTkLabel(
            header,
            text=self._identity.display_name or self._identity.email or "",
            font=FONT_HEADING,
            text_color=TEXT_PRIMARY,
            anchor="w",
        )
        self._name_label.grid(row=0, column=0, sticky="w", padx=PADDING_LG, pady=(PADDING_MD, 0))

        ctk.CTkLabel(
            header,
            text=self._identity.email or "",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
            anchor="w",
        ).grid(row=1, column=0, sticky="w", padx=PADDING_LG, pady=(0, PADDING_MD))

        ctk.CTkButton(
            header,
            text="Logout",
            font=FONT_BUTTON,
            fg_color=LOGOUT_PRIMARY,
            hover_color=LOGOUT_HOVER,
            text_color=TEXT_LIGHT,
            width=100,
            corner_radius=CORNER_RADIUS,
            command=lambda: self._bridge.spawn(self._logout(), name="logout"),
        ).grid(row=0, column=1, rowspan=2, padx=PADDING_LG)

        # -- Body card --
        card = ctk.CTkFrame(
            self,
            fg_color=CONTENT_CARD_BG,
            corner_radius=12,
            border_width=1,
            border_color=TAB_BORDER,
        )
        card.grid(row=1, column=0, sticky="nsew", padx=PADDING_LG, pady=PADDING_LG)
        card.grid_columnconfigure(1, weight=1)

        self._status_label = ctk.CTkLabel(
            card, text="Loading profile...", font=FONT_SMALL, text_color=TEXT_SECONDARY, anchor="w",
        )
        self._status_label.grid(row=0, column=0, columnspan=3, sticky="w", padx=PADDING_LG, pady=(PADDING_MD, PADDING_SM))

        self._created_value = self._info_row(card, 1, "MEMBER SINCE")
        self._last_login_value = self._info_row(card, 2, "LAST LOGIN")
        self._verified_value = self._info_row(card, 3, "EMAIL")
        self._verified_value.configure(
            text="Verified" if self._identity.email_verified else "Not verified",
            text_color=SUCCESS_TEXT if self._identity.email_verified else ERROR_TEXT,
        )

        self._name_entry, self._name_button = self._edit_row(
            card, 4, "DISPLAY NAME", "Your name", self._handle_save_name,
        )
        self._photo_entry, self._photo_button = self._edit_row(
            card, 5, "PHOTO URL", "https://...", self._handle_save_photo,
        )

        self._name_entry.insert(0, self._identity.display_name or "")
        self._photo_entry.insert(0, self._identity.photo_url or "")

    def _info_row(self, parent: ctk.CTkFrame, row: int, label: str) -> ctk.CTkLabel:
        ctk.CTkLabel(
            parent, text=label, font=FONT_LABEL, text_color=TEXT_PRIMARY, anchor="w",
        ).grid(row=row, column=0, sticky="w", padx=PADDING_LG, pady=PADDING_SM)
        value = ctk.CTkLabel(parent, text="-", font=FONT_BODY, text_color=TEXT_SECONDARY, anchor="w")
        value.grid(row=row, column=1, columnspan=2, sticky="w", pady=PADDING_SM)
        return value

    def _edit_row(
        self,
        parent: ctk.CTkFrame,
        row: int,
        label: str,
        placeholder: str,
        command: Callable[[], None],
    ) -> tuple[ctk.CTkEntry, ctk.CTkButton]:
        ctk.CTkLabel(
            parent, text=label, font=FONT_LABEL, text_color=TEXT_PRIMARY, anchor="w",
        ).grid(row=row, column=0, sticky="w", padx=PADDING_LG, pady=PADDING_SM)
        entry = ctk.CTkEntry(
            parent,
            placeholder_text=placeholder,
            font=FONT_BODY,
            fg_color=INPUT_BG,
            border_color=INPUT_BORDER,
            text_color=TEXT_PRIMARY,
            height=_INPUT_HEIGHT,
            corner_radius=CORNER_RADIUS,
        )
        entry.grid(row=row, column=1, sticky="ew", pady=PADDING_SM)
        button = ctk.CTkButton(
            parent,
            text="Save",
            font=FONT_BUTTON,
            fg_color=ACCENT_PRIMARY,
            hover_color=ACCENT_HOVER,
            text_color=TEXT_LIGHT,
            width=_SAVE_WIDTH,
            height=_INPUT_HEIGHT,
            corner_radius=CORNER_RADIUS,
            command=command,
        )
        button.grid(row=row, column=2, padx=PADDING_LG, pady=PADDING_SM)
        return entry, button

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load_profile(self) -> None:
        try:
            profile = await self._profiles.get_current_profile(self._identity.uid)
        except Exception as exc:
            self._logger.warning("Profile load failed: %s", exc, extra={"event": "PROFILE_VIEW_LOAD_FAILED"})
            if self._alive:
                self._status_label.configure(text="Profile unavailable.", text_color=ERROR_TEXT)
                self._presenter.show_confirmation(
                    PopupKind.ERROR,
                    PROFILE_ERROR_TITLE,
                    PROFILE_ERROR_MESSAGE,
                    on_confirm=self._load_profile,
                    on_cancel=self._logout,
                    confirm_text="Retry",
                    cancel_text="Logout",
                )
            return

        if not self._alive:
            return
        self._profile = profile
        self._render_profile()

    def _render_profile(self) -> None:
        profile = self._profile
        if profile is None:
            self._status_label.configure(text="No profile stored yet.", text_color=TEXT_SECONDARY)
            return
        self._status_label.configure(text="", text_color=TEXT_SECONDARY)
        self._created_value.configure(text=_format_timestamp(profile.created_at))
        self._last_login_value.configure(text=_format_timestamp(profile.last_login_at))
        if profile.display_name:
            self._name_label.configure(text=profile.display_name)
            self._replace(self._name_entry, profile.display_name)
        self._replace(self._photo_entry, profile.photo_url or "")

    @staticmethod
    def _replace(entry: ctk.CTkEntry, value: str) -> None:
        entry.delete(0, "end")
        if value:
            entry.insert(0, value)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _handle_save_name(self) -> None:
        if self._saving:
            return
        name = self._name_entry.get().strip()
        if not name:
            self._presenter.show_error(INVALID_NAME_TITLE, "Display name cannot be empty.")
            return
        self._set_saving(True)
        self._bridge.spawn(self._save_name(name), name="save_display_name")

    async def _save_name(self, name: str) -> None:
        try:
            stored = await self._profiles.update_display_name(self._identity.uid, name)
        except ValueError as exc:
            self._presenter.show_error(INVALID_NAME_TITLE, str(exc))
            return
        except Exception as exc:
            self._logger.warning("Display name update failed: %s", exc)
            self._presenter.show_error(UPDATE_FAILED_TITLE, UPDATE_FAILED_MESSAGE)
            return
        finally:
            self._set_saving(False)

        if self._alive:
            self._name_label.configure(text=stored)
            self._status_label.configure(text="Display name saved.", text_color=SUCCESS_TEXT)

    def _handle_save_photo(self) -> None:
        if self._saving:
            return
        self._set_saving(True)
        self._bridge.spawn(self._save_photo(self._photo_entry.get().strip()), name="save_photo_url")

    async def _save_photo(self, url: str) -> None:
        try:
            stored = await self._profiles.update_photo_url(self._identity.uid, url)
        except ValueError as exc:
            self._presenter.show_error(INVALID_PHOTO_TITLE, str(exc))
            return
        except Exception as exc:
            self._logger.warning("Photo URL update failed: %s", exc)
            self._presenter.show_error(UPDATE_FAILED_TITLE, UPDATE_FAILED_MESSAGE)
            return
        finally:
            self._set_saving(False)

        if self._alive:
            self._status_label.configure(
                text="Photo saved." if stored else "Photo removed.", text_color=SUCCESS_TEXT,
            )

    async def _logout(self) -> None:
        await self._auth_service.logout()

    def _set_saving(self, saving: bool) -> None:
        self._saving = saving
        if not self._alive:
            return
        state = "disabled" if saving else "normal"
        self._name_button.configure(state=state)
        self._photo_button.configure(state=state)
