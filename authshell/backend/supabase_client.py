"""
Supabase Connection.

Owns the async Supabase client shared by the auth provider and the
document store.  The client is created lazily by :meth:`connect` so a
missing or unreachable backend surfaces through the router's
dependency check instead of crashing startup.

The backend session is persisted in the local ``app_settings`` table via
:class:`SqliteSessionStorage`, so a remembered sign-in survives a restart.

Usage (dependency injection at app startup)::

    storage = SqliteSessionStorage(settings=app_settings)
    connection = SupabaseConnection(
        url=config.SUPABASE_URL,
        anon_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        storage=storage,
        logger=get_logger("supabase"),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from authshell.exceptions import BackendUnavailableError
from authshell.logger import StructuredLogger

if TYPE_CHECKING:
    from authshell.services.app_settings_service import AppSettingsService

_STORAGE_PREFIX: str = "auth_storage:"


class SqliteSessionStorage:
    """Async key-value storage for the Supabase auth client.

    Implements the ``get_item`` / ``set_item`` / ``remove_item`` contract
    the auth client expects of its ``storage`` option, on top of
    ``AppSettingsService``.  Keys are namespaced so :meth:`clear` only
    removes auth state.
    """

    def __init__(self, settings: AppSettingsService) -> None:
        self._settings = settings

    async def get_item(self, key: str) -> Optional[str]:
        return self._settings.get(_STORAGE_PREFIX + key)

    async def set_item(self, key: str, value: str) -> None:
        self._settings.set(_STORAGE_PREFIX + key, value)

    async def remove_item(self, key: str) -> None:
        self._settings.delete(_STORAGE_PREFIX + key)

    async def clear(self) -> None:
        """Drop every persisted auth entry."""
        self._settings.delete_prefix(_STORAGE_PREFIX)


class SupabaseConnection:
    """Lazily-created async Supabase client plus a reachability probe.

    Parameters
    ----------
    url:
        The Supabase project URL.  Empty disables the backend.
    anon_key:
        The project's anonymous key.  Empty disables the backend.
    storage:
        Persistent storage for the auth session.
    logger:
        Structured logger instance.
    timeout_s:
        Timeout for the health probe.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        storage: SqliteSessionStorage,
        logger: StructuredLogger,
        timeout_s: float = 10.0,
    ) -> None:
        self._url = url.rstrip("/")
        self._anon_key = anon_key
        self._storage = storage
        self._logger = logger
        self._timeout_s = timeout_s
        self._client: Optional[AsyncClient] = None

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def client(self) -> AsyncClient:
        """Return the connected client.

        Raises
        ------
        BackendUnavailableError
            If :meth:`connect` has not succeeded yet.
        """
        if self._client is None:
            raise BackendUnavailableError()
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def storage(self) -> SqliteSessionStorage:
        return self._storage

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Create the client once.  Returns ``True`` when a client exists."""
        if self._client is not None:
            return True

        if not self._url or not self._anon_key:
            self._logger.warning(
                "Supabase credentials not configured: backend unavailable.",
                extra={"event": "BACKEND_UNCONFIGURED"},
            )
            return False

        try:
            options = AsyncClientOptions(
                storage=self._storage,
                persist_session=True,
                auto_refresh_token=True,
            )
            self._client = await acreate_client(self._url, self._anon_key, options=options)
            self._logger.info("Supabase client initialized.")
            return True
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase credential format error: %s.", exc,
                extra={"event": "BACKEND_CONFIG_ERROR"},
            )
        except Exception as exc:
            self._logger.error(
                "Unexpected Supabase initialization failure: %s.", exc,
                exc_info=True,
            )
        return False

    async def ping(self) -> bool:
        """Probe the auth server's health endpoint."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s) as http:
                response = await http.get(
                    f"{self._url}/auth/v1/health",
                    headers={"apikey": self._anon_key},
                )
            reachable = response.status_code == httpx.codes.OK
            if not reachable:
                self._logger.warning(
                    "Supabase health probe returned HTTP %s.", response.status_code,
                    extra={"event": "BACKEND_UNHEALTHY"},
                )
            return reachable
        except httpx.HTTPError as exc:
            self._logger.warning(
                "Supabase unreachable: %s", exc,
                extra={"event": "BACKEND_UNREACHABLE"},
            )
            return False
