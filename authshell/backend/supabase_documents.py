"""
Supabase Document Store.

Implements ``IDocumentStore`` over PostgREST tables: a "collection" is a
table and a document is the row whose key column equals the document key.
``SERVER_TIMESTAMP`` values are resolved with a single ``server_now()``
RPC per write, so every sentinel in one write gets the same instant.

The expected table, policies and RPC are in ``supabase/schema.sql``.
"""

from __future__ import annotations

from typing import Optional

from authshell.backend.supabase_client import SupabaseConnection
from authshell.exceptions import DocumentNotFoundError
from authshell.logger import StructuredLogger
from authshell.models.profile import contains_server_timestamp, resolve_server_timestamps


class SupabaseDocumentStore:
    """Async Supabase implementation of ``IDocumentStore``.

    Parameters
    ----------
    connection:
        Shared ``SupabaseConnection``.
    logger:
        Structured logger instance.
    key_field:
        Column holding the document key.
    server_time_rpc:
        Name of the RPC returning the database's ``now()``.
    """

    def __init__(
        self,
        connection: SupabaseConnection,
        logger: StructuredLogger,
        key_field: str = "uid",
        server_time_rpc: str = "server_now",
    ) -> None:
        self._connection = connection
        self._logger = logger
        self._key_field = key_field
        self._server_time_rpc = server_time_rpc

    async def get(self, collection: str, key: str) -> Optional[dict[str, object]]:
        response = await (
            self._connection.client.table(collection)
            .select("*")
            .eq(self._key_field, key)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return dict(rows[0]) if rows else None

    async def merge(self, collection: str, key: str, data: dict[str, object]) -> None:
        payload = await self._resolve(data)
        payload[self._key_field] = key
        await (
            self._connection.client.table(collection)
            .upsert(payload, on_conflict=self._key_field)
            .execute()
        )
        self._logger.debug(
            "Merged %s/%s fields=%s", collection, key, sorted(data),
            extra={"event": "DOCUMENT_MERGE", "collection": collection},
        )

    async def update(self, collection: str, key: str, data: dict[str, object]) -> None:
        payload = await self._resolve(data)
        response = await (
            self._connection.client.table(collection)
            .update(payload)
            .eq(self._key_field, key)
            .execute()
        )
        if not response.data:
            raise DocumentNotFoundError(collection, key)
        self._logger.debug(
            "Updated %s/%s fields=%s", collection, key, sorted(data),
            extra={"event": "DOCUMENT_UPDATE", "collection": collection},
        )

    async def _resolve(self, data: dict[str, object]) -> dict[str, object]:
        if not contains_server_timestamp(data):
            return dict(data)
        response = await self._connection.client.rpc(self._server_time_rpc).execute()
        return resolve_server_timestamps(data, response.data)
