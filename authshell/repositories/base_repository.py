"""
Base Repository.

Shared infrastructure for repositories over the backend document store:
the store reference, the logger and the collection name.
"""

from __future__ import annotations

from authshell.interfaces import IDocumentStore
from authshell.logger import StructuredLogger


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    COLLECTION: str = ""

    def __init__(self, store: IDocumentStore, logger: StructuredLogger) -> None:
        self._store = store
        self._logger = logger

    @property
    def store(self) -> IDocumentStore:
        """Returns the document store used for cloud operations."""
        return self._store
