"""
Shared test fixtures.

Backends are replaced by the in-memory fakes in ``tests.fakes``; loggers
are ``MagicMock`` objects so no handlers or log files are created.
"""

from unittest.mock import MagicMock

import pytest

from authshell.database import DatabaseManager
from authshell.schema import initialize_schema
from tests.fakes import (
    FakeAuthProvider,
    FakeDocumentStore,
    FakePreferences,
    FakePresenter,
)


@pytest.fixture
def logger():
    """Logger stand-in exposing the StructuredLogger delegates."""
    return MagicMock()


@pytest.fixture
def auth_provider():
    return FakeAuthProvider()


@pytest.fixture
def store():
    return FakeDocumentStore()


@pytest.fixture
def preferences():
    return FakePreferences()


@pytest.fixture
def presenter():
    return FakePresenter()


@pytest.fixture
def db():
    """In-memory local database at the current schema version."""
    db_logger = MagicMock()
    manager = DatabaseManager(sqlite_path=":memory:", logger=db_logger)
    initialize_schema(manager.sqlite, db_logger)
    yield manager
    manager.close()
