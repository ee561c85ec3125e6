"""
Business Logic Services Package.

The ``create_services()`` factory wires the backend adapters,
repositories and services together, returning a typed dict that the UI
layer consumes without knowing the internal dependency graph.

The ``AuthRouter`` is not built here: it needs the presenter, which is
the application window, so ``AppShell`` constructs it from this
container.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from authshell.auth import AuthSessionContext
from authshell.backend.google_oauth import GoogleIdTokenSource
from authshell.backend.supabase_auth import SupabaseAuthProvider
from authshell.backend.supabase_client import SqliteSessionStorage, SupabaseConnection
from authshell.backend.supabase_documents import SupabaseDocumentStore
from authshell.config import AppConfig
from authshell.database import DatabaseManager
from authshell.logger import get_logger
from authshell.repositories.profile_repository import ProfileRepository
from authshell.services.app_settings_service import AppSettingsService
from authshell.services.auth_errors import AuthErrorClassifier
from authshell.services.auth_service import AuthService


class ServiceContainer(TypedDict, total=False):
    """Typed container for all application services.

    ``token_source`` is ``None`` when Google Sign-In is not configured.
    """

    # --- Core ---
    auth_service: AuthService
    profile_repository: ProfileRepository
    session_context: AuthSessionContext
    error_classifier: AuthErrorClassifier

    # --- Backend adapters ---
    auth_provider: SupabaseAuthProvider
    document_store: SupabaseDocumentStore
    token_source: Optional[GoogleIdTokenSource]

    # --- Infrastructure ---
    app_settings_service: AppSettingsService


def create_services(db: DatabaseManager, config: AppConfig) -> ServiceContainer:
    """
    Wire all backend adapters, repositories and services together.

    Parameters
    ----------
    db:
        Open local database; hosts preferences, the persisted backend
        session and the audit log.
    config:
        Application configuration.

    Returns
    -------
    ServiceContainer
        Nothing here touches the network; the backend connection is
        opened by the router's dependency check.
    """
    app_settings = AppSettingsService(db=db, logger=get_logger("app_settings"))

    connection = SupabaseConnection(
        url=config.SUPABASE_URL,
        anon_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        storage=SqliteSessionStorage(app_settings),
        logger=get_logger("supabase"),
        timeout_s=config.DEPENDENCY_CHECK_TIMEOUT_S,
    )
    auth_provider = SupabaseAuthProvider(
        connection=connection,
        logger=get_logger("auth_provider"),
        email_redirect_url=config.EMAIL_REDIRECT_URL,
        password_reset_redirect_url=config.PASSWORD_RESET_REDIRECT_URL,
    )
    document_store = SupabaseDocumentStore(
        connection=connection,
        logger=get_logger("documents"),
        server_time_rpc=config.SERVER_TIME_RPC,
    )

    token_source: Optional[GoogleIdTokenSource] = None
    if config.is_google_configured:
        token_source = GoogleIdTokenSource(
            client_id=config.GOOGLE_CLIENT_ID,
            client_secret=config.GOOGLE_CLIENT_SECRET.get_secret_value(),
            logger=get_logger("google_oauth"),
            timeout_s=config.GOOGLE_SIGN_IN_TIMEOUT_S,
        )

    classifier = AuthErrorClassifier()

    return ServiceContainer(
        auth_service=AuthService(
            auth=auth_provider,
            preferences=app_settings,
            classifier=classifier,
            logger=get_logger("auth"),
            token_source=token_source,
        ),
        profile_repository=ProfileRepository(
            store=document_store,
            auth=auth_provider,
            logger=get_logger("profiles"),
            audit_conn=db.sqlite,
            collection=config.PROFILE_TABLE,
        ),
        session_context=AuthSessionContext(),
        error_classifier=classifier,
        auth_provider=auth_provider,
        document_store=document_store,
        token_source=token_source,
        app_settings_service=app_settings,
    )
