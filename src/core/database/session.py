"""
Database connection utilities.
Handles Supabase client initialization and management.
"""

import logging
from typing import Optional

from supabase import Client, ClientOptions, create_client

from src.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Singleton class to manage Supabase database connection.
    """

    _instance: Optional["DatabaseConnection"] = None
    _client: Optional[Client] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _validate_supabase_settings(self) -> None:
        missing: list[str] = []
        if not settings.supabase.url:
            missing.append("SUPABASE_URL")
        if not (settings.supabase.key or settings.supabase.service_key):
            missing.append("SUPABASE_KEY")
        if missing:
            raise RuntimeError(
                "Supabase backend selected but variables are missing: "
                + ", ".join(missing)
            )

    def _connect(self):
        """Establish connection to Supabase."""
        if settings.database.backend != "supabase":
            raise RuntimeError(
                f"DatabaseConnection (Supabase) cannot be used when DATABASE_BACKEND={settings.database.backend}"
            )
        try:
            self._validate_supabase_settings()

            # The service role key bypasses RLS; subscription rows are written by the billing webhook
            api_key = settings.supabase.service_key or settings.supabase.key
            key_type = "SERVICE_KEY" if settings.supabase.service_key else "ANON_KEY"

            options = ClientOptions(
                schema=settings.supabase.db_schema,
                postgrest_client_timeout=settings.entitlements.store_timeout_seconds,
            )
            self._client = create_client(
                settings.supabase.url, api_key, options=options
            )
            logger.info(
                f"Successfully connected to Supabase (schema={settings.supabase.db_schema}, key_type={key_type})"
            )
        except Exception as e:
            logger.error(f"Failed to connect to Supabase: {e}")
            raise

    @property
    def client(self) -> Client:
        """Get Supabase client instance."""
        if self._client is None:
            self._connect()
        return self._client

    def disconnect(self):
        """Disconnect from database."""
        # Supabase client doesn't require explicit disconnection
        self._client = None
        logger.info("Disconnected from Supabase")
