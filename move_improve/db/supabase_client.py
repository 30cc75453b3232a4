"""Supabase client for the questionnaire configuration store."""

from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from move_improve.core.config import get_settings
from move_improve.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get the configuration store client (cached singleton).

    The client reads from SUPABASE_SCHEMA with the configured PostgREST timeout.

    Returns:
        Supabase client configured with the service role key

    Raises:
        RuntimeError: If client initialization fails
    """
    try:
        settings = get_settings()
        options = ClientOptions(
            schema=settings.SUPABASE_SCHEMA,
            postgrest_client_timeout=settings.SUPABASE_TIMEOUT_SECONDS,
        )
        client = create_client(
            settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, options=options
        )
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e

    logger.info(f"Configuration store client ready (schema={settings.SUPABASE_SCHEMA})")
    return client
