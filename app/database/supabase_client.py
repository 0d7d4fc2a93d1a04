from typing import Any, Optional

from supabase import create_client, Client, ClientOptions
from app.config import settings, Settings
from app.core.exceptions import ConfigurationError
from app.database.session_storage import FileSessionStorage

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"


class SupabaseClient:
    _client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            if not settings.is_supabase_configured:
                raise ConfigurationError(
                    "Missing Supabase environment variables. "
                    "Please set SUPABASE_URL and SUPABASE_ANON_KEY in your .env file."
                )
            cls._client = create_client(
                settings.supabase_url,
                settings.supabase_anon_key,
                options=build_client_options(settings),
            )
        return cls._client

    @classmethod
    def reset_client(cls):
        cls._client = None


def build_client_options(config: Settings) -> ClientOptions:
    """Refresh tokens automatically and persist the session on disk between runs."""
    return ClientOptions(
        schema=config.db_schema,
        headers={"X-Client-Info": config.client_info},
        auto_refresh_token=True,
        persist_session=True,
        storage=FileSessionStorage(config.session_storage_path),
    )


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def handle_supabase_error(error: Any, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Pull a human-readable message out of a Supabase auth/PostgREST error."""
    if isinstance(error, dict):
        message = error.get("message") or error.get("error_description")
    else:
        message = getattr(error, "message", None) or getattr(error, "error_description", None)
    if isinstance(message, str) and message:
        return message
    return fallback


def is_supabase_configured(config: Optional[Settings] = None) -> bool:
    return (config if config is not None else settings).is_supabase_configured
