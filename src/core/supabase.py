"""Supabase client singleton for object storage URL resolution."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from src.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton.

    Uses the secret key for backend operations. Only storage is used; relational
    data lives behind SQLAlchemy (see src.core.database).

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def is_storage_configured() -> bool:
    """Check whether Supabase Storage credentials are present."""
    settings = get_settings()
    return bool(settings.supabase_url and settings.supabase_secret_key)


def get_public_url(storage_path: str) -> str:
    """Resolve a stored object path to a publicly reachable URL.

    Absolute URLs are returned unchanged. Without Supabase credentials, paths are
    served from the storefront's ``/media`` prefix.

    Args:
        storage_path: Object path inside the product image bucket.

    Returns:
        str: Public URL for the object.
    """
    if storage_path.startswith(("http://", "https://")):
        return storage_path

    settings = get_settings()
    if not is_storage_configured():
        return f"{settings.app_base_url.rstrip('/')}/media/{storage_path.lstrip('/')}"

    client = get_supabase_client()
    url = client.storage.from_(settings.supabase_storage_bucket).get_public_url(storage_path)
    # Older storage clients append an empty query string
    return url.rstrip("?")
