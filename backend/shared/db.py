from supabase import create_client, Client
from dotenv import load_dotenv
import os

load_dotenv()


def get_supabase_client(url: str | None = None, key: str | None = None) -> Client:
    """
    Get initialized Supabase client.

    Each call returns a new client, so callers can scope one client to a
    single job run instead of sharing a module-level connection.
    """
    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    return create_client(url, key)
