"""
Shared Supabase client, used when overlays and preferences are stored in a
Supabase table (RELEASE_TOUR_STORAGE=supabase).
"""
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, create_client

load_dotenv()
load_dotenv('../.env')

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Client:
    """
    Return the process-wide client, creating it on first use.

    Explicit arguments win over SUPABASE_URL / SUPABASE_KEY. The backend may
    also run with a service key (SUPABASE_SERVICE_KEY).
    """
    global _client

    if _client is not None:
        return _client

    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set when RELEASE_TOUR_STORAGE=supabase")

    _client = create_client(url, key)
    logger.info(f"[Supabase] Client created for {url}")
    return _client
