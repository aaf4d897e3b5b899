"""
Shared Supabase client for the job and ad stores.

JobStore and AdStore accept a client explicitly; when none is given they
fall back to the process-wide client built here from SUPABASE_URL and
SUPABASE_SERVICE_KEY.
"""

import logging
from typing import Optional

from supabase import create_client, Client

from .config import Config

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the shared Supabase client, creating it on first use.

    Raises:
        ValueError: If the Supabase settings are missing
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        _supabase_client = create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)
        logger.info(f"Supabase client created for {Config.SUPABASE_URL}")

    return _supabase_client


def reset_supabase_client() -> None:
    """Drop the shared client so the next call rebuilds it from Config."""
    global _supabase_client
    _supabase_client = None
