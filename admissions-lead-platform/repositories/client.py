"""
Supabase client initialization.

This module contains *only* the database connection setup. Clients are created on
first use so that modules importing the repositories (tests, the in-memory backend)
do not need credentials.

Environment variables required for the Supabase backend:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv
from supabase import AsyncClient, Client, acreate_client, create_client

# Look for .env in the admissions-lead-platform directory
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _credentials() -> Tuple[str, str]:
    # Read credentials from the environment to avoid hard-coding secrets in code.
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    return supabase_url, supabase_key


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Shared synchronous client used by the store adapters."""

    url, key = _credentials()
    return create_client(url, key)


async def get_async_supabase() -> AsyncClient:
    """Async client; realtime channels are only available on it."""

    url, key = _credentials()
    return await acreate_client(url, key)


__all__ = ["get_supabase", "get_async_supabase"]
