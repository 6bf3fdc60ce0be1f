"""
Supabase Client
===============
The one Supabase client of the process. ``vitalgate.db.entity`` resolves
it lazily on every table access, which is the seam tests patch with an
in-memory fake.

The service_role key is required: VitalGate authenticates its own users
with JWTs and applies the per-user filters itself, so it talks to
PostgREST as the service rather than as an end user.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from supabase import Client, create_client

from vitalgate.config import get_settings

logger = logging.getLogger(__name__)


class SupabaseConfigError(RuntimeError):
    """SUPABASE_URL or SUPABASE_SERVICE_KEY is missing."""


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise SupabaseConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY must both be set")

    logger.info("Connecting to Supabase at %s", settings.supabase_url)
    return create_client(settings.supabase_url, settings.supabase_service_key)
