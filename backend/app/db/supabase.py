"""
Supabase Client
===============
Configured Supabase client shared by routers and services.

Uses the service_role key, so every query made on a user's behalf must
filter on that user's id explicitly (``.eq("user_id", ...)``). RLS still
protects direct access from the web client.
"""

from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings

# Postgres error codes, surfaced by PostgREST as APIError.code
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)
