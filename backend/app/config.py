"""
TreningsApp Configuration
=========================
All environment variables in one place. Pydantic Settings validates
types at startup so a bad value fails on boot instead of mid-request.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend operations

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    # --- Storage ---
    avatar_bucket: str = "avatars"
    avatar_max_bytes: int = 5 * 1024 * 1024

    # --- Statistics ---
    stats_default_range: str = "30d"  # 7d | 30d | 90d | all
    stats_top_exercises: int = 5
    stats_recent_workouts: int = 10
    # Group "Squat" and " squat" together. Off by default: it changes
    # the numbers users already see on their stats page.
    normalise_exercise_names: bool = False

    # --- Pagination ---
    page_size_posts: int = 10
    page_size_follows: int = 20
    search_limit: int = 20

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
