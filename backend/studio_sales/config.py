"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): single instance per process
    - Core functions never read settings; services pass the values they need

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults for every setting: a fresh checkout runs against docker-compose postgres
    - Matching thresholds and follow-up cadences live here so intake, reconciler and
      auditor agree on them
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://studio:studio@db:5432/studio_sales"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Studio
    studio_staff: list[str] = []
    self_booked_lead_sources: list[str] = [
        "Online Intro Offer (self-booked)", "Online Intro Offer",
    ]
    ledger_baseline: int = 0

    # Audit
    audit_interval_minutes: int = 30  # 0 disables the timer
    audit_debounce_seconds: int = 60
    audit_history_limit: int = 30
    audit_query_limit: int = 200

    # Duplicate matching
    duplicate_lookback_days: int = 365
    duplicate_match_limit: int = 5
    fuzzy_match_threshold: float = 0.85
    partial_match_threshold: float = 0.6

    # Follow-ups (days after trigger)
    no_show_cadence: list[int] = [0, 5, 12]
    didnt_buy_cadence: list[int] = [0, 6, 13]

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
