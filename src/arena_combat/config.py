"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Combat settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ARENA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Seed for the per-session RNG (crit and proc rolls). None = nondeterministic
    rng_seed: int | None = None

    # Fight simulation
    max_rounds: int = 200  # Fight is declared a draw after this many rounds

    # Balance defaults
    crit_multiplier: float = 2.0
    death_shield_revive_percent: float = 0.5
    double_strike_multiplier: float = 1.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
