"""Configuration and environment settings"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine defaults, overridable with MONTECALC_* environment variables."""

    # Simulation
    ITERATIONS: int = Field(default=10000, ge=1)
    SEED: int | None = None  # None draws fresh OS entropy per run

    # Sensitivity analysis
    TOP_SENSITIVITIES: int = Field(default=5, ge=0)

    # Distribution summaries
    HISTOGRAM_BUCKETS: int = Field(default=20, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="MONTECALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once."""
    return Settings()
