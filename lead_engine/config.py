"""
Centralized Configuration System
Environment-aware settings for the scoring and lifecycle engines.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    """
    Engine configuration.
    Loads from environment variables with sensible defaults.
    """

    # ============================================
    # SCORING WEIGHTS (must sum to 1.0)
    # ============================================
    question_answer_weight: float = 0.3
    engagement_weight: float = 0.2
    contact_info_weight: float = 0.2
    budget_timeline_weight: float = 0.2
    industry_company_size_weight: float = 0.1

    # ============================================
    # FOLLOW-UP RULES
    # ============================================
    follow_up_threshold_days: int = 7  # Days without contact before a lead needs follow-up
    recent_activity_days: int = 7

    # ============================================
    # LOGGING
    # ============================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    enable_structured_logging: bool = False  # Set to True for production JSON logs

    # ============================================
    # ENVIRONMENT
    # ============================================
    environment: Literal["development", "test", "staging", "production"] = "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Singleton pattern for settings.
    Uses LRU cache to ensure only one Settings instance exists.
    """
    return Settings()
