#!/usr/bin/env python3
"""
settings.py — Centralized, typed settings for the Content Integrity service.

Place at: content_integrity/core/settings.py
Run from the repo root (folder that contains content_integrity/).

What this does:
  - Loads configuration from environment variables and an optional .env file.
  - Provides typing + validation using Pydantic v2 (pydantic-settings).
  - Exposes a cached accessor get_settings() for the API process.
  - Builds the DetectionConfig value that is injected into every engine call.

Common examples:

  # 1) Override thresholds via env vars or .env file:
  export LINK_DROP_PERCENT=25 WORD_COUNT_MIN_AGE_DAYS=14 SITE_URL=https://example.com

  # 2) Build the engine config once per request:
  from content_integrity.core.settings import get_settings
  cfg = get_settings().detection_config()

Notes:
  - DOCUMENT_TYPES and CORS_ALLOWED_ORIGINS are comma-separated strings.
  - Threshold values out of range are clamped by DetectionConfig, not rejected.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from content_integrity.core.config import DetectionConfig


def _split_csv(v: str | None) -> List[str]:
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s.strip()]


# ---------- Enums ----------

class AppEnv(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"
    test = "test"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# ---------- Settings ----------

class Settings(BaseSettings):
    # App
    app_name: str = "Content Integrity"
    app_version: str = "0.1.0"
    env: AppEnv = AppEnv.development
    log_level: LogLevel = LogLevel.INFO

    # CORS (comma-separated)
    cors_allowed_origins: str = ""

    # API auth (X-API-Key for admin routes)
    api_key: Optional[str] = None

    # Database
    database_url: str = "sqlite:///./content_integrity.db"
    db_auto_create: bool = True
    storage_timeout_seconds: float = 5.0

    # Batch runs
    batch_max_workers: int = 4
    detection_cron_hours: int = 0  # 0 disables the periodic job

    # Detection module
    regression_enabled: bool = True
    document_types: str = "post,page"
    site_url: str = "http://localhost"

    link_drop_enabled: bool = True
    link_drop_percent: float = 30
    link_drop_absolute: int = 3
    exclude_nofollow_links: bool = False

    word_count_enabled: bool = True
    word_count_drop_percent: float = 35
    word_count_min_age_days: int = 30
    word_count_compare_average: bool = False
    exclude_shortcodes: bool = False

    heading_enabled: bool = True
    detect_missing_h1: bool = True
    detect_multiple_h1: bool = True
    detect_skipped_levels: bool = True

    snapshot_rolling_count: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---------- Validators ----------

    @field_validator("batch_max_workers")
    @classmethod
    def _workers_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("BATCH_MAX_WORKERS must be > 0")
        return v

    @field_validator("storage_timeout_seconds")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("STORAGE_TIMEOUT_SECONDS must be > 0")
        return v

    @property
    def is_prod(self) -> bool:
        return self.env == AppEnv.production

    @property
    def cors_origins(self) -> List[str]:
        return _split_csv(self.cors_allowed_origins)

    def detection_config(self) -> DetectionConfig:
        return DetectionConfig.from_mapping(
            {
                "enabled": self.regression_enabled,
                "document_types": _split_csv(self.document_types),
                "site_url": self.site_url,
                "link_drop_enabled": self.link_drop_enabled,
                "link_drop_percent": self.link_drop_percent,
                "link_drop_absolute": self.link_drop_absolute,
                "exclude_nofollow_links": self.exclude_nofollow_links,
                "word_count_enabled": self.word_count_enabled,
                "word_count_drop_percent": self.word_count_drop_percent,
                "word_count_min_age_days": self.word_count_min_age_days,
                "word_count_compare_average": self.word_count_compare_average,
                "exclude_shortcodes": self.exclude_shortcodes,
                "heading_enabled": self.heading_enabled,
                "detect_missing_h1": self.detect_missing_h1,
                "detect_multiple_h1": self.detect_multiple_h1,
                "detect_skipped_levels": self.detect_skipped_levels,
                "snapshot_rolling_count": self.snapshot_rolling_count,
            }
        )


# ---------- Accessor (cached) ----------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings instance for the API process."""
    return Settings()
