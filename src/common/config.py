"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")

# Generic content containers, tried in order after the configured selector
DEFAULT_FALLBACK_SELECTORS = [
    ".entry-content",  # Standard WordPress
    ".post-content",  # Common theme pattern
    ".wp-block-post-content",  # Gutenberg FSE
    "article .content",  # Semantic HTML
    ".elementor-widget-theme-post-content .elementor-widget-container",  # Elementor
    ".et_pb_post_content",  # Divi
    ".fl-post-content",  # Beaver Builder
    ".brxe-post-content",  # Bricks Builder
    ".oxygen-builder-body .ct-text-block",  # Oxygen
    "article",  # Generic article
    "main",  # Last resort
]


class AutoInsertSettings(BaseModel):
    """Settings for chain construction and view-time insertion."""
    content_selector: str = ".entry-content"
    fallback_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FALLBACK_SELECTORS)
    )
    max_fallback_depth: int = Field(default=10, ge=1)
    start_delay_ms: int = Field(default=50, ge=0)
    payload_element_id: str = "cta-highlights-auto-insert-data"
    debug: bool = False


class DatabaseSettings(BaseModel):
    """Database connection settings."""
    db_path: str = str(DATA_DIR / "cta_highlights.db")


class Settings(BaseModel):
    """Top-level application settings."""
    auto_insert: AutoInsertSettings = Field(default_factory=AutoInsertSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    @classmethod
    def load(cls, settings_path: Path | None = None) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults.

        Environment variables are applied on top of the file values.
        """
        settings_path = settings_path or CONFIG_DIR / "settings.yaml"
        data: dict = {}
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        instance = cls(**data)
        instance.apply_env_overrides()
        return instance

    def apply_env_overrides(self) -> None:
        """Load overrides from environment."""
        if db_path := os.getenv("CTA_DATABASE_PATH"):
            self.database.db_path = db_path
        if selector := os.getenv("CTA_CONTENT_SELECTOR"):
            self.auto_insert.content_selector = selector
        if depth := os.getenv("CTA_MAX_FALLBACK_DEPTH"):
            self.auto_insert.max_fallback_depth = max(1, int(depth))
        if debug := os.getenv("CTA_DEBUG"):
            self.auto_insert.debug = debug.strip().lower() in ("1", "true", "yes")


# Singleton settings instance
settings = Settings.load()
