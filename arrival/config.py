"""
Arrival Console - Configuration Management
==========================================
Centralized configuration with environment variable support.

Usage:
    from arrival.config import settings

    base_url = settings.api_base_url
    timeout = settings.request_timeout
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings with environment variable overrides."""

    # Backend
    api_base_url: str = ""
    backend_health_url: str = ""
    # 0 means no timeout: a hung request keeps its spinner up until the user retries.
    request_timeout_seconds: float = 0.0

    # Admin actions
    reviewer_name: str = "Admin"
    checklist_templates: tuple[str, ...] = ("standard_university", "ngo_sponsored")

    # Messaging
    messages_page_size: int = 50

    # Health proxy CORS
    cors_allow_origins: set[str] = field(
        default_factory=lambda: {
            "http://localhost:8501",  # Streamlit default
            "http://127.0.0.1:8501",
        }
    )

    # Feature flags
    debug_mode: bool = False

    def __post_init__(self):
        """Load overrides from environment variables."""
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load configuration from environment variables."""
        # Backend
        base_url = os.environ.get("ARRIVAL_API_BASE_URL") or os.environ.get("NEXT_PUBLIC_API_BASE_URL")
        if base_url:
            self.api_base_url = base_url.strip().rstrip("/")
        if health_url := os.environ.get("ARRIVAL_BACKEND_HEALTH_URL"):
            self.backend_health_url = health_url.strip()
        elif self.api_base_url and not self.backend_health_url:
            self.backend_health_url = f"{self.api_base_url}/api/health"
        if timeout := os.environ.get("ARRIVAL_REQUEST_TIMEOUT"):
            self.request_timeout_seconds = float(timeout)

        # Admin actions
        if reviewer := os.environ.get("ARRIVAL_REVIEWER_NAME"):
            self.reviewer_name = reviewer
        if templates := os.environ.get("ARRIVAL_CHECKLIST_TEMPLATES", "").strip():
            self.checklist_templates = tuple(t.strip() for t in templates.split(",") if t.strip())

        # Messaging
        if page_size := os.environ.get("ARRIVAL_MESSAGES_PAGE_SIZE"):
            self.messages_page_size = int(page_size)

        # CORS configuration
        if cors_origins := os.environ.get("CORS_ALLOW_ORIGINS", "").strip():
            if cors_origins == "*":
                logger.warning(
                    "CORS_ALLOW_ORIGINS set to '*' - allowing all origins. " "This should only be used in development."
                )
                self.cors_allow_origins = {"*"}
            else:
                self.cors_allow_origins = {origin.strip() for origin in cors_origins.split(",") if origin.strip()}

        # Feature flags
        if os.environ.get("DEBUG", "").lower() in ("1", "true"):
            self.debug_mode = True

    @property
    def request_timeout(self) -> float | None:
        """Timeout passed to requests; None when unset."""
        return self.request_timeout_seconds or None


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        if _settings.debug_mode:
            logger.info("Settings loaded with debug mode enabled")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience alias
settings = get_settings()


PROGRAM_TYPES = frozenset({"UNIVERSITY", "NGO"})

RISK_LEVEL_COLORS = {
    "GREEN": "green",
    "YELLOW": "orange",
    "RED": "red",
}

REVIEW_STATUS_COLORS = {
    "APPROVED": "green",
    "REJECTED": "red",
    "PENDING": "gray",
}
