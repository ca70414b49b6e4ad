"""
Configuration Module

This module collects the environment-driven settings used by the web
application: LLM provider credentials, chat rate-limit quota, CMS
credentials and webhook secrets, cache backend and server options.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER_OPENAI_KEY = "your_openai_api_key_here"

DEFAULT_MODEL = "gpt-4-turbo-preview"
DEFAULT_MAX_REQUESTS = 20
DEFAULT_WINDOW_MS = 60000
DEFAULT_CONTENT_CACHE_TTL = 300
DEFAULT_WS_PUBLIC_URL = "ws://localhost:8000/ws/collaboration"


@dataclass
class Settings:
    """Runtime settings for the web application."""

    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_MODEL

    rate_limit_max_requests: int = DEFAULT_MAX_REQUESTS
    rate_limit_window_ms: int = DEFAULT_WINDOW_MS
    rate_limit_backend: str = "memory"
    redis_url: Optional[str] = None

    builder_api_key: Optional[str] = None
    builder_private_key: Optional[str] = None
    builder_space_id: Optional[str] = None
    builder_model_name: str = "page"
    builder_webhook_secret: Optional[str] = None

    revalidate_secret: Optional[str] = None
    deploy_hook_url: Optional[str] = None
    slack_webhook_url: Optional[str] = None
    content_cache_ttl: int = DEFAULT_CONTENT_CACHE_TTL

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    ws_public_url: str = DEFAULT_WS_PUBLIC_URL

    @property
    def openai_configured(self) -> bool:
        """Return True if a usable provider key is present."""
        return bool(self.openai_api_key) and self.openai_api_key != PLACEHOLDER_OPENAI_KEY


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive value for {name}, using {default}")
        return default
    return value


def load_settings() -> Settings:
    """
    Build settings from environment variables.

    Returns:
        Settings: Settings populated from the current environment
    """
    cors_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    settings = Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
        rate_limit_max_requests=_int_env("CHAT_RATE_LIMIT_MAX_REQUESTS", DEFAULT_MAX_REQUESTS),
        rate_limit_window_ms=_int_env("CHAT_RATE_LIMIT_WINDOW_MS", DEFAULT_WINDOW_MS),
        rate_limit_backend=os.getenv("RATE_LIMIT_BACKEND", "memory").lower(),
        redis_url=os.getenv("REDIS_URL"),
        builder_api_key=os.getenv("BUILDER_API_KEY"),
        builder_private_key=os.getenv("BUILDER_PRIVATE_KEY"),
        builder_space_id=os.getenv("BUILDER_SPACE_ID"),
        builder_model_name=os.getenv("BUILDER_MODEL_NAME", "page"),
        builder_webhook_secret=os.getenv("BUILDER_WEBHOOK_SECRET"),
        revalidate_secret=os.getenv("REVALIDATE_SECRET"),
        deploy_hook_url=os.getenv("DEPLOY_HOOK_URL"),
        slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL"),
        content_cache_ttl=_int_env("CONTENT_CACHE_TTL", DEFAULT_CONTENT_CACHE_TTL),
        cors_origins=cors_origins or ["*"],
        ws_public_url=os.getenv("WS_PUBLIC_URL", DEFAULT_WS_PUBLIC_URL),
    )

    if not settings.openai_configured:
        logger.warning("OPENAI_API_KEY is not configured; chat requests will fail")
    if not settings.builder_webhook_secret:
        logger.warning("BUILDER_WEBHOOK_SECRET is not configured; webhooks will be rejected")

    return settings
