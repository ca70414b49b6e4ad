"""
Dependencies Module

This module provides FastAPI dependency functions. Shared components (the
rate limiter, chat proxy, content cache, CMS client and webhook dispatcher)
are built once by the application factory and kept on ``app.state``; these
functions hand them to route handlers so tests can swap any of them.
"""

import logging

from fastapi import Request

from agency_site.cache import ContentCache
from agency_site.chat import ChatProxy
from agency_site.cms import BuilderClient
from agency_site.config import Settings
from agency_site.rate_limiter import FixedWindowRateLimiter
from agency_site.webhook import WebhookDispatcher

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def get_chat_proxy(request: Request) -> ChatProxy:
    return request.app.state.chat_proxy


def get_content_cache(request: Request) -> ContentCache:
    return request.app.state.content_cache


def get_cms_client(request: Request) -> BuilderClient:
    return request.app.state.cms_client


def get_webhook_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.webhook_dispatcher


def get_client_identifier(request: Request) -> str:
    """
    Derive the rate-limit identifier for a request.

    Uses the first hop of ``X-Forwarded-For``, then the peer address. Clients
    with neither share the ``"unknown"`` bucket.

    Args:
        request: Incoming request

    Returns:
        str: Client identifier
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host

    logger.debug("No client address detected; using shared identifier")
    return UNKNOWN_CLIENT
