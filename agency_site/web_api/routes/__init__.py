"""
Routes Package

This package contains all the FastAPI route handlers for the web interface,
organized by functionality (chat, CMS content, webhooks, revalidation, realtime).
"""

from . import chat, content, realtime, revalidate, webhook

__all__ = ["chat", "content", "realtime", "revalidate", "webhook"]
