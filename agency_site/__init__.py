"""Backend services for the agency site: chat proxy, CMS webhooks and live collaboration."""

__version__ = "0.1.0"
__description__ = "Rate-limited LLM chat, CMS webhooks and real-time collaboration"

from .chat import ChatProxy
from .rate_limiter import FixedWindowRateLimiter, MemoryRateLimitStore
from .realtime import SocketClient

__all__ = ["ChatProxy", "FixedWindowRateLimiter", "MemoryRateLimitStore", "SocketClient"]
