"""
Realtime Package

Client-side transport for the collaboration socket: a reconnecting
asyncio client, its event registry and the wire message envelope.
"""

from .client import ConnectionState, SocketClient
from .events import EventRegistry
from .messages import CollaborationEvent, SocketMessage

__all__ = ["ConnectionState", "SocketClient", "EventRegistry", "CollaborationEvent", "SocketMessage"]
