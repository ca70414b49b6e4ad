"""
WebSocket Package

This package contains the WebSocket handlers for real-time collaboration
in the site backend.
"""

from .collaboration_handler import ConnectionManager, setup_websocket_routes

__all__ = ["ConnectionManager", "setup_websocket_routes"]
