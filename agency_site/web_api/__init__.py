"""
Web API Package

This package contains all the FastAPI-related components for the web interface,
including routes, models, exception handlers and WebSocket handlers.
"""
