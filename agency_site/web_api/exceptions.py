"""
Exception Handlers Module

This module defines the error taxonomy of the web API and the FastAPI
exception handlers that render every failure as a uniform
``{"error": "<message>"}`` body with the matching HTTP status code.
"""

import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class WebAPIException(Exception):
    """Base exception for Web API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.headers = headers or {}
        super().__init__(self.message)


class InvalidInput(WebAPIException):
    """Raised when a caller sends a malformed request."""

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class Unauthorized(WebAPIException):
    """Raised when a signature or shared secret does not match."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class RateLimited(WebAPIException):
    """Raised when a client has used up its quota for the current window."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after: Optional[int] = None,
    ):
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS, headers)
        self.retry_after = retry_after


class UpstreamUnavailable(WebAPIException):
    """Raised when a dependency is not configured or cannot be reached."""

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class UpstreamRateLimited(WebAPIException):
    """Raised when the LLM provider throttles us."""

    def __init__(self, message: str = "OpenAI rate limit exceeded. Please try again later."):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS)


class ProcessingError(WebAPIException):
    """Raised when an unexpected failure happens while handling a request."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(message: str, status_code: int, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    """Build the uniform error body."""
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def web_api_exception_handler(request: Request, exc: WebAPIException) -> JSONResponse:
    """Handle custom Web API exceptions."""
    if exc.status_code >= 500:
        logger.error(f"Web API error on {request.url.path}: {exc.message} (Status: {exc.status_code})")
    else:
        logger.warning(f"Web API exception on {request.url.path}: {exc.message} (Status: {exc.status_code})")
    return error_response(exc.message, exc.status_code, exc.headers or None)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors without echoing the payload back."""
    logger.warning(f"Request validation failed on {request.url.path}")
    return error_response("Invalid request", status.HTTP_400_BAD_REQUEST)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.detail} (Status: {exc.status_code})")
    return error_response(str(exc.detail), exc.status_code, getattr(exc, "headers", None))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error on {request.url.path}: {type(exc).__name__}")
    return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Set up all exception handlers for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance
    """
    app.add_exception_handler(WebAPIException, web_api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers configured")
