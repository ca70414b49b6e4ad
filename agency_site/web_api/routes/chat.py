"""
Chat Routes

This module contains the rate-limited chat endpoint that forwards a
conversation, prefixed with a persona instruction, to the hosted LLM.
"""

import json
import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from agency_site.chat import ChatProxy, ChatProviderError, ProviderNotConfigured, ProviderRateLimited
from agency_site.logging_hygiene import log_security_event
from agency_site.personalities import list_personalities
from agency_site.rate_limiter import FixedWindowRateLimiter, RateLimitExceeded
from agency_site.web_api.dependencies import get_chat_proxy, get_client_identifier, get_rate_limiter
from agency_site.web_api.exceptions import (
    InvalidInput,
    ProcessingError,
    RateLimited,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from agency_site.web_api.models import ChatRequest, ChatResponse, PersonalityResponse

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def parse_chat_request(request: Request) -> ChatRequest:
    """Read and validate the chat body, raising InvalidInput on malformed input."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInput("Request body must be valid JSON")

    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        raise InvalidInput("Messages array is required")

    try:
        return ChatRequest.model_validate(body)
    except ValidationError:
        raise InvalidInput("Each message needs a valid role and string content")


@router.post("", response_model=ChatResponse)
async def chat(
    request: Request,
    rate_limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    proxy: ChatProxy = Depends(get_chat_proxy),
) -> ChatResponse:
    """
    Forward a conversation to the LLM.

    Args:
        request: Incoming request with ``{messages, personality?}``
        rate_limiter: Per-client quota
        proxy: LLM completion proxy

    Returns:
        ChatResponse: Assistant reply, tokens used and remaining quota
    """
    chat_request = await parse_chat_request(request)

    identifier = get_client_identifier(request)
    try:
        result = rate_limiter.acquire(identifier)
    except RateLimitExceeded as e:
        log_security_event("rate_limit_exceeded", identifier, {"retry_after": e.retry_after})
        raise RateLimited(retry_after=e.retry_after)

    messages = [message.model_dump() for message in chat_request.messages]

    try:
        completion = await proxy.complete(messages, chat_request.personality)
    except ProviderNotConfigured:
        raise UpstreamUnavailable("OpenAI API key not configured")
    except ProviderRateLimited:
        raise UpstreamRateLimited()
    except ChatProviderError:
        raise ProcessingError()

    logger.info(
        f"Chat completion for {identifier}: {completion.tokens_used} tokens, "
        f"{result.remaining} requests remaining"
    )
    return ChatResponse(
        response=completion.response,
        tokens_used=completion.tokens_used,
        remaining=result.remaining,
    )


@router.options("")
async def chat_preflight() -> Response:
    """Answer CORS preflight requests for the chat endpoint."""
    return Response(status_code=200, headers=CORS_PREFLIGHT_HEADERS)


@router.get("/personalities", response_model=List[PersonalityResponse])
async def personalities() -> List[PersonalityResponse]:
    """List the available chatbot personas."""
    return [PersonalityResponse(**persona) for persona in list_personalities()]
