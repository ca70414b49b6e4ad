"""
Webhook Routes

Receives signed content-change events from the CMS.
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from agency_site.config import Settings
from agency_site.logging_hygiene import log_security_event
from agency_site.web_api.dependencies import (
    get_client_identifier,
    get_settings,
    get_webhook_dispatcher,
)
from agency_site.web_api.exceptions import ProcessingError, Unauthorized
from agency_site.web_api.models import SuccessResponse
from agency_site.webhook import (
    SIGNATURE_HEADER,
    WebhookDispatcher,
    WebhookEvent,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", response_model=SuccessResponse)
async def builder_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
) -> SuccessResponse:
    """
    Verify and dispatch one CMS webhook event.

    The signature is checked against the raw body before it is parsed;
    a failed check has no side effects.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not verify_webhook_signature(body, signature, settings.builder_webhook_secret):
        log_security_event(
            "webhook_signature_invalid",
            get_client_identifier(request),
            {"signature_present": bool(signature)},
        )
        raise Unauthorized("Invalid webhook signature")

    try:
        event = WebhookEvent.parse(body)
        logger.info(f"Builder webhook received: {event.type}")
        await run_in_threadpool(dispatcher.dispatch, event)
    except Exception as e:
        logger.error(f"Webhook processing failed: {e}", exc_info=True)
        raise ProcessingError("Webhook processing failed")

    return SuccessResponse()
