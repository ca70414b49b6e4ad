"""
Webhook Module

Signature verification and event dispatch for CMS content-change webhooks.

The signature is an HMAC-SHA256 of the raw request body, sent as
``sha256=<hex>``. Verification always runs on the raw bytes, before any
parsing. Verified events fan out to side effects: cache revalidation
(always) and, for published content, an optional deployment hook and an
optional chat notification. Each optional side effect is isolated so its
failure cannot stop the others.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

import requests

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-builder-signature"
SIDE_EFFECT_TIMEOUT = 10

CONTENT_PUBLISHED = "content.published"
CONTENT_UNPUBLISHED = "content.unpublished"
CONTENT_ARCHIVED = "content.archived"
MODEL_UPDATED = "model.updated"


class WebhookPayloadError(Exception):
    """Raised when a verified body is not a valid event."""

    pass


@dataclass
class WebhookEvent:
    """A CMS event with its type discriminator and type-specific data."""

    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, body: Union[str, bytes]) -> "WebhookEvent":
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise WebhookPayloadError("Webhook body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise WebhookPayloadError("Webhook body must be a JSON object")

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise WebhookPayloadError("Webhook data must be a JSON object")
        return cls(type=str(payload.get("type", "")), data=data)


def _to_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def sign_payload(body: Union[str, bytes], secret: str) -> str:
    """Compute the ``sha256=<hex>`` signature of a raw body."""
    digest = hmac.new(_to_bytes(secret), _to_bytes(body), hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_webhook_signature(
    body: Union[str, bytes], signature: Optional[str], secret: Optional[str]
) -> bool:
    """
    Check a webhook signature against the raw body.

    Fails closed: a missing secret or a missing header never verifies.

    Args:
        body: Raw, unparsed request body
        signature: Value of the signature header
        secret: Shared webhook secret

    Returns:
        bool: True only if the signature matches exactly
    """
    if not signature or not secret:
        return False
    expected = sign_payload(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class WebhookDispatcher:
    """Route verified events to their side effects."""

    def __init__(
        self,
        revalidate: Callable[[str], Any],
        invalidate_model: Optional[Callable[[str], Any]] = None,
        deploy_hook_url: Optional[str] = None,
        notification_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.revalidate = revalidate
        self.invalidate_model = invalidate_model
        self.deploy_hook_url = deploy_hook_url
        self.notification_url = notification_url
        self.session = session or requests.Session()

        self.handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            CONTENT_PUBLISHED: self.handle_content_published,
            CONTENT_UNPUBLISHED: self.handle_content_unpublished,
            CONTENT_ARCHIVED: self.handle_content_archived,
            MODEL_UPDATED: self.handle_model_updated,
        }

    def dispatch(self, event: WebhookEvent) -> bool:
        """
        Run the handler for an event.

        Returns:
            bool: False if the event type has no handler
        """
        handler = self.handlers.get(event.type)
        if handler is None:
            logger.info(f"Unhandled webhook event: {event.type}")
            return False
        handler(event.data)
        return True

    def handle_content_published(self, data: Dict[str, Any]) -> None:
        logger.info(f"Content published: {data.get('name')} ({data.get('url')})")
        self._revalidate(data)
        if self.deploy_hook_url:
            self._trigger_deploy()
        if self.notification_url:
            self._notify(f"Content published: {data.get('name')}")

    def handle_content_unpublished(self, data: Dict[str, Any]) -> None:
        logger.info(f"Content unpublished: {data.get('name')} ({data.get('url')})")
        self._revalidate(data)

    def handle_content_archived(self, data: Dict[str, Any]) -> None:
        logger.info(f"Content archived: {data.get('name')} ({data.get('url')})")
        self._revalidate(data)

    def handle_model_updated(self, data: Dict[str, Any]) -> None:
        model = data.get("name") or data.get("modelName")
        logger.info(f"Model updated: {model}")
        if model and self.invalidate_model:
            self.invalidate_model(model)

    def _revalidate(self, data: Dict[str, Any]) -> None:
        path = data.get("url")
        if not path:
            logger.warning(f"Webhook event for model {data.get('modelName')} has no url; skipping revalidation")
            return
        try:
            self.revalidate(path)
        except Exception as e:
            logger.error(f"Revalidation failed for {path}: {e}")

    def _trigger_deploy(self) -> None:
        try:
            response = self.session.post(self.deploy_hook_url, timeout=SIDE_EFFECT_TIMEOUT)
            response.raise_for_status()
            logger.info("Deployment hook triggered")
        except Exception as e:
            logger.error(f"Deployment hook failed: {e}")

    def _notify(self, message: str) -> None:
        try:
            response = self.session.post(
                self.notification_url, json={"text": message}, timeout=SIDE_EFFECT_TIMEOUT
            )
            response.raise_for_status()
        except Exception as e:
            logger.error(f"Slack notification failed: {e}")
