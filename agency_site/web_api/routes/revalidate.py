"""
Revalidation Routes

Lets the CMS or an operator drop cached content for a page path.
"""

import hmac
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request

from agency_site.cache import ContentCache
from agency_site.config import Settings
from agency_site.logging_hygiene import log_security_event
from agency_site.web_api.dependencies import get_client_identifier, get_content_cache, get_settings
from agency_site.web_api.exceptions import InvalidInput, Unauthorized
from agency_site.web_api.models import RevalidateResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def secret_matches(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@router.post("", response_model=RevalidateResponse)
async def revalidate(
    request: Request,
    path: Optional[str] = None,
    secret: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    cache: ContentCache = Depends(get_content_cache),
) -> RevalidateResponse:
    """
    Revalidate a page path.

    Args:
        path: Page URL whose cached content is dropped
        secret: Must equal the configured revalidation secret

    Returns:
        RevalidateResponse: Path, timestamp and number of entries removed
    """
    if not secret_matches(secret, settings.revalidate_secret):
        log_security_event("revalidate_secret_invalid", get_client_identifier(request))
        raise Unauthorized("Invalid secret")

    if not path:
        raise InvalidInput("Path parameter is required")

    removed = cache.revalidate_path(path)
    return RevalidateResponse(
        revalidated=True,
        path=path,
        timestamp=datetime.now(timezone.utc).isoformat(),
        removed=removed,
    )
