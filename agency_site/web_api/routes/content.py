"""
CMS Content Routes

Cached read-through of published CMS content, and the sync endpoint that
pushes local component, theme and model changes back to the CMS.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from agency_site.cache import DEFAULT_LIMIT, ContentCache
from agency_site.cms import BuilderClient, CMSError
from agency_site.web_api.dependencies import get_cms_client, get_content_cache
from agency_site.web_api.exceptions import InvalidInput, ProcessingError, UpstreamUnavailable
from agency_site.web_api.models import SyncRequest

logger = logging.getLogger(__name__)

router = APIRouter()

COMPONENT_UPDATE = "component-update"
THEME_UPDATE = "theme-update"
MODEL_UPDATE = "model-update"
SYNC_TYPES = (COMPONENT_UPDATE, THEME_UPDATE, MODEL_UPDATE)


@router.get("/content")
async def get_content(
    model: str = "page",
    url: str = "/",
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=100),
    cache: ContentCache = Depends(get_content_cache),
    client: BuilderClient = Depends(get_cms_client),
) -> Dict[str, Any]:
    """Return CMS content for a page, serving from the cache when possible."""
    cached = cache.get_content(model, url, limit)
    if cached is not None:
        logger.debug(f"Content cache hit for {model}:{url} (limit {limit})")
        return cached

    try:
        content = await run_in_threadpool(client.fetch_content, model, url, limit)
    except CMSError as e:
        logger.error(f"Content fetch failed for {model}:{url}: {e}")
        raise UpstreamUnavailable("Failed to fetch content")

    cache.set_content(model, url, content, limit=limit)
    return content


@router.post("/sync")
async def sync(
    sync_request: SyncRequest,
    cache: ContentCache = Depends(get_content_cache),
    client: BuilderClient = Depends(get_cms_client),
) -> Dict[str, Any]:
    """
    Push a local change to the CMS.

    Supported types are ``component-update``, ``theme-update`` and
    ``model-update``.
    """
    if sync_request.type not in SYNC_TYPES:
        raise InvalidInput("Invalid sync type")

    try:
        if sync_request.type == COMPONENT_UPDATE:
            result = await run_in_threadpool(client.write_component, sync_request.data)
        elif sync_request.type == THEME_UPDATE:
            result = await run_in_threadpool(client.update_theme, sync_request.data)
        else:
            result = await run_in_threadpool(
                client.update_model, sync_request.model, sync_request.data
            )
            cache.invalidate_model(sync_request.model)
    except CMSError as e:
        logger.error(f"Sync of {sync_request.type} failed: {e}")
        raise ProcessingError("Sync failed")

    return {"success": True, "result": result}
