"""
Realtime Routes

Tells browser clients where the collaboration socket lives.
"""

from fastapi import APIRouter, Depends

from agency_site.config import Settings
from agency_site.web_api.dependencies import get_settings
from agency_site.web_api.models import WebSocketInfoResponse

router = APIRouter()


@router.get("", response_model=WebSocketInfoResponse)
async def websocket_info(settings: Settings = Depends(get_settings)) -> WebSocketInfoResponse:
    return WebSocketInfoResponse(
        message="WebSocket endpoint ready",
        url=settings.ws_public_url,
        status="ready",
    )
