"""
API Models

Pydantic request and response models for the web API.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
    personality: Optional[str] = None


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    tokens_used: int = Field(alias="tokensUsed")
    remaining: int


class PersonalityResponse(BaseModel):
    id: str
    name: str
    avatar: str
    greeting: str


class SyncRequest(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    model: str = "page"


class SuccessResponse(BaseModel):
    success: bool = True


class RevalidateResponse(BaseModel):
    revalidated: bool
    path: str
    timestamp: str
    removed: int = 0


class WebSocketInfoResponse(BaseModel):
    message: str
    url: str
    status: str
