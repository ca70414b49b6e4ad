"""Wire envelope for socket frames and collaboration payloads."""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

CURSOR = "cursor"
SELECTION = "selection"
EDIT = "edit"
PRESENCE = "presence"

COLLABORATION_TYPES = (CURSOR, SELECTION, EDIT, PRESENCE)


def now_ms() -> int:
    return int(time.time() * 1000)


class MessageFormatError(ValueError):
    """Raised when an inbound frame is not a valid envelope."""


@dataclass
class SocketMessage:
    """Envelope carried by every frame in both directions."""

    type: str
    payload: Any = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "payload": self.payload,
            "timestamp": self.timestamp,
        }
        if self.user_id is not None:
            data["userId"] = self.user_id
        if self.session_id is not None:
            data["sessionId"] = self.session_id
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SocketMessage":
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise MessageFormatError("Frame must be an object with a string 'type'")
        timestamp = data.get("timestamp")
        return cls(
            type=data["type"],
            payload=data.get("payload", {}),
            timestamp=timestamp if isinstance(timestamp, int) else now_ms(),
            user_id=data.get("userId"),
            session_id=data.get("sessionId"),
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "SocketMessage":
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MessageFormatError("Frame is not valid JSON") from e
        return cls.from_dict(data)


@dataclass
class CollaborationEvent:
    """Payload of a ``collaboration`` frame, tagged by sub-type."""

    type: str
    user_id: str
    data: Any = None
    user_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "userId": self.user_id, "data": self.data}
        if self.user_name is not None:
            payload["userName"] = self.user_name
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> "CollaborationEvent":
        if not isinstance(payload, dict) or payload.get("type") not in COLLABORATION_TYPES:
            raise MessageFormatError("Unknown collaboration event")
        return cls(
            type=payload["type"],
            user_id=str(payload.get("userId", "")),
            data=payload.get("data"),
            user_name=payload.get("userName"),
        )
