"""
WebSocket Collaboration Handler

This module provides the server side of the collaboration socket. Clients
authenticate with an ``auth`` frame naming their user and session, keep the
connection alive with ``ping`` frames and exchange ``collaboration`` and
``presence`` frames, which are relayed to the other members of the same
session.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from agency_site.realtime.messages import MessageFormatError, SocketMessage

logger = logging.getLogger(__name__)

RELAYED_TYPES = ("collaboration", "presence", "notification", "workflow", "analytics")


class ConnectionManager:
    """Tracks live collaboration connections grouped by session."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.sessions: Dict[str, Dict[str, str]] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a WebSocket connection and assign a connection ID."""
        await websocket.accept()
        connection_id = f"conn_{id(websocket)}"
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket connection established: {connection_id}")
        return connection_id

    def authenticate(self, connection_id: str, user_id: str, session_id: str) -> None:
        self.sessions[connection_id] = {"user_id": user_id, "session_id": session_id}
        logger.info(f"Connection {connection_id} joined session {session_id} as {user_id}")

    def disconnect(self, connection_id: str) -> None:
        """Remove a WebSocket connection."""
        self.active_connections.pop(connection_id, None)
        self.sessions.pop(connection_id, None)
        logger.info(f"WebSocket connection closed: {connection_id}")

    def session_of(self, connection_id: str) -> Optional[str]:
        info = self.sessions.get(connection_id)
        return info["session_id"] if info else None

    def session_members(self, session_id: str) -> List[str]:
        return [cid for cid, info in self.sessions.items() if info["session_id"] == session_id]

    async def send_message(self, connection_id: str, message: Dict[str, Any]) -> None:
        """Send a message to a specific connection."""
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending message to {connection_id}: {e}")
            self.disconnect(connection_id)

    async def send_error(self, connection_id: str, error_message: str) -> None:
        await self.send_message(
            connection_id, SocketMessage(type="error", payload={"error": error_message}).to_dict()
        )

    async def broadcast(self, sender_id: str, message: SocketMessage) -> int:
        """
        Relay a message to every other connection in the sender's session.

        Returns:
            int: Number of connections the message was sent to
        """
        session_id = self.session_of(sender_id)
        if session_id is None:
            return 0

        recipients = [cid for cid in self.session_members(session_id) if cid != sender_id]
        for connection_id in recipients:
            await self.send_message(connection_id, message.to_dict())
        return len(recipients)


async def handle_frame(manager: ConnectionManager, connection_id: str, raw: str) -> None:
    """Process one inbound frame."""
    try:
        message = SocketMessage.from_json(raw)
    except MessageFormatError:
        await manager.send_error(connection_id, "Invalid message format")
        return

    if message.type == "ping":
        await manager.send_message(connection_id, SocketMessage(type="pong").to_dict())
        return

    if message.type == "auth":
        payload = message.payload if isinstance(message.payload, dict) else {}
        user_id = payload.get("userId") or message.user_id
        session_id = payload.get("sessionId") or message.session_id
        if not user_id or not session_id:
            await manager.send_error(connection_id, "userId and sessionId are required")
            return
        manager.authenticate(connection_id, str(user_id), str(session_id))
        await manager.send_message(
            connection_id,
            SocketMessage(type="authenticated", payload={"sessionId": session_id}).to_dict(),
        )
        return

    if manager.session_of(connection_id) is None:
        await manager.send_error(connection_id, "Not authenticated")
        return

    if message.type in RELAYED_TYPES:
        await manager.broadcast(connection_id, message)
    else:
        await manager.send_error(connection_id, f"Unknown message type: {message.type}")


async def websocket_collaboration_endpoint(websocket: WebSocket, manager: ConnectionManager) -> None:
    """
    WebSocket endpoint for collaborative editing.

    Args:
        websocket: WebSocket connection
        manager: Connection registry of the application
    """
    connection_id = await manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                await handle_frame(manager, connection_id, data)
            except Exception as e:
                logger.error(f"Error processing WebSocket message: {e}")
                await manager.send_error(connection_id, "Failed to process message")
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection_id}")
    finally:
        manager.disconnect(connection_id)


def setup_websocket_routes(app: FastAPI) -> None:
    """
    Set up WebSocket routes for the FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.websocket("/ws/collaboration")
    async def websocket_collaboration(websocket: WebSocket):
        """WebSocket endpoint for real-time collaboration."""
        await websocket_collaboration_endpoint(websocket, websocket.app.state.connection_manager)

    logger.info("WebSocket routes configured")
