"""
Reconnecting Socket Client

An asyncio client for the collaboration socket. It keeps at most one live
connection, reconnects with exponential backoff after unexpected closes,
sends a heartbeat ping while connected and re-emits inbound frames as typed
events. Failures are reported as ``error`` / ``disconnected`` /
``reconnect_failed`` events; no public method raises.

Outbound messages sent while the connection is not open are dropped with a
warning. There is no send queue.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import websockets

from agency_site.realtime import events
from agency_site.realtime.events import EventRegistry
from agency_site.realtime.messages import (
    CURSOR,
    EDIT,
    SELECTION,
    CollaborationEvent,
    MessageFormatError,
    SocketMessage,
    now_ms,
)

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]

DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_DELAY = 1.0
DEFAULT_HEARTBEAT_INTERVAL = 30.0

PRESENCE_STATUSES = ("online", "away", "busy")
EDIT_ACTIONS = ("insert", "delete")

TYPED_EVENTS = (events.NOTIFICATION, events.PRESENCE, events.WORKFLOW, events.ANALYTICS)


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    RECONNECTING = "reconnecting"
    RECONNECT_FAILED = "reconnect_failed"


class SocketClient:
    """
    Persistent message channel with automatic reconnection.

    Args:
        url: Socket server URL
        user_id: Identifier sent with every frame
        session_id: Collaboration session identifier sent with every frame
        max_reconnect_attempts: Attempts before giving up
        reconnect_delay: Base backoff delay in seconds
        heartbeat_interval: Seconds between ping frames
        connector: Coroutine function opening the transport; defaults to
            ``websockets.connect``
        sleep: Coroutine function used for backoff waits
    """

    def __init__(
        self,
        url: str,
        user_id: str,
        session_id: str,
        max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        connector: Optional[Connector] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        self.url = url
        self.user_id = user_id
        self.session_id = session_id
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.heartbeat_interval = heartbeat_interval
        self.connector: Connector = connector or websockets.connect
        self.sleep = sleep or asyncio.sleep

        self.events = EventRegistry()
        self.state = ConnectionState.IDLE
        self.reconnect_attempts = 0

        self._ws: Optional[Any] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._intentional_close = False

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe to a client event; returns an unsubscribe function."""
        return self.events.on(event, callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        self.events.off(event, callback)

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.OPEN and self._ws is not None

    async def connect(self) -> None:
        """Open the connection, unless one is already open or opening."""
        if self._ws is not None or self.state == ConnectionState.CONNECTING:
            logger.debug("WebSocket already connected or connecting")
            return

        current = asyncio.current_task()
        if self._reconnect_task is not None and self._reconnect_task is not current:
            self._reconnect_task.cancel()
        self._reconnect_task = None

        self._intentional_close = False
        self.state = ConnectionState.CONNECTING

        try:
            ws = await self.connector(self.url)
        except Exception as e:
            logger.error(f"Failed to connect WebSocket: {e}")
            self.events.emit(events.ERROR, e)
            self.state = ConnectionState.CLOSED
            if not self._intentional_close:
                self._schedule_reconnect()
            return

        if self._intentional_close:
            # disconnect() ran while the handshake was in flight
            await self._close_transport(ws)
            self.state = ConnectionState.CLOSED
            return

        self._ws = ws
        self.state = ConnectionState.OPEN
        self.reconnect_attempts = 0
        logger.info("WebSocket connected")

        self.events.emit(events.CONNECTED)
        self._start_heartbeat()
        await self.send("auth", {"userId": self.user_id, "sessionId": self.session_id})
        if self._ws is ws:
            self._reader_task = asyncio.create_task(self._read_loop(ws))

    async def disconnect(self) -> None:
        """Close the connection and suppress any further reconnection."""
        self._intentional_close = True
        current = asyncio.current_task()

        if self._reconnect_task is not None and self._reconnect_task is not current:
            self._reconnect_task.cancel()
        self._reconnect_task = None
        self._stop_heartbeat()

        ws, self._ws = self._ws, None
        reader, self._reader_task = self._reader_task, None

        if ws is not None:
            await self._close_transport(ws)
        if reader is not None and reader is not current:
            reader.cancel()

        if self.state != ConnectionState.IDLE:
            self.state = ConnectionState.CLOSED
        if ws is not None:
            logger.info("WebSocket disconnected")
            self.events.emit(events.DISCONNECTED)

    async def send(self, message_type: str, payload: Any = None) -> bool:
        """
        Send one frame.

        Returns:
            bool: False if the connection is not open or the send failed
        """
        ws = self._ws
        if self.state != ConnectionState.OPEN or ws is None:
            logger.warning(f"WebSocket not connected, dropping '{message_type}' message")
            return False

        message = SocketMessage(
            type=message_type or "message",
            payload=payload if payload is not None else {},
            user_id=self.user_id,
            session_id=self.session_id,
        )
        try:
            await ws.send(message.to_json())
        except Exception as e:
            logger.error(f"Failed to send WebSocket message: {e}")
            self.events.emit(events.ERROR, e)
            return False
        return True

    async def send_cursor_position(self, x: float, y: float) -> bool:
        event = CollaborationEvent(type=CURSOR, user_id=self.user_id, data={"x": x, "y": y})
        return await self.send(events.COLLABORATION, event.to_dict())

    async def send_selection(self, start: int, end: int, text: str) -> bool:
        event = CollaborationEvent(
            type=SELECTION, user_id=self.user_id, data={"start": start, "end": end, "text": text}
        )
        return await self.send(events.COLLABORATION, event.to_dict())

    async def send_edit(self, position: int, text: str, action: str) -> bool:
        if action not in EDIT_ACTIONS:
            logger.warning(f"Ignoring edit with unknown action '{action}'")
            return False
        event = CollaborationEvent(
            type=EDIT,
            user_id=self.user_id,
            data={"position": position, "text": text, "action": action},
        )
        return await self.send(events.COLLABORATION, event.to_dict())

    async def update_presence(self, status: str, activity: Optional[str] = None) -> bool:
        if status not in PRESENCE_STATUSES:
            logger.warning(f"Ignoring presence update with unknown status '{status}'")
            return False
        payload = {
            "userId": self.user_id,
            "status": status,
            "activity": activity,
            "timestamp": now_ms(),
        }
        return await self.send(events.PRESENCE, payload)

    def _handle_frame(self, raw: Any) -> None:
        try:
            message = SocketMessage.from_json(raw)
        except MessageFormatError as e:
            logger.error(f"Failed to parse WebSocket message: {e}")
            return

        if message.type == "pong":
            return

        if message.type == events.COLLABORATION:
            try:
                collaboration = CollaborationEvent.from_dict(message.payload)
            except MessageFormatError:
                logger.warning("Collaboration frame with unknown payload; passing through")
                self.events.emit(events.MESSAGE, message)
                return
            self.events.emit(events.COLLABORATION, collaboration)
        elif message.type in TYPED_EVENTS:
            self.events.emit(message.type, message.payload)
        else:
            self.events.emit(events.MESSAGE, message)

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for frame in ws:
                self._handle_frame(frame)
        except asyncio.CancelledError:
            raise
        except websockets.ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            self.events.emit(events.ERROR, e)

        self._handle_close(ws)

    def _handle_close(self, ws: Any) -> None:
        if ws is not self._ws:
            return

        self._ws = None
        self._reader_task = None
        self._stop_heartbeat()
        self.state = ConnectionState.CLOSED
        logger.info("WebSocket disconnected")
        self.events.emit(events.DISCONNECTED)

        if not self._intentional_close:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.error("Max reconnection attempts reached")
            self.state = ConnectionState.RECONNECT_FAILED
            self.events.emit(events.RECONNECT_FAILED)
            return

        self.reconnect_attempts += 1
        delay = self.reconnect_delay * 2 ** (self.reconnect_attempts - 1)
        self.state = ConnectionState.RECONNECTING
        logger.info(
            f"Attempting reconnection {self.reconnect_attempts}/{self.max_reconnect_attempts} "
            f"in {delay:.2f}s"
        )
        self.events.emit(events.RECONNECTING, self.reconnect_attempts, delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self.sleep(delay)
        if self._intentional_close:
            return
        await self.connect()

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        self._heartbeat_task = asyncio.create_task(self._heartbeat())

    def _stop_heartbeat(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self.send("ping", {})

    async def _close_transport(self, ws: Any) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error while closing WebSocket: {e}")
