"""
WebSocket event handlers.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import WebSocket

from inoconnect.core.errors import InoConnectError
from inoconnect.realtime.hub import LiveQuery
from inoconnect.realtime.streams import open_stream
from inoconnect.services.container import ServiceContainer
from inoconnect.ws.connection_manager import ConnectionManager
from inoconnect.ws.message_types import MessageSchema, MessageType

logger = logging.getLogger(__name__)

StreamKey = Tuple[str, Optional[str]]


class WebSocketEventHandler:
    """
    Handler for WebSocket events and messages.
    Routes client messages and owns the live subscriptions of every socket.
    """

    def __init__(self, connection_manager: ConnectionManager, container: ServiceContainer):
        """
        Initialize the event handler.

        Args:
            connection_manager: The WebSocket connection manager
            container: Services the streams read from
        """
        self.connection_manager = connection_manager
        self.container = container
        # id(websocket) -> {(stream, channel_id): (query, forwarding task)}
        self._subscriptions: Dict[int, Dict[StreamKey, Tuple[LiveQuery, asyncio.Task]]] = {}

    def subscription_count(self, websocket: Optional[WebSocket] = None) -> int:
        if websocket is not None:
            return len(self._subscriptions.get(id(websocket), {}))
        return sum(len(subs) for subs in self._subscriptions.values())

    async def handle_message(self, websocket: WebSocket, user_id: str, data: Dict[str, Any]):
        """
        Process one client message.

        Args:
            websocket: Socket the message arrived on
            user_id: Authenticated owner of the socket
            data: Decoded JSON message
        """
        message_type = data.get("type") if isinstance(data, dict) else None

        if message_type == MessageType.PING.value:
            await self.connection_manager.send_personal_message(MessageSchema.pong_message(), websocket)
        elif message_type == MessageType.SUBSCRIBE.value:
            await self.subscribe(websocket, user_id, data.get("stream"), data.get("channel_id"))
        elif message_type == MessageType.UNSUBSCRIBE.value:
            await self.unsubscribe(websocket, data.get("stream"), data.get("channel_id"))
        else:
            logger.info(f"[WS] Unknown message type from {user_id}: {message_type!r}")
            await self.connection_manager.send_personal_message(
                MessageSchema.error_message(f"Unknown message type: {message_type}", code="unknown_type"),
                websocket,
            )

    async def subscribe(self, websocket: WebSocket, user_id: str, stream: Optional[str], channel_id: Optional[str] = None):
        key: StreamKey = (stream, channel_id)
        if key in self._subscriptions.get(id(websocket), {}):
            await self.connection_manager.send_personal_message(
                MessageSchema.subscribed_message(stream, channel_id), websocket
            )
            return

        try:
            query = await open_stream(self.container, user_id, stream, channel_id)
        except InoConnectError as e:
            await self.connection_manager.send_personal_message(
                MessageSchema.error_message(e.message, code=e.code), websocket
            )
            return
        except ValueError:
            await self.connection_manager.send_personal_message(
                MessageSchema.error_message(f"Unknown stream: {stream}", code="unknown_stream"), websocket
            )
            return

        logger.info(f"[WS] {user_id} subscribed to {stream}{f' ({channel_id})' if channel_id else ''}")
        # Acknowledge before the first snapshot can be pushed
        await self.connection_manager.send_personal_message(
            MessageSchema.subscribed_message(stream, channel_id), websocket
        )
        task = asyncio.create_task(self._forward(websocket, stream, channel_id, query))
        self._subscriptions.setdefault(id(websocket), {})[key] = (query, task)

    async def unsubscribe(self, websocket: WebSocket, stream: Optional[str], channel_id: Optional[str] = None):
        subscriptions = self._subscriptions.get(id(websocket), {})
        entry = subscriptions.pop((stream, channel_id), None)
        if entry is not None:
            await self._release(*entry)
        await self.connection_manager.send_personal_message(
            MessageSchema.unsubscribed_message(stream, channel_id), websocket
        )

    async def release_all(self, websocket: WebSocket) -> int:
        """
        Release every subscription of a socket. Called when the socket closes.

        Returns:
            int: Number of subscriptions released
        """
        subscriptions = self._subscriptions.pop(id(websocket), {})
        for query, task in subscriptions.values():
            await self._release(query, task)
        if subscriptions:
            logger.info(f"[WS] Released {len(subscriptions)} subscriptions")
        return len(subscriptions)

    async def _release(self, query: LiveQuery, task: asyncio.Task):
        query.close()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _forward(self, websocket: WebSocket, stream: str, channel_id: Optional[str], query: LiveQuery):
        """Push every snapshot of a live query to the socket until released."""
        try:
            async with query:
                async for snapshot in query:
                    sent = await self.connection_manager.send_personal_message(
                        MessageSchema.stream_update_message(stream, snapshot, channel_id), websocket
                    )
                    if not sent:
                        break
        except InoConnectError as e:
            logger.info(f"[WS] Stream {stream} ended: {e.message}")
            await self.connection_manager.send_personal_message(
                MessageSchema.error_message(e.message, code=e.code), websocket
            )
        except Exception as e:
            logger.exception(f"[WS] Stream {stream} failed: {e}")
            await self.connection_manager.send_personal_message(
                MessageSchema.error_message(f"Stream {stream} failed", code="stream_failed"), websocket
            )
        finally:
            self._forget(websocket, (stream, channel_id), query)

    def _forget(self, websocket: WebSocket, key: StreamKey, query: LiveQuery):
        """Drop a finished subscription so the stream can be subscribed again."""
        subscriptions = self._subscriptions.get(id(websocket))
        if subscriptions is None:
            return
        entry = subscriptions.get(key)
        if entry is not None and entry[0] is query:
            del subscriptions[key]
        if not subscriptions:
            del self._subscriptions[id(websocket)]
