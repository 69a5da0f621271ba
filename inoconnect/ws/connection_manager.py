from fastapi import WebSocket
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manager for WebSocket connections.
    Tracks the open sockets of each user; a user may be connected from several devices.
    """

    def __init__(self):
        # Maps user_id to the list of that user's sockets
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        """
        Register an accepted WebSocket for a user.

        Args:
            websocket: The WebSocket connection
            user_id: Authenticated user id (required)
        """
        if not user_id:
            logger.error("[WS] Cannot connect without user_id")
            raise ValueError("user_id is required")

        self.active_connections.setdefault(user_id, []).append(websocket)
        logger.info(f"[WS] Connected user {user_id} ({len(self.active_connections[user_id])} sockets)")

    async def disconnect(self, websocket: WebSocket, user_id: str):
        """
        Remove a WebSocket connection of a user.

        Args:
            websocket: The WebSocket connection
            user_id: User the socket belongs to
        """
        sockets = self.active_connections.get(user_id)
        if not sockets:
            logger.warning(f"[WS] No connections registered for user {user_id}")
            return

        # Identity match; starlette sockets compare by scope contents
        remaining = [s for s in sockets if s is not websocket]
        if len(remaining) < len(sockets):
            sockets[:] = remaining
            logger.info(f"[WS] Disconnected user {user_id}")
        else:
            logger.warning(f"[WS] WebSocket mismatch for user {user_id}")

        if not sockets:
            del self.active_connections[user_id]

    async def send_personal_message(self, message: dict, websocket: WebSocket) -> bool:
        """
        Send a message to a specific WebSocket

        Args:
            message: The message to send
            websocket: The destination WebSocket connection

        Returns:
            bool: False if the socket could not be written to
        """
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"[WS] Error sending personal message: {e}")
            return False

    async def send_to_user(self, message: dict, user_id: str) -> int:
        """
        Send a message to every socket of a user.

        Returns:
            int: Number of sockets the message reached
        """
        delivered = 0
        for websocket in list(self.active_connections.get(user_id, [])):
            if await self.send_personal_message(message, websocket):
                delivered += 1
            else:
                await self.disconnect(websocket, user_id)
        return delivered

    def get_total_connections(self) -> int:
        """
        Get the total number of open sockets.

        Returns:
            int: Total number of connections
        """
        return sum(len(sockets) for sockets in self.active_connections.values())

    def get_user_connection_count(self, user_id: str) -> int:
        return len(self.active_connections.get(user_id, []))

    def is_user_connected(self, user_id: str) -> bool:
        """
        Check if a user has at least one open socket.

        Args:
            user_id: User id

        Returns:
            bool: True if connected, False otherwise
        """
        return bool(self.active_connections.get(user_id))
