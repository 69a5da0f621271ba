"""
WebSocket message type definitions.
"""
from enum import Enum
from typing import Dict, Any, Optional


class MessageType(str, Enum):
    """Enum of WebSocket message types."""
    # Client requests
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"

    # Server acknowledgements and pushes
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    STREAM_UPDATE = "stream_update"

    # System messages
    ERROR = "error"
    PING = "ping"
    PONG = "pong"


class MessageSchema:
    """Message schema definitions for different message types."""

    @staticmethod
    def _with_channel(message: Dict[str, Any], channel_id: Optional[str]) -> Dict[str, Any]:
        if channel_id is not None:
            message["channel_id"] = channel_id
        return message

    @staticmethod
    def subscribed_message(stream: str, channel_id: Optional[str] = None) -> Dict[str, Any]:
        return MessageSchema._with_channel({"type": MessageType.SUBSCRIBED.value, "stream": stream}, channel_id)

    @staticmethod
    def unsubscribed_message(stream: str, channel_id: Optional[str] = None) -> Dict[str, Any]:
        return MessageSchema._with_channel({"type": MessageType.UNSUBSCRIBED.value, "stream": stream}, channel_id)

    @staticmethod
    def stream_update_message(stream: str, data: Any, channel_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a stream snapshot push.

        Args:
            stream: Stream name
            data: JSON-ready snapshot
            channel_id: Channel the snapshot belongs to (messages stream only)

        Returns:
            Dict: Formatted update message
        """
        return MessageSchema._with_channel(
            {"type": MessageType.STREAM_UPDATE.value, "stream": stream, "data": data}, channel_id
        )

    @staticmethod
    def error_message(message: str, code: Optional[str] = None) -> Dict[str, Any]:
        """
        Create an error message.

        Args:
            message: Error message text
            code: Optional machine-readable error code

        Returns:
            Dict: Formatted error message
        """
        result = {
            "type": MessageType.ERROR.value,
            "message": message
        }

        if code is not None:
            result["code"] = code

        return result

    @staticmethod
    def pong_message() -> Dict[str, str]:
        return {"type": MessageType.PONG.value}
