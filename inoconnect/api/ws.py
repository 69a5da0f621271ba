"""
WebSocket endpoint for live streams and its status endpoint.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from starlette import status

from inoconnect.api.dependencies import get_current_user_id, get_ws_handler
from inoconnect.core import security
from inoconnect.ws.events import WebSocketEventHandler
from inoconnect.ws.message_types import MessageSchema

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/ws",
    tags=["websocket"],
)


@router.get("/status", response_model=Dict[str, Any])
async def get_ws_status(
    user_id: str = Depends(get_current_user_id),
    handler: WebSocketEventHandler = Depends(get_ws_handler),
):
    """
    Get the WebSocket status of the current user.
    """
    manager = handler.connection_manager
    return {
        "connected": manager.is_user_connected(user_id),
        "connections": manager.get_user_connection_count(user_id),
        "total_connections": manager.get_total_connections(),
        "active_streams": handler.container.hub.active_count,
    }


@router.websocket("")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    handler: WebSocketEventHandler = Depends(get_ws_handler),
):
    """
    WebSocket endpoint for live streams.

    The bearer token is passed as the ``token`` query parameter. Every
    subscription opened on the socket is released when it closes.
    """
    user_id = security.verify_token(token)
    if user_id is None:
        logger.warning("[WS] Connection rejected: invalid or missing token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="invalid token")
        return

    manager = handler.connection_manager
    await websocket.accept()
    await manager.connect(websocket, user_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await manager.send_personal_message(
                    MessageSchema.error_message("Invalid JSON", code="invalid_json"), websocket
                )
                continue
            await handler.handle_message(websocket, user_id, data)
    except WebSocketDisconnect as e:
        logger.info(f"[WS] Socket of {user_id} disconnected (code {e.code})")
    finally:
        await handler.release_all(websocket)
        await manager.disconnect(websocket, user_id)
