"""Notification endpoints and the live notification socket."""

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from campus.api.deps import get_current_user_id, get_dispatcher, get_session_registry
from campus.notifications.registry import SessionRegistry
from campus.notifications.schemas import Notification
from campus.notifications.service import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])
ws_router = APIRouter(tags=["notifications"])


@router.get("", response_model=list[Notification])
async def list_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> list[Notification]:
    """The caller's notifications, newest first."""
    return dispatcher.list_for(user_id, unread_only=unread_only, limit=limit)


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: int,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Notification:
    """Mark one of the caller's notifications as read."""
    return dispatcher.mark_read(notification_id, user_id)


@ws_router.websocket("/ws/notifications/{user_id}")
async def notification_socket(
    websocket: WebSocket,
    user_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> None:
    """Push new notifications to a connected client until it disconnects."""
    await websocket.accept()
    registry.register(user_id, websocket)
    try:
        while True:
            # Client messages are ignored; reading detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(user_id, websocket)
