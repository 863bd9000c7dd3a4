"""Notification schemas."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Kinds of notification a user can receive."""

    LIKE = "like"
    COMMENT = "comment"
    REPLY = "reply"
    MENTION = "mention"
    MILESTONE = "milestone"


@dataclass(frozen=True)
class NotificationEvent:
    """Something a recipient should be told about."""

    type: NotificationType
    content: str
    sender_id: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None


class Notification(BaseModel):
    """A stored notification."""

    id: int = Field(..., description="Database ID")
    recipient_id: str
    sender_id: Optional[str] = None
    type: NotificationType
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    content: str
    read: bool = False
    created_at: datetime
