"""Notification persistence and live delivery."""

import logging
import sqlite3
from datetime import datetime, UTC
from typing import Optional

from campus.db.connection import Database
from campus.errors import NotFound
from campus.notifications.registry import SessionRegistry
from campus.notifications.schemas import Notification, NotificationEvent, NotificationType

logger = logging.getLogger(__name__)

PUSH_EVENT = "new_notification"


def _row_to_notification(row) -> Notification:
    return Notification(
        id=row["id"],
        recipient_id=row["recipient_id"],
        sender_id=row["sender_id"],
        type=NotificationType(row["type"]),
        post_id=row["post_id"],
        comment_id=row["comment_id"],
        content=row["content"],
        read=bool(row["read"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class NotificationDispatcher:
    """Stores notifications, then pushes them to the recipient's live sessions.

    notify() never raises: a failed write or push is logged and the caller
    carries on. Like notifications are stored at most once per
    (recipient, sender, post).
    """

    def __init__(self, db: Database, registry: SessionRegistry) -> None:
        self._db = db
        self._registry = registry

    async def notify(self, recipient_id: str, event: NotificationEvent) -> Optional[Notification]:
        """Persist and deliver a notification.

        Args:
            recipient_id: User to notify.
            event: What happened.

        Returns:
            The stored notification, or None if it was a duplicate or could
            not be stored.
        """
        try:
            notification = self._persist(recipient_id, event)
        except sqlite3.Error as e:
            self._db.rollback()
            logger.error(
                "Failed to store %s notification for %s: %s", event.type.value, recipient_id, e
            )
            return None

        if notification is None:
            logger.debug(
                "Skipping duplicate %s notification for %s", event.type.value, recipient_id
            )
            return None

        await self._push(notification)
        return notification

    def _persist(self, recipient_id: str, event: NotificationEvent) -> Optional[Notification]:
        cursor = self._db.execute(
            """
            INSERT OR IGNORE INTO notifications
                (recipient_id, sender_id, type, post_id, comment_id, content, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                recipient_id,
                event.sender_id,
                event.type.value,
                event.post_id,
                event.comment_id,
                event.content,
                datetime.now(UTC).isoformat(),
            ),
        )
        self._db.commit()
        if cursor.rowcount != 1:
            return None
        return self.get(cursor.lastrowid)

    async def _push(self, notification: Notification) -> None:
        payload = {"event": PUSH_EVENT, "data": notification.model_dump(mode="json")}
        for session in self._registry.lookup(notification.recipient_id):
            try:
                await session.send_json(payload)
            except Exception as e:
                logger.warning(
                    "Dropping notification session for %s after failed push: %s",
                    notification.recipient_id,
                    e,
                )
                self._registry.unregister(notification.recipient_id, session)

    def get(self, notification_id: int) -> Optional[Notification]:
        row = self._db.execute(
            "SELECT * FROM notifications WHERE id = ?", (notification_id,)
        ).fetchone()
        return _row_to_notification(row) if row else None

    def list_for(
        self, recipient_id: str, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        """Most recent notifications for a user."""
        sql = "SELECT * FROM notifications WHERE recipient_id = ?"
        if unread_only:
            sql += " AND read = 0"
        sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
        rows = self._db.execute(sql, (recipient_id, limit)).fetchall()
        return [_row_to_notification(row) for row in rows]

    def unread_count(self, recipient_id: str) -> int:
        row = self._db.execute(
            "SELECT COUNT(*) FROM notifications WHERE recipient_id = ? AND read = 0",
            (recipient_id,),
        ).fetchone()
        return row[0]

    def mark_read(self, notification_id: int, recipient_id: str) -> Notification:
        """Mark one of the recipient's notifications as read.

        Raises:
            NotFound: If the notification does not exist or belongs to someone else.
        """
        cursor = self._db.execute(
            "UPDATE notifications SET read = 1 WHERE id = ? AND recipient_id = ?",
            (notification_id, recipient_id),
        )
        self._db.commit()
        if cursor.rowcount == 0:
            raise NotFound(f"Notification {notification_id} not found")
        notification = self.get(notification_id)
        assert notification is not None
        return notification
