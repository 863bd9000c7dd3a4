"""Registry of live notification sessions per user."""

import logging
import threading
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class NotificationSession(Protocol):
    """A push channel to one connected client, e.g. a FastAPI WebSocket."""

    async def send_json(self, data: Any) -> None: ...


class SessionRegistry:
    """Tracks which sessions belong to which user.

    A user may hold several sessions at once (several tabs or devices); each
    receives every push.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, list[NotificationSession]] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, session: NotificationSession) -> None:
        with self._lock:
            sessions = self._sessions.setdefault(user_id, [])
            if session not in sessions:
                sessions.append(session)
        logger.info("Notification session registered for user %s", user_id)

    def unregister(self, user_id: str, session: NotificationSession) -> None:
        with self._lock:
            sessions = self._sessions.get(user_id, [])
            if session in sessions:
                sessions.remove(session)
            if not sessions:
                self._sessions.pop(user_id, None)
        logger.info("Notification session unregistered for user %s", user_id)

    def lookup(self, user_id: str) -> list[NotificationSession]:
        """Sessions currently open for a user, possibly empty."""
        with self._lock:
            return list(self._sessions.get(user_id, []))

    @property
    def connection_count(self) -> int:
        with self._lock:
            return sum(len(sessions) for sessions in self._sessions.values())
