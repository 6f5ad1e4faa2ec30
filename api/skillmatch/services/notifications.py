from __future__ import annotations

import logging
from typing import Protocol

from ..database import SessionLocal
from .events import enqueue_notification

logger = logging.getLogger(__name__)

NEW_MATCHES = "new-matches"


class Notifier(Protocol):
    def emit(self, user_id: str, kind: str, count: int) -> None: ...


class LoggingNotifier:
    def emit(self, user_id: str, kind: str, count: int) -> None:
        logger.info("[notify] user_id=%s kind=%s count=%s", user_id, kind, count)


class OutboxNotifier:
    """Queues the signal in notification_outbox for the delivery worker; carries the count only."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def emit(self, user_id: str, kind: str, count: int) -> None:
        with self._session_factory() as db:
            enqueue_notification(db, user_id=user_id, kind=kind, payload={"count": int(count)})
            db.commit()


def notify_new_matches(notifier: Notifier, user_id: str, count: int) -> bool:
    try:
        notifier.emit(user_id, NEW_MATCHES, count)
        return True
    except Exception:
        logger.exception("[notify] failed to send match notification user_id=%s", user_id)
        return False
