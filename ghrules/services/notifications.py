"""
Notification Center
===================

Collects user-visible signals raised by refused or failed operations (a
failed save, a refused delete, a validation error) and publishes each one on
the event bus so a front end can display it.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional

from ghrules.enums.events import NotificationEvent, NotificationSeverity
from ghrules.schemas.events import NotificationPayload
from ghrules.utils.event_bus import EventBus

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Bounded history of user notices, mirrored onto the event bus."""

    def __init__(self, event_bus: Optional[EventBus] = None, history_size: int = 50) -> None:
        self.event_bus = event_bus
        self._history: Deque[NotificationPayload] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def notify(
        self,
        message: str,
        *,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        context: Optional[str] = None,
    ) -> NotificationPayload:
        notice = NotificationPayload(
            severity=severity,
            message=message,
            context=context,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        logger.debug("User notice [%s] %s (%s)", severity, message, context)
        with self._lock:
            self._history.append(notice)
        if self.event_bus is not None:
            self.event_bus.publish(NotificationEvent.USER_NOTICE, notice)
        return notice

    def error(self, message: str, context: Optional[str] = None) -> NotificationPayload:
        return self.notify(message, severity=NotificationSeverity.ERROR, context=context)

    def warning(self, message: str, context: Optional[str] = None) -> NotificationPayload:
        return self.notify(message, severity=NotificationSeverity.WARNING, context=context)

    def info(self, message: str, context: Optional[str] = None) -> NotificationPayload:
        return self.notify(message, severity=NotificationSeverity.INFO, context=context)

    @property
    def history(self) -> List[NotificationPayload]:
        with self._lock:
            return list(self._history)

    @property
    def latest(self) -> Optional[NotificationPayload]:
        with self._lock:
            return self._history[-1] if self._history else None

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
