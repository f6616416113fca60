"""Notifier collaborators receiving reservation lifecycle events."""

import logging
import threading
from typing import List, Protocol

from domain.models import LifecycleEvent


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Turns lifecycle events into messages for guests and staff."""

    def notify(self, event: LifecycleEvent) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes every event to the application log."""

    def __init__(self, logger_name: str = __name__):
        self.logger = logging.getLogger(logger_name)

    def notify(self, event: LifecycleEvent) -> None:
        reservation = event.reservation
        self.logger.info(
            f"Reservation {reservation.id} {event.kind.value.lower()}",
            extra={
                "event_kind": event.kind.value,
                "reservation_id": reservation.id,
                "restaurant_id": reservation.restaurant_id,
                "table_id": reservation.table_id,
                "status": reservation.status.value,
                "decline_reason": reservation.decline_reason,
            }
        )


class RecordingNotifier:
    """Keeps every event in memory; used by tests and local tooling."""

    def __init__(self):
        self.events: List[LifecycleEvent] = []
        self._lock = threading.Lock()

    def notify(self, event: LifecycleEvent) -> None:
        with self._lock:
            self.events.append(event)

    def kinds(self) -> list:
        with self._lock:
            return [event.kind for event in self.events]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()
