"""Per-table mutual exclusion for admission attempts."""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from domain.exceptions import InfrastructureError


logger = logging.getLogger(__name__)

TableKey = Tuple[int, str]


class TableLockRegistry:
    """
    Hands out one lock per (restaurant_id, table_id).

    Admission attempts for the same table run one at a time; attempts for
    different tables proceed in parallel. Locks are created on first use and
    kept for the life of the registry, one per table ever booked.
    """

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[TableKey, threading.Lock] = {}
        self._lock = threading.Lock()

    def _get(self, key: TableKey) -> threading.Lock:
        with self._lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, restaurant_id: int, table_id: str) -> Iterator[None]:
        """
        Hold the table lock for the duration of the block.

        Raises:
            InfrastructureError: If the lock is not acquired within the timeout
        """
        lock = self._get((restaurant_id, table_id))
        if not lock.acquire(timeout=self.timeout_seconds):
            logger.error(
                f"Timed out waiting for table lock {restaurant_id}/{table_id}"
            )
            raise InfrastructureError(
                "Timed out waiting for the table to become available for booking"
            )
        try:
            yield
        finally:
            lock.release()
