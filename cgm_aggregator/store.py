"""Single owner of the published snapshot, with change notification."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .models import MetabolicSnapshot

SnapshotListener = Callable[[MetabolicSnapshot], None]


class SnapshotStore:
    """Holds the current :class:`MetabolicSnapshot` and notifies subscribers.

    Swaps are atomic under a lock; listeners run after the lock is released,
    in subscription order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[MetabolicSnapshot] = None
        self._listeners: list[SnapshotListener] = []

    @property
    def current(self) -> Optional[MetabolicSnapshot]:
        with self._lock:
            return self._current

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""

        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, snapshot: MetabolicSnapshot) -> bool:
        """Swap in ``snapshot`` unless a newer sequence is already published."""

        with self._lock:
            if self._current is not None and snapshot.sequence < self._current.sequence:
                logging.info(
                    f"Discarding snapshot #{snapshot.sequence}; #{self._current.sequence} already published"
                )
                return False
            self._current = snapshot
            listeners = list(self._listeners)

        for listener in listeners:
            listener(snapshot)
        return True
