"""In-memory alert history (newest first, bounded)."""

from __future__ import annotations

import itertools
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional

from rsi_scanner.infrastructure.utils.timeutils import utc_now
from rsi_scanner.models.alert_models import AlertEvent, Notification


class NotificationLog:
    def __init__(self, limit: int = 25) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = int(limit)
        self._items: Deque[Notification] = deque(maxlen=self.limit)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def extend(self, events: Iterable[AlertEvent]) -> List[Notification]:
        added: List[Notification] = []
        with self._lock:
            for ev in events:
                n = Notification(id=next(self._ids), event=ev, created_at=utc_now())
                self._items.appendleft(n)
                added.append(n)
        return added

    def list(self, limit: Optional[int] = None) -> List[Notification]:
        with self._lock:
            items = list(self._items)
        return items if limit is None else items[: max(0, limit)]

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._items if not n.read)

    def mark_all_read(self) -> None:
        with self._lock:
            for n in self._items:
                n.read = True

    def clear(self) -> int:
        with self._lock:
            n = len(self._items)
            self._items.clear()
        return n
