from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List

from pastebin_server.clipboard.models import Entry

DEFAULT_CAPACITY = 10


class BoundedClipboard:
    """Thread-safe FIFO clipboard that evicts the oldest entry when full."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        capacity = int(capacity)
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self._capacity = capacity
        # maxlen=0 discards every append, which is the always-empty store.
        self._queue: Deque[Entry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def add(self, entry: Entry) -> None:
        with self._lock:
            if self._capacity and len(self._queue) == self._capacity:
                self._queue.popleft()
            self._queue.append(entry)

    def snapshot(self) -> List[Entry]:
        with self._lock:
            return list(self._queue)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)
