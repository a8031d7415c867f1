"""Bounded, session-only log of user-facing action outcomes."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_CAPACITY = 20


@dataclass(frozen=True)
class AuditEntry:
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"


class AuditLog:
    """Append-only ring buffer keeping the most recent `capacity` entries."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: deque[AuditEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, message: str) -> AuditEntry:
        """Timestamp and store a message, evicting the oldest on overflow."""
        entry = AuditEntry(message=message)
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def lines(self) -> list[str]:
        return [entry.format() for entry in self.entries()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
