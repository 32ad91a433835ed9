"""Per session memory of the last assistant action, so the UI can offer to resume it"""
from __future__ import annotations
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from .models import LastIntent

MAX_AGE_SECONDS = 24 * 60 * 60


class IntentStore(ABC):
    @abstractmethod
    def save(self, session_id: str, intent: LastIntent) -> None: ...

    @abstractmethod
    def load(self, session_id: str) -> Optional[LastIntent]: ...

    @abstractmethod
    def clear(self, session_id: str) -> None: ...


class InMemoryIntentStore(IntentStore):
    """Process local store; stale entries are dropped when read and on every save"""

    def __init__(self, max_age: float = MAX_AGE_SECONDS, clock: Callable[[], float] = time.time):
        self.max_age = max_age
        self.clock = clock
        self._items: Dict[str, LastIntent] = {}
        self._lock = threading.Lock()

    def _expired(self, intent: LastIntent, now: float) -> bool:
        return intent.ts <= 0 or now - intent.ts > self.max_age

    def save(self, session_id: str, intent: LastIntent) -> None:
        with self._lock:
            now = self.clock()
            # Sessions that never come back would otherwise stay forever
            stale = [sid for sid, it in self._items.items() if self._expired(it, now)]
            for sid in stale:
                del self._items[sid]
            self._items[session_id] = intent

    def load(self, session_id: str) -> Optional[LastIntent]:
        with self._lock:
            intent = self._items.get(session_id)
            if intent is None:
                return None
            if self._expired(intent, self.clock()):
                del self._items[session_id]
                return None
            return intent

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(session_id, None)
