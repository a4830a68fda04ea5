"""Short-lived cache of loaded user contexts.

The orchestrator loads a user's profile, latest health score, concerns and
recent interactions on every chat message. Contexts are reused for a few
minutes and dropped as soon as a new interaction is recorded.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from unmask.intent import UserContext


class UserContextCache:
    """Thread-safe per-user cache with a fixed time-to-live.

    When more than ``max_users`` contexts are held, the one stored longest
    ago is dropped.
    """

    def __init__(self, ttl_seconds: float = 300.0, max_users: int = 256) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_users = max_users
        self._entries: OrderedDict[str, tuple[UserContext, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, user_id: str) -> UserContext | None:
        """Cached context for ``user_id``, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is not None:
                context, stored_at = entry
                if time.monotonic() - stored_at < self.ttl_seconds:
                    self._hits += 1
                    return context
                del self._entries[user_id]
            self._misses += 1
            return None

    def put(self, user_id: str, context: UserContext) -> None:
        with self._lock:
            self._entries.pop(user_id, None)
            self._entries[user_id] = (context, time.monotonic())
            while len(self._entries) > self.max_users:
                self._entries.popitem(last=False)

    def invalidate(self, user_id: str | None = None) -> None:
        """Forget one user's context, or every context when ``user_id`` is None."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
            else:
                self._entries.pop(user_id, None)

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            entry = self._entries.get(user_id)
            return entry is not None and time.monotonic() - entry[1] < self.ttl_seconds

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_users": self.max_users,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }


__all__ = ["UserContextCache"]
