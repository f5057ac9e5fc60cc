"""
Table change notifications and the caches that listen to them.

Services call change_feed.notify(table) after a successful mutation. A
Supabase realtime listener, when one is deployed, calls the same method.
Subscribers drop what they cached; nothing is merged.
"""

import logging
import threading
import time
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from app.config import settings

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class ChangeFeed:
    def __init__(self):
        self._subscribers: Dict[str, List[ChangeCallback]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, tables: Iterable[str], callback: ChangeCallback) -> Callable[[], None]:
        """Register callback for each table; returns a function that unsubscribes it."""
        tables = list(tables)
        with self._lock:
            for table in tables:
                self._subscribers[table].append(callback)

        def unsubscribe():
            with self._lock:
                for table in tables:
                    if callback in self._subscribers[table]:
                        self._subscribers[table].remove(callback)

        return unsubscribe

    def notify(self, table: str) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(table, []))
        for callback in callbacks:
            try:
                callback(table)
            except Exception:
                logger.exception("Change callback failed for table %s", table)


class AccessCache:
    """Short TTL cache of resolved module access, keyed by user id."""

    WATCHED_TABLES = (
        "user_roles",
        "role_module_access",
        "custom_role_module_access",
        "user_module_access",
        "module_definitions",
        "workspace_module_access",
    )

    def __init__(self, ttl_seconds: int = 60, max_size: int = 1000):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def bind(self, feed: ChangeFeed) -> Callable[[], None]:
        return feed.subscribe(self.WATCHED_TABLES, self.invalidate)

    def get(self, user_id: str) -> Optional[Any]:
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            value, expiry = entry
            if now >= expiry:
                del self._entries[user_id]
                return None
            return value

    def set(self, user_id: str, value: Any) -> None:
        with self._lock:
            if len(self._entries) >= self.max_size and user_id not in self._entries:
                return
            self._entries[user_id] = (value, time.monotonic() + self.ttl_seconds)

    def invalidate(self, table: Optional[str] = None) -> None:
        # Any watched table can change anyone's access; drop everything
        with self._lock:
            self._entries.clear()
        logger.debug("Access cache cleared (table=%s)", table)

    def __len__(self) -> int:
        return len(self._entries)


change_feed = ChangeFeed()


def _build_access_cache() -> AccessCache:
    cache = AccessCache(
        ttl_seconds=settings.access_cache_ttl_seconds,
        max_size=settings.access_cache_max_size,
    )
    cache.bind(change_feed)
    return cache


access_cache = _build_access_cache()


def get_change_feed() -> ChangeFeed:
    return change_feed


def get_access_cache() -> AccessCache:
    return access_cache
