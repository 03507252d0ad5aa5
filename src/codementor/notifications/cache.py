"""Notification cache: decides whether a pattern was already surfaced.

Entries are kept in an insertion-ordered map with a running byte estimate.
Mutations (insert, touch, evict) are serialized by one re-entrant lock;
``should_suppress`` reads without taking it.

Suppression rules:
- A dismissed entry suppresses forever.
- Otherwise an entry suppresses until ``created_at + ttl`` (exclusive).
- Expired entries stop suppressing at once, whether or not they have been
  physically removed yet.

Size rule: after every insert, while the estimate exceeds ``max_bytes`` the
oldest entry is evicted. The entry just inserted is only evicted when it
alone exceeds the cap.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from threading import RLock
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..exceptions import CacheCorruptionError
from ..logging_config import get_logger
from .models import CacheAction, CacheEntry
from .persistence import SnapshotStore

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 7 * 86400
DEFAULT_MAX_BYTES = 10 * 1024 * 1024

Clock = Callable[[], float]


class NotificationCache:
    """TTL- and size-bounded store of surfaced pattern identities.

    Usage:
        cache = NotificationCache()
        if not cache.check_and_record(file, identity, "shown"):
            render(pattern)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_bytes: int = DEFAULT_MAX_BYTES,
        store: Optional[SnapshotStore] = None,
        autosave_every: int = 50,
        clock: Clock = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_bytes = max_bytes
        self._store = store
        self._autosave_every = autosave_every
        self._clock = clock
        self._entries: OrderedDict[tuple[str, str], CacheEntry] = OrderedDict()
        self._size = 0
        self._dirty = 0
        self._lock = RLock()
        if store is not None:
            self._load()

    @classmethod
    def from_config(cls, config: EngineConfig, clock: Clock = time.time) -> NotificationCache:
        store = SnapshotStore(config.cache_dir) if config.cache_dir else None
        return cls(
            ttl_seconds=config.cache_ttl_seconds,
            max_bytes=config.cache_max_bytes,
            store=store,
            autosave_every=config.cache_autosave_every,
            clock=clock,
        )

    # -- reads ---------------------------------------------------------------

    def should_suppress(self, file: str, identity: str, now: Optional[float] = None) -> bool:
        entry = self._entries.get((file, identity))
        if entry is None:
            return False
        return entry.suppresses(self._now(now))

    def get(self, file: str, identity: str) -> Optional[CacheEntry]:
        return self._entries.get((file, identity))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def size_bytes(self) -> int:
        return self._size

    def stats(self, now: Optional[float] = None) -> dict[str, Any]:
        now = self._now(now)
        with self._lock:
            entries = list(self._entries.values())
        return {
            "entries": len(entries),
            "bytes": self._size,
            "max_bytes": self.max_bytes,
            "dismissed": sum(1 for e in entries if e.dismissed),
            "expired": sum(1 for e in entries if not e.dismissed and e.is_expired(now)),
            "persistent": self._store is not None,
            "directory": self._store.directory if self._store is not None else None,
        }

    # -- mutations -----------------------------------------------------------

    def new_entry(self, file: str, identity: str, kind: str = "", now: Optional[float] = None) -> CacheEntry:
        return CacheEntry.create(file, identity, self._now(now), self.ttl_seconds, kind)

    def record_shown(self, entry: CacheEntry, now: Optional[float] = None) -> CacheEntry:
        """Insert ``entry`` as shown, or touch a live entry with the same key."""
        now = self._now(now)
        with self._lock:
            existing = self._entries.get(entry.key)
            if existing is not None and existing.suppresses(now):
                stored = existing.mark_shown()
                self._replace(stored)
            else:
                stored = entry.mark_shown()
                self._insert(stored)
            self._mutated()
            return stored

    def record_dismissed(self, entry: CacheEntry, now: Optional[float] = None) -> CacheEntry:
        """Mark the identity dismissed. Dismissal is permanent."""
        now = self._now(now)
        with self._lock:
            existing = self._entries.get(entry.key)
            if existing is not None and existing.suppresses(now):
                stored = existing.mark_dismissed()
                self._replace(stored)
            else:
                stored = entry.mark_dismissed()
                self._insert(stored)
            self._mutated()
            return stored

    def check_and_record(
        self,
        file: str,
        identity: str,
        action: CacheAction | str = CacheAction.SHOWN,
        kind: str = "",
        now: Optional[float] = None,
    ) -> bool:
        """Return whether the identity was suppressed, then record ``action``.

        A shown action on a suppressed identity records nothing.
        """
        action = CacheAction(action)
        now = self._now(now)
        with self._lock:
            suppressed = self.should_suppress(file, identity, now)
            if action is CacheAction.DISMISSED:
                self.record_dismissed(self.new_entry(file, identity, kind, now), now)
            elif not suppressed:
                self.record_shown(self.new_entry(file, identity, kind, now), now)
        logger.debug(f"{file}: {identity[:12]} {action.value}, suppressed={suppressed}")
        return suppressed

    def evict_expired(self, now: Optional[float] = None) -> int:
        """Physically remove expired, non-dismissed entries."""
        now = self._now(now)
        with self._lock:
            expired = [key for key, e in self._entries.items() if not e.dismissed and e.is_expired(now)]
            for key in expired:
                self._remove(key)
            if expired:
                self._mutated()
        return len(expired)

    def evict_to_size_limit(self) -> int:
        """Evict oldest entries until the estimate is within ``max_bytes``."""
        with self._lock:
            evicted = 0
            while self._size > self.max_bytes and self._entries:
                key = next(iter(self._entries))
                self._remove(key)
                evicted += 1
            if evicted:
                self._mutated()
        return evicted

    def resize(self, max_bytes: int) -> int:
        """Change the byte cap and evict down to it at once."""
        with self._lock:
            self.max_bytes = max_bytes
            return self.evict_to_size_limit()

    def forget_file(self, file: str) -> int:
        """Drop every entry of ``file``, dismissed ones included."""
        with self._lock:
            keys = [key for key in self._entries if key[0] == file]
            for key in keys:
                self._remove(key)
            if keys:
                self._mutated()
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._size = 0
            if self._store is not None:
                self._store.clear()
            self._dirty = 0

    def flush(self) -> None:
        """Write a snapshot to the persistent store, if there is one."""
        if self._store is None:
            return
        with self._lock:
            snapshot = [entry.to_dict() for entry in self._entries.values()]
            self._dirty = 0
        try:
            self._store.save(snapshot)
        except Exception as e:
            logger.warning(f"Cache snapshot failed: {e}")

    def close(self) -> None:
        self.flush()
        if self._store is not None:
            self._store.close()

    # -- internals -----------------------------------------------------------

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def _insert(self, entry: CacheEntry) -> None:
        if entry.key in self._entries:
            self._remove(entry.key)
        self._entries[entry.key] = entry
        self._size += entry.estimated_size()

        while self._size > self.max_bytes and self._entries:
            oldest = next(iter(self._entries))
            if oldest == entry.key:
                logger.warning(
                    f"Cache entry of {entry.estimated_size()} bytes exceeds the "
                    f"{self.max_bytes}-byte cap; not kept"
                )
            self._remove(oldest)

    def _replace(self, entry: CacheEntry) -> None:
        """Update an entry in place, keeping its position."""
        old = self._entries[entry.key]
        self._entries[entry.key] = entry
        self._size += entry.estimated_size() - old.estimated_size()

    def _remove(self, key: tuple[str, str]) -> None:
        entry = self._entries.pop(key)
        self._size -= entry.estimated_size()

    def _mutated(self) -> None:
        if self._store is None:
            return
        self._dirty += 1
        if self._dirty >= self._autosave_every:
            self.flush()

    def _load(self) -> None:
        assert self._store is not None
        try:
            raw = self._store.load() or []
            entries = [CacheEntry.from_dict(item) for item in raw]
        except CacheCorruptionError as e:
            logger.warning(f"{e}; starting with an empty notification cache")
            self._reset_store()
            return
        except (KeyError, TypeError, ValueError) as e:
            error = CacheCorruptionError(self._store.directory, f"invalid entry: {e}")
            logger.warning(f"{error}; starting with an empty notification cache")
            self._reset_store()
            return

        with self._lock:
            for entry in entries:
                self._insert(entry)
        logger.debug(f"Loaded {len(self._entries)} cache entries from {self._store.directory}")

    def _reset_store(self) -> None:
        self._entries.clear()
        self._size = 0
        try:
            self._store.clear()  # type: ignore[union-attr]
        except Exception as e:
            logger.warning(f"Cache reset failed: {e}")
