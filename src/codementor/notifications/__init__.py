"""Notification cache: TTL- and size-bounded record of surfaced patterns."""

from .cache import DEFAULT_MAX_BYTES, DEFAULT_TTL_SECONDS, NotificationCache
from .models import CacheAction, CacheEntry
from .persistence import SNAPSHOT_SCHEMA_VERSION, SnapshotStore

__all__ = [
    "CacheAction",
    "CacheEntry",
    "DEFAULT_MAX_BYTES",
    "DEFAULT_TTL_SECONDS",
    "NotificationCache",
    "SNAPSHOT_SCHEMA_VERSION",
    "SnapshotStore",
]
