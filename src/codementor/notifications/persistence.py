"""Persistent snapshots of the notification cache.

Uses diskcache for SQLite-backed storage. The whole store is written as
one JSON snapshot with a schema version and a SHA-256 checksum, so a
truncated or hand-edited snapshot is detected on load.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional

from diskcache import Cache

from ..exceptions import CacheCorruptionError
from ..logging_config import get_logger

logger = get_logger(__name__)

SNAPSHOT_KEY = "notification-cache"
SNAPSHOT_SCHEMA_VERSION = 1


class SnapshotStore:
    """diskcache-backed store for cache snapshots."""

    def __init__(self, directory: str) -> None:
        self.directory = directory
        self._cache = Cache(directory)
        logger.debug(f"Snapshot store initialized at {directory}")

    def save(self, entries: list[dict[str, Any]]) -> None:
        payload = json.dumps(
            {"schema_version": SNAPSHOT_SCHEMA_VERSION, "entries": entries},
            separators=(",", ":"),
            sort_keys=True,
        )
        record = {"checksum": _checksum(payload), "payload": payload}
        self._cache.set(SNAPSHOT_KEY, record)
        logger.debug(f"Saved snapshot with {len(entries)} entries")

    def load(self) -> Optional[list[dict[str, Any]]]:
        """Return the saved entries, or None when nothing was saved.

        Raises:
            CacheCorruptionError: If the snapshot cannot be trusted
        """
        try:
            record = self._cache.get(SNAPSHOT_KEY)
        except Exception as e:
            raise CacheCorruptionError(self.directory, f"unreadable snapshot: {e}") from e
        if record is None:
            return None

        if not isinstance(record, dict) or "payload" not in record or "checksum" not in record:
            raise CacheCorruptionError(self.directory, "malformed snapshot record")
        payload = record["payload"]
        if not isinstance(payload, str) or _checksum(payload) != record["checksum"]:
            raise CacheCorruptionError(self.directory, "checksum mismatch")

        try:
            data = json.loads(payload)
        except ValueError as e:
            raise CacheCorruptionError(self.directory, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CacheCorruptionError(self.directory, "snapshot is not a JSON object")
        if data.get("schema_version") != SNAPSHOT_SCHEMA_VERSION:
            raise CacheCorruptionError(
                self.directory, f"unsupported schema version {data.get('schema_version')!r}"
            )
        entries = data.get("entries")
        if not isinstance(entries, list):
            raise CacheCorruptionError(self.directory, "entries missing")
        return entries

    def clear(self) -> None:
        self._cache.clear()

    def volume(self) -> int:
        """Bytes used on disk."""
        return self._cache.volume()

    def close(self) -> None:
        self._cache.close()


def _checksum(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
