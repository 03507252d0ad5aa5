"""Notification cache models."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any


class CacheAction(str, Enum):
    SHOWN = "shown"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class CacheEntry:
    """Record that a pattern identity was surfaced (or dismissed) in a file.

    Attributes:
        file: File identifier
        identity: Pattern identity
        created_at: Creation time, seconds since the epoch
        expires_at: ``created_at`` plus the TTL
        dismissed: Dismissed entries suppress forever
        shown: The pattern has been rendered at least once
        kind: Pattern kind, informational
    """

    file: str
    identity: str
    created_at: float
    expires_at: float
    dismissed: bool = False
    shown: bool = False
    kind: str = ""

    @classmethod
    def create(cls, file: str, identity: str, now: float, ttl_seconds: float, kind: str = "") -> CacheEntry:
        return cls(file=file, identity=identity, created_at=now, expires_at=now + ttl_seconds, kind=kind)

    @property
    def key(self) -> tuple[str, str]:
        return (self.file, self.identity)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def suppresses(self, now: float) -> bool:
        return self.dismissed or not self.is_expired(now)

    def mark_shown(self) -> CacheEntry:
        return self if self.shown else replace(self, shown=True)

    def mark_dismissed(self) -> CacheEntry:
        return self if self.dismissed else replace(self, dismissed=True)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            file=str(data["file"]),
            identity=str(data["identity"]),
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
            dismissed=bool(data.get("dismissed", False)),
            shown=bool(data.get("shown", False)),
            kind=str(data.get("kind", "")),
        )

    def estimated_size(self) -> int:
        """Bytes this entry takes in a serialized snapshot."""
        return len(json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8"))
