"""Runtime exceptions: remote availability, scheduling, cache integrity."""

from typing import Optional

from .base import CodementorError


class RemoteUnavailableError(CodementorError):
    """The remote analysis path failed or timed out."""

    def __init__(self, operation: str, reason: str, timeout: Optional[float] = None):
        details = {"operation": operation, "reason": reason}
        if timeout is not None:
            details["timeout"] = f"{timeout}s"
        super().__init__(f"Remote {operation} unavailable", details=details)
        self.operation = operation
        self.reason = reason
        self.timeout = timeout


class QueueOverflowError(CodementorError):
    """The workspace queue is full; the caller should retry later."""

    def __init__(self, workspace: str, depth: int):
        super().__init__(
            f"Analysis queue full for workspace {workspace}",
            details={"workspace": workspace, "depth": str(depth)},
        )
        self.workspace = workspace
        self.depth = depth


class CacheCorruptionError(CodementorError):
    """Persisted notification cache data failed validation."""

    def __init__(self, location: str, reason: str):
        super().__init__(
            f"Notification cache corrupted at {location}",
            details={"location": location, "reason": reason},
        )
        self.location = location
        self.reason = reason


class InvalidRequestError(CodementorError):
    """A payload at the JSON boundary is malformed."""

    def __init__(self, reason: str, field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(f"Invalid request: {reason}", details=details)
        self.reason = reason
        self.field = field
