"""Connectivity state machine for the remote analysis path.

    CONNECTED --failure--> RETRYING --success--> CONNECTED
    RETRYING --3rd failed retry--> DEGRADED
    DEGRADED --probe due--> RETRYING (probe) --failure--> DEGRADED

Retries are never slept on. After a failure ``can_attempt`` returns False
until the next backoff delay (1 s, 2 s, 4 s) has elapsed; the calls that
arrive meanwhile run local-only. While DEGRADED a probe is allowed every
``probe_interval`` seconds.
"""

from __future__ import annotations

import time
from collections import deque
from enum import Enum
from threading import Lock
from typing import Callable, Optional

from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_BACKOFF = (1.0, 2.0, 4.0)
DEFAULT_PROBE_INTERVAL = 60.0


class ConnectivityState(str, Enum):
    CONNECTED = "connected"
    RETRYING = "retrying"
    DEGRADED = "degraded"


class ConnectivityStateMachine:
    """Tracks remote availability from call outcomes.

    Attributes:
        state: Current state
        failed_retries: Failed retries since entering RETRYING
        next_attempt_at: Clock time before which no attempt is allowed
        transitions: Recent (from, to, at) transitions, newest last
    """

    def __init__(
        self,
        backoff: tuple[float, ...] = DEFAULT_BACKOFF,
        probe_interval: float = DEFAULT_PROBE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not backoff:
            raise ValueError("backoff must contain at least one delay")
        self.backoff = tuple(backoff)
        self.probe_interval = probe_interval
        self._clock = clock
        self._lock = Lock()
        self.state = ConnectivityState.CONNECTED
        self.failed_retries = 0
        self.next_attempt_at = 0.0
        self._probing = False
        self.transitions: deque[tuple[ConnectivityState, ConnectivityState, float]] = deque(maxlen=64)

    @property
    def degraded(self) -> bool:
        return self.state is ConnectivityState.DEGRADED

    def can_attempt(self, now: Optional[float] = None) -> bool:
        """Whether a remote call may be made now. A due probe enters RETRYING."""
        now = self._now(now)
        with self._lock:
            if self.state is ConnectivityState.CONNECTED:
                return True
            if now < self.next_attempt_at:
                return False
            if self.state is ConnectivityState.DEGRADED:
                self._probing = True
                self._transition(ConnectivityState.RETRYING, now)
                logger.info("Probing remote analysis service")
            return True

    def record_success(self, now: Optional[float] = None) -> None:
        now = self._now(now)
        with self._lock:
            self.failed_retries = 0
            self.next_attempt_at = 0.0
            self._probing = False
            if self.state is not ConnectivityState.CONNECTED:
                self._transition(ConnectivityState.CONNECTED, now)
                logger.info("Remote analysis service reachable; connected")

    def record_failure(self, now: Optional[float] = None) -> None:
        now = self._now(now)
        with self._lock:
            if self.state is ConnectivityState.CONNECTED:
                self.failed_retries = 0
                self.next_attempt_at = now + self.backoff[0]
                self._transition(ConnectivityState.RETRYING, now)
                logger.debug(f"Remote call failed; retrying in {self.backoff[0]:.0f}s")
                return

            if self.state is ConnectivityState.DEGRADED:
                self.next_attempt_at = now + self.probe_interval
                return

            if self._probing:
                self._degrade(now)
                return

            self.failed_retries += 1
            if self.failed_retries >= len(self.backoff):
                self._degrade(now)
            else:
                delay = self.backoff[self.failed_retries]
                self.next_attempt_at = now + delay
                logger.debug(f"Remote retry {self.failed_retries} failed; retrying in {delay:.0f}s")

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "failed_retries": self.failed_retries,
            "next_attempt_at": self.next_attempt_at,
        }

    def _degrade(self, now: float) -> None:
        self._probing = False
        self.next_attempt_at = now + self.probe_interval
        self._transition(ConnectivityState.DEGRADED, now)
        logger.warning(
            f"Remote analysis unavailable; degraded to local-only mode "
            f"(next probe in {self.probe_interval:.0f}s)"
        )

    def _transition(self, to: ConnectivityState, now: float) -> None:
        self.transitions.append((self.state, to, now))
        self.state = to

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now
