"""AnalysisScheduler: bounded concurrency per workspace.

At most ``max_concurrent`` analyses run per workspace. Further requests
wait in a FIFO queue and take over a slot the moment one is released; a
request arriving when the queue already holds ``max_queue_depth`` waiters
gets QueueOverflowError.

Under sustained load (queue depth or job latency above their thresholds)
the debounce interval the engine waits before analyzing grows, doubling
from 250 ms up to ``max_debounce_ms``. It halves back toward the base
interval once load drops. Work is delayed, never dropped.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Callable

from ..exceptions import QueueOverflowError
from ..logging_config import get_logger

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = get_logger(__name__)

MIN_LOADED_DEBOUNCE_MS = 250.0
LATENCY_SMOOTHING = 0.3


@dataclass
class _Workspace:
    running: int = 0
    waiters: deque = field(default_factory=deque)
    debounce_ms: float = 0.0
    latency_ms: float = 0.0
    completed: int = 0
    overflowed: int = 0


class AnalysisScheduler:
    """Per-workspace slot admission with a FIFO wait queue.

    Usage:
        async with scheduler.slot("workspace"):
            ...  # run one analysis
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        max_queue_depth: int = 32,
        base_debounce_ms: float = 0.0,
        max_debounce_ms: float = 5000.0,
        load_queue_threshold: int = 3,
        load_latency_threshold_ms: float = 1000.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_concurrent = max_concurrent
        self.max_queue_depth = max_queue_depth
        self.base_debounce_ms = base_debounce_ms
        self.max_debounce_ms = max_debounce_ms
        self.load_queue_threshold = load_queue_threshold
        self.load_latency_threshold_ms = load_latency_threshold_ms
        self._clock = clock
        self._workspaces: dict[str, _Workspace] = {}

    def configure(self, config: EngineConfig) -> None:
        """Apply the scheduling fields of a fresh config snapshot."""
        self.max_concurrent = config.max_concurrent_jobs
        self.max_queue_depth = config.max_queue_depth
        self.base_debounce_ms = config.base_debounce_ms
        self.max_debounce_ms = config.max_debounce_ms
        self.load_queue_threshold = config.load_queue_threshold
        self.load_latency_threshold_ms = config.load_latency_threshold_ms

    @asynccontextmanager
    async def slot(self, workspace: str) -> AsyncIterator[None]:
        await self.acquire(workspace)
        started = self._clock()
        try:
            yield
        finally:
            self.release(workspace, (self._clock() - started) * 1000.0)

    async def acquire(self, workspace: str) -> None:
        """Wait for a slot in ``workspace``.

        Raises:
            QueueOverflowError: If the wait queue is full
        """
        ws = self._workspace(workspace)
        if ws.running < self.max_concurrent and not ws.waiters:
            ws.running += 1
            logger.debug(f"[{workspace}] admitted ({ws.running}/{self.max_concurrent} running)")
            return

        if len(ws.waiters) >= self.max_queue_depth:
            ws.overflowed += 1
            raise QueueOverflowError(workspace, len(ws.waiters))

        waiter = asyncio.get_running_loop().create_future()
        ws.waiters.append(waiter)
        self._adapt(ws)
        logger.debug(f"[{workspace}] queued at position {len(ws.waiters)}")
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over before the cancellation landed
                self._hand_over(ws)
            else:
                try:
                    ws.waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self, workspace: str, latency_ms: float | None = None) -> None:
        ws = self._workspace(workspace)
        if latency_ms is not None:
            ws.completed += 1
            if ws.completed == 1:
                ws.latency_ms = latency_ms
            else:
                ws.latency_ms += LATENCY_SMOOTHING * (latency_ms - ws.latency_ms)
        self._hand_over(ws)
        self._adapt(ws)

    def debounce_seconds(self, workspace: str) -> float:
        ws = self._workspaces.get(workspace)
        if ws is None:
            return self.base_debounce_ms / 1000.0
        return max(ws.debounce_ms, self.base_debounce_ms) / 1000.0

    def running(self, workspace: str) -> int:
        ws = self._workspaces.get(workspace)
        return ws.running if ws is not None else 0

    def queued(self, workspace: str) -> int:
        ws = self._workspaces.get(workspace)
        return len(ws.waiters) if ws is not None else 0

    def stats(self, workspace: str) -> dict:
        ws = self._workspace(workspace)
        return {
            "running": ws.running,
            "queued": len(ws.waiters),
            "debounce_ms": max(ws.debounce_ms, self.base_debounce_ms),
            "latency_ms": round(ws.latency_ms, 2),
            "completed": ws.completed,
            "overflowed": ws.overflowed,
        }

    def _workspace(self, workspace: str) -> _Workspace:
        ws = self._workspaces.get(workspace)
        if ws is None:
            ws = self._workspaces[workspace] = _Workspace(debounce_ms=self.base_debounce_ms)
        return ws

    def _hand_over(self, ws: _Workspace) -> None:
        """Give a freed slot to the oldest live waiter, or free it."""
        while ws.waiters:
            waiter = ws.waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        ws.running = max(0, ws.running - 1)

    def _adapt(self, ws: _Workspace) -> None:
        loaded = (
            len(ws.waiters) >= self.load_queue_threshold
            or ws.latency_ms > self.load_latency_threshold_ms
        )
        previous = ws.debounce_ms
        if loaded:
            grown = max(ws.debounce_ms * 2, MIN_LOADED_DEBOUNCE_MS, self.base_debounce_ms)
            ws.debounce_ms = min(grown, self.max_debounce_ms)
        else:
            shrunk = ws.debounce_ms / 2
            ws.debounce_ms = shrunk if shrunk >= max(MIN_LOADED_DEBOUNCE_MS, self.base_debounce_ms) else self.base_debounce_ms
        if ws.debounce_ms != previous:
            logger.debug(f"Debounce interval {previous:.0f}ms -> {ws.debounce_ms:.0f}ms")
