"""AnalysisEngine: the two calls the host makes.

    analyze(file, language, code, changed_ranges)  -> AnalysisResult
    check_and_record(file, identity, action)       -> suppressed

One ``analyze`` call runs:
    tracker.record_edit -> debounce -> per-file lock -> scheduler slot
    -> parse (incremental) -> detect -> classify -> category/mode filter
    -> optional remote refinement -> notification-cache filter

The configuration provider is called on every ``analyze``, so changed
settings apply on the next call. ``analyze`` never raises for malformed
input: a file that cannot be parsed at all yields no patterns and status
"unparsable", a full queue yields "retry_later" and a job overtaken by a
newer revision of the same file yields "superseded".
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .classification import ClassifiedPattern, IssueClassifier
from .config import ConfigProvider, EngineConfig, static_provider
from .detection import DetectionSettings, PatternDetector, Severity
from .exceptions import AnalysisSupersededError, QueueOverflowError
from .logging_config import get_logger
from .notifications import CacheAction, NotificationCache
from .scanning import AstParser, SyntaxTree
from .scheduling import AnalysisScheduler, ConnectivityStateMachine, RemoteAssistClient, RemoteGateway
from .tracking import LineRange, SourceBufferTracker, SourceRevision

logger = get_logger(__name__)

SCHEMA_VERSION = "1.0"
DEFAULT_WORKSPACE = "default"

STATUS_OK = "ok"
STATUS_LIMITED = "limited"
STATUS_UNPARSABLE = "unparsable"
STATUS_SUPERSEDED = "superseded"
STATUS_RETRY_LATER = "retry_later"


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one ``analyze`` call.

    Attributes:
        file: File identifier
        language: Language the file was analyzed as
        revision: Tracker revision that was analyzed
        status: ok, limited, unparsable, superseded or retry_later
        patterns: Classified patterns not suppressed by the cache
        analysis_time_ms: Wall time of the call
        degraded: True while the remote path is unavailable
        suppressed: Patterns dropped because they were already surfaced
        backend: Parser backend used
        connectivity: Remote connectivity state, "local" without an endpoint
    """

    file: str
    language: str
    revision: int
    status: str
    patterns: tuple[ClassifiedPattern, ...] = ()
    analysis_time_ms: float = 0.0
    degraded: bool = False
    suppressed: int = 0
    backend: str = "none"
    connectivity: str = "local"
    schema_version: str = field(default=SCHEMA_VERSION)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "file": self.file,
            "language": self.language,
            "revision": self.revision,
            "status": self.status,
            "patterns": [pattern.to_dict() for pattern in self.patterns],
            "analysisTimeMs": round(self.analysis_time_ms, 3),
            "degraded": self.degraded,
            "suppressed": self.suppressed,
            "backend": self.backend,
            "connectivity": self.connectivity,
        }


class AnalysisEngine:
    """Turns source text into classified, de-duplicated learning moments.

    Usage:
        engine = AnalysisEngine(file_provider())
        result = await engine.analyze("app.py", "python", code)
        for pattern in result.patterns:
            if not engine.check_and_record(result.file, pattern.identity, "shown"):
                render(pattern)
    """

    def __init__(
        self,
        config_provider: Optional[ConfigProvider] = None,
        *,
        tracker: Optional[SourceBufferTracker] = None,
        parser: Optional[AstParser] = None,
        detector: Optional[PatternDetector] = None,
        classifier: Optional[IssueClassifier] = None,
        cache: Optional[NotificationCache] = None,
        scheduler: Optional[AnalysisScheduler] = None,
        gateway: Optional[RemoteGateway] = None,
    ) -> None:
        self._config_provider = config_provider or static_provider()
        config = self._config_provider()
        self.tracker = tracker or SourceBufferTracker()
        self.parser = parser or AstParser()
        self.detector = detector or PatternDetector()
        self.classifier = classifier or IssueClassifier()
        self.cache = cache or NotificationCache.from_config(config)
        self.scheduler = scheduler or AnalysisScheduler()
        self.scheduler.configure(config)
        self._owns_gateway = gateway is None
        self.gateway = gateway or _gateway_for(config)
        self._trees: dict[str, SyntaxTree] = {}
        self._file_locks: dict[str, asyncio.Lock] = {}
        self._locks_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def config(self) -> EngineConfig:
        return self._config_provider()

    async def analyze(
        self,
        file: str,
        language: str,
        code: str,
        changed_ranges: Optional[Iterable[tuple[int, int] | LineRange]] = None,
        workspace: str = DEFAULT_WORKSPACE,
    ) -> AnalysisResult:
        started = time.perf_counter()
        config = self._config_provider()
        await self._apply_config(config)
        revision = self.tracker.record_edit(file, code, changed_ranges, language)

        def finish(status: str, patterns: tuple = (), suppressed: int = 0, backend: str = "none") -> AnalysisResult:
            return AnalysisResult(
                file=file,
                language=language,
                revision=revision.revision,
                status=status,
                patterns=patterns,
                analysis_time_ms=(time.perf_counter() - started) * 1000.0,
                degraded=self.gateway.degraded,
                suppressed=suppressed,
                backend=backend,
                connectivity=self.gateway.machine.state.value if self.gateway.enabled else "local",
            )

        delay = self.scheduler.debounce_seconds(workspace)
        if delay > 0:
            await asyncio.sleep(delay)
            if not self.tracker.is_current(revision):
                logger.debug(f"{file}@{revision.revision}: superseded while debouncing")
                return finish(STATUS_SUPERSEDED)

        try:
            async with self._file_lock(file):
                self._checkpoint(revision)
                async with self.scheduler.slot(workspace):
                    tree, patterns = await self._run(revision, config)
        except QueueOverflowError as e:
            logger.debug(str(e))
            return finish(STATUS_RETRY_LATER)
        except AnalysisSupersededError as e:
            logger.debug(str(e))
            return finish(STATUS_SUPERSEDED)

        if tree.limited:
            return finish(STATUS_LIMITED, backend=tree.backend)
        if tree.fully_unparsable:
            return finish(STATUS_UNPARSABLE, backend=tree.backend)

        visible = tuple(p for p in patterns if not self.cache.should_suppress(file, p.identity))
        return finish(STATUS_OK, visible, len(patterns) - len(visible), tree.backend)

    def analyze_sync(
        self,
        file: str,
        language: str,
        code: str,
        changed_ranges: Optional[Iterable[tuple[int, int] | LineRange]] = None,
        workspace: str = DEFAULT_WORKSPACE,
    ) -> AnalysisResult:
        """Blocking ``analyze`` for callers without an event loop."""

        async def run() -> AnalysisResult:
            try:
                return await self.analyze(file, language, code, changed_ranges, workspace)
            finally:
                # Pooled remote connections cannot outlive this loop
                await self.gateway.aclose()

        return asyncio.run(run())

    def check_and_record(
        self, file: str, identity: str, action: CacheAction | str = CacheAction.SHOWN
    ) -> bool:
        """Whether ``identity`` was already surfaced; records ``action`` either way."""
        return self.cache.check_and_record(file, identity, action)

    def forget(self, file: str) -> None:
        """Drop everything held for a closed file, except cache entries."""
        self.tracker.forget(file)
        self._trees.pop(file, None)
        self._file_locks.pop(file, None)

    async def aclose(self) -> None:
        self.cache.close()
        if self._owns_gateway:
            await self.gateway.aclose()

    def close(self) -> None:
        self.cache.close()
        if self._owns_gateway and self.gateway.enabled:
            asyncio.run(self.gateway.aclose())

    async def _run(self, revision: SourceRevision, config: EngineConfig) -> tuple[SyntaxTree, list[ClassifiedPattern]]:
        checkpoint = lambda: self._checkpoint(revision)  # noqa: E731

        previous = self._trees.get(revision.file)
        if previous is not None and previous.revision == revision.revision and previous.source == revision.text:
            tree = previous
        else:
            tree = await asyncio.to_thread(self.parser.parse, revision, previous)
        checkpoint()

        settings = DetectionSettings.from_config(config)
        occurrences = await asyncio.to_thread(self.detector.detect, tree, settings, checkpoint)
        patterns = [
            pattern
            for pattern in self.classifier.classify_all(occurrences, tree.language)
            if config.is_category_enabled(pattern.category.value)
        ]
        if config.mode == "gentle":
            patterns = [p for p in patterns if p.occurrence.severity is not Severity.LOW]

        if self.gateway.enabled and patterns:
            patterns = await self.gateway.refine(revision.file, tree.language, revision.revision, patterns)
        checkpoint()

        self._trees[revision.file] = tree
        self.tracker.mark_analyzed(revision)
        logger.debug(f"{revision.file}@{revision.revision}: {len(patterns)} pattern(s)")
        return tree, patterns

    def _checkpoint(self, revision: SourceRevision) -> None:
        if not self.tracker.is_current(revision):
            latest = self.tracker.latest(revision.file)
            raise AnalysisSupersededError(
                revision.file, revision.revision, latest.revision if latest else revision.revision
            )

    def _file_lock(self, file: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._locks_loop:
            # asyncio locks are bound to the loop that first waits on them
            self._file_locks = {}
            self._locks_loop = loop
        lock = self._file_locks.get(file)
        if lock is None:
            lock = self._file_locks[file] = asyncio.Lock()
        return lock

    async def _apply_config(self, config: EngineConfig) -> None:
        self.scheduler.configure(config)
        self.cache.ttl_seconds = config.cache_ttl_seconds
        if config.cache_max_bytes != self.cache.max_bytes:
            evicted = self.cache.resize(config.cache_max_bytes)
            if evicted:
                logger.info(f"Cache cap lowered to {config.cache_max_bytes} bytes; evicted {evicted} entries")
        if self._owns_gateway:
            endpoint = self.gateway.client.base_url if self.gateway.client is not None else None
            if endpoint != (config.remote_endpoint.rstrip("/") if config.remote_endpoint else None):
                previous, self.gateway = self.gateway, _gateway_for(config)
                await previous.aclose()
                logger.info(f"Remote endpoint changed to {config.remote_endpoint or 'none'}")


def _gateway_for(config: EngineConfig) -> RemoteGateway:
    machine = ConnectivityStateMachine(probe_interval=config.probe_interval_s)
    if not config.remote_enabled:
        return RemoteGateway(None, machine)
    client = RemoteAssistClient(
        config.remote_endpoint,  # type: ignore[arg-type]
        structural_timeout=config.structural_timeout_s,
        classification_timeout=config.classification_timeout_s,
    )
    return RemoteGateway(client, machine)
