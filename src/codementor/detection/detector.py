"""PatternDetector: runs the registered queries over a syntax tree.

Node queries run once per top-level node and their matches are memoized
on the node's arena index. When the parser reuses a node for a later
revision the memoized matches are shifted by the change in line offset
instead of being recomputed. File queries always run over the whole tree.

Error nodes are never descended, so a broken region only hides patterns
inside it.
"""

from __future__ import annotations

import weakref
from threading import Lock
from typing import Callable, Iterable, Optional

from ..logging_config import get_logger
from ..scanning.syntax import NodeArena, NodeKind, RootRef, SyntaxTree
from .base import DetectionSettings, FileQuery, NodeQuery, PatternQuery, range_of
from .identity import assign_identities
from .models import Match, PatternOccurrence, SourceRange, Severity
from .queries import default_queries

logger = get_logger(__name__)

Checkpoint = Callable[[], None]

_MemoKey = tuple[int, str, str, DetectionSettings]


class _FunctionSpans(NodeQuery):
    """Function ranges and names, used for identity scopes."""

    kind = "function-spans"

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        return [
            Match(kind=self.kind, range=range_of(item), severity=Severity.LOW, metadata={"name": item.node.name})
            for item in tree.walk_root(root)
            if item.kind is NodeKind.FUNCTION
        ]


class PatternDetector:
    """Composable detector over independent pattern queries.

    Usage:
        detector = PatternDetector()
        occurrences = detector.detect(tree, DetectionSettings(min_function_length=40))

    Attributes:
        memo_hits: Node-query results served from the memo
        memo_misses: Node-query results computed
    """

    def __init__(self, queries: Optional[Iterable[PatternQuery]] = None, memo_limit: int = 50_000) -> None:
        self._queries: list[PatternQuery] = []
        for query in queries if queries is not None else default_queries():
            self.register(query)
        self._spans = _FunctionSpans()
        self._memo_limit = memo_limit
        self._memo: weakref.WeakKeyDictionary[NodeArena, dict[_MemoKey, tuple[int, list[Match]]]] = (
            weakref.WeakKeyDictionary()
        )
        self._lock = Lock()
        self.memo_hits = 0
        self.memo_misses = 0

    @property
    def queries(self) -> list[PatternQuery]:
        return list(self._queries)

    def register(self, query: PatternQuery) -> None:
        """Add a query. Each kind may be registered once."""
        if not isinstance(query, (NodeQuery, FileQuery)):
            raise TypeError(f"{type(query).__name__} is neither a NodeQuery nor a FileQuery")
        if any(existing.kind == query.kind for existing in self._queries):
            raise ValueError(f"A query for kind '{query.kind}' is already registered")
        self._queries.append(query)

    def detect(
        self,
        tree: SyntaxTree,
        settings: Optional[DetectionSettings] = None,
        checkpoint: Optional[Checkpoint] = None,
    ) -> list[PatternOccurrence]:
        """Run every applicable query and return occurrences in source order.

        ``checkpoint`` is called after each query; it may raise to cancel.
        """
        if tree.limited or not tree.roots:
            return []
        settings = settings or DetectionSettings()

        matches: list[Match] = []
        for query in self._queries:
            if not query.applies_to(tree.language):
                continue
            if isinstance(query, NodeQuery):
                matches.extend(self._node_matches(tree, query, settings))
            else:
                matches.extend(query.find_in_file(tree, settings))  # type: ignore[attr-defined]
            if checkpoint is not None:
                checkpoint()

        functions: list[tuple[SourceRange, str]] = [
            (m.range, m.metadata["name"]) for m in self._node_matches(tree, self._spans, settings)
        ]
        occurrences = assign_identities(tree.file, tree.language, tree.lines, matches, functions)
        logger.debug(f"{tree.file}@{tree.revision}: {len(occurrences)} occurrence(s)")
        return occurrences

    def _node_matches(self, tree: SyntaxTree, query: NodeQuery, settings: DetectionSettings) -> list[Match]:
        matches: list[Match] = []
        for root in tree.roots:
            if tree.node(root.index).kind is NodeKind.ERROR:
                continue
            matches.extend(self._memoized(tree, root, query, settings))
        return matches

    def _memoized(self, tree: SyntaxTree, root: RootRef, query: NodeQuery, settings: DetectionSettings) -> list[Match]:
        key: _MemoKey = (root.index, query.kind, tree.language, settings)
        with self._lock:
            cached = self._memo.get(tree.arena, {}).get(key)
            if cached is not None:
                self.memo_hits += 1
        if cached is not None:
            offset, found = cached
            return [match.shifted(root.line_offset - offset) for match in found]

        found = query.find_in_root(tree, root, settings)
        with self._lock:
            per_arena = self._memo.setdefault(tree.arena, {})
            if len(per_arena) >= self._memo_limit:
                per_arena.clear()
            per_arena[key] = (root.line_offset, found)
            self.memo_misses += 1
        return found
