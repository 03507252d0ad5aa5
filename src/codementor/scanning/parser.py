"""AstParser: produces a SyntaxTree for each source revision.

Tries tree-sitter first and falls back to the regex scanner, so a tree is
always returned:
    1. If tree-sitter is installed and has the grammar: use tree-sitter
    2. If the tree-sitter backend raises: log a ParseError, use the fallback
    3. If the fallback raises too: return a tree holding one error node
    4. If the language has no profile: return an empty "limited" tree

Incremental re-parsing happens at two levels. The tree-sitter backend hands
the previous native tree and the tracker's coalesced edit to
``Parser.parse(code, old_tree)``. Independently of the backend, top-level
nodes whose text is unchanged and which lie outside every changed range
are not converted again: the new tree references the previous tree's arena
node with an updated line offset.

Usage:
    parser = AstParser()
    tree = parser.parse(revision)
    tree = parser.parse(next_revision, previous_tree=tree)
"""

from __future__ import annotations

import hashlib
from collections import defaultdict, deque
from threading import Lock
from typing import Any, Optional

from ..exceptions import ParseError, UnsupportedLanguageError
from ..logging_config import get_logger
from ..tracking.models import SourceRevision
from .fallback import RegexFallbackParser
from .languages import LanguageProfile, require_profile
from .normalizer import TreeSitterNormalizer
from .syntax import NodeArena, NodeKind, RootRef, SyntaxNode, SyntaxTree
from .treesitter_parser import TREE_SITTER_AVAILABLE, TreeSitterParser

logger = get_logger(__name__)

# Arenas are append-only; past this size the next parse starts a fresh one
DEFAULT_MAX_ARENA_NODES = 200_000


class AstParser:
    """Error-tolerant, incremental parser over the supported languages.

    Attributes:
        treesitter_count: Trees built with tree-sitter
        fallback_count: Trees built with the regex fallback
        limited_count: Trees returned for unsupported languages
        reused_roots: Top-level nodes carried over from a previous tree
        built_roots: Top-level nodes converted from scratch
    """

    def __init__(
        self,
        use_tree_sitter: bool = True,
        max_arena_nodes: int = DEFAULT_MAX_ARENA_NODES,
    ) -> None:
        self._ts = TreeSitterParser() if use_tree_sitter and TREE_SITTER_AVAILABLE else None
        self._max_arena_nodes = max_arena_nodes
        # tree_sitter.Parser instances are shared between files
        self._ts_lock = Lock()
        self._lock = Lock()
        self.treesitter_count = 0
        self.fallback_count = 0
        self.limited_count = 0
        self.reused_roots = 0
        self.built_roots = 0

    def backend_for(self, language: str) -> str:
        """Name of the backend ``parse`` would try first for ``language``."""
        try:
            profile = require_profile(language)
        except UnsupportedLanguageError:
            return "none"
        return "tree-sitter" if self._has_grammar(profile) else "fallback"

    def parse(self, revision: SourceRevision, previous_tree: Optional[SyntaxTree] = None) -> SyntaxTree:
        """Parse ``revision``, reusing ``previous_tree`` where it is still valid.

        Never raises for malformed input.
        """
        try:
            profile = require_profile(revision.language)
        except UnsupportedLanguageError as e:
            with self._lock:
                self.limited_count += 1
            logger.debug(f"{revision.file}: limited support ({e})")
            return SyntaxTree(
                file=revision.file,
                language=revision.language or "unknown",
                revision=revision.revision,
                source=revision.text,
                arena=NodeArena(),
                roots=(),
                limited=True,
            )

        base = previous_tree if _is_base_of(previous_tree, revision, profile) else None
        arena = NodeArena()
        if base is not None and len(base.arena) < self._max_arena_nodes:
            arena = base.arena
        elif base is not None:
            logger.debug(f"{revision.file}: arena reached {len(base.arena)} nodes, starting a new one")

        if self._has_grammar(profile):
            try:
                tree = self._parse_tree_sitter(revision, profile, base, arena)
                with self._lock:
                    self.treesitter_count += 1
                return tree
            except Exception as e:
                error = ParseError(revision.file, profile.name, f"tree-sitter backend failed: {e}")
                logger.error(str(error))
                # The previous tree's arena may hold the partial conversion
                arena = NodeArena()

        try:
            tree = self._parse_fallback(revision, profile, base, arena)
            with self._lock:
                self.fallback_count += 1
            return tree
        except Exception as e:
            error = ParseError(revision.file, profile.name, f"fallback scanner failed: {e}")
            logger.error(str(error))
            return _error_tree(revision, profile)

    def _has_grammar(self, profile: LanguageProfile) -> bool:
        return self._ts is not None and self._ts.is_grammar_supported(profile.grammar)

    def _parse_tree_sitter(
        self,
        revision: SourceRevision,
        profile: LanguageProfile,
        base: Optional[SyntaxTree],
        arena: NodeArena,
    ) -> SyntaxTree:
        assert self._ts is not None
        code = revision.text.encode("utf-8", "surrogatepass")
        with self._ts_lock:
            if base is not None and base.backend == "tree-sitter" and base.native is not None:
                native = self._ts.reparse(code, profile.grammar, base.native, revision.edit)
            else:
                native = self._ts.parse(code, profile.grammar)
        if native is None:
            raise RuntimeError(f"grammar '{profile.grammar}' unavailable")

        normalizer = TreeSitterNormalizer(profile)
        reusable = _ReusableRoots(base, arena, "tree-sitter")
        roots: list[RootRef] = []
        for ts_node in normalizer.top_level(native):
            start_line = ts_node.start_point[0] + 1
            end_line = ts_node.end_point[0] + 1
            snippet = code[ts_node.start_byte:ts_node.end_byte]
            digest = _digest(ts_node.start_point[1], snippet)

            reused = None
            if not revision.touches(start_line, end_line):
                reused = reusable.take(digest)
            if reused is not None:
                roots.append(RootRef(reused.index, start_line, digest, reused=True))
            else:
                index = normalizer.convert(ts_node, code, arena)
                roots.append(RootRef(index, start_line, digest))

        tree = SyntaxTree(
            file=revision.file,
            language=profile.name,
            revision=revision.revision,
            source=revision.text,
            arena=arena,
            roots=tuple(roots),
            backend="tree-sitter",
            native=native,
        )
        self._log_tree(tree)
        return tree

    def _parse_fallback(
        self,
        revision: SourceRevision,
        profile: LanguageProfile,
        base: Optional[SyntaxTree],
        arena: NodeArena,
    ) -> SyntaxTree:
        reusable = _ReusableRoots(base, arena, "fallback")
        roots: list[RootRef] = []
        for found in RegexFallbackParser(profile).scan(revision.text):
            reused = None
            if not revision.touches(found.start_line, found.end_line):
                reused = reusable.take(found.digest)
            if reused is not None:
                roots.append(RootRef(reused.index, found.start_line, found.digest, reused=True))
            else:
                roots.append(RootRef(found.emit(arena), found.start_line, found.digest))

        tree = SyntaxTree(
            file=revision.file,
            language=profile.name,
            revision=revision.revision,
            source=revision.text,
            arena=arena,
            roots=tuple(roots),
            backend="fallback",
        )
        self._log_tree(tree)
        return tree

    def _log_tree(self, tree: SyntaxTree) -> None:
        reused = tree.reused_count
        with self._lock:
            self.reused_roots += reused
            self.built_roots += len(tree.roots) - reused
        errors = tree.error_spans()
        if errors:
            error = ParseError(tree.file, tree.language, f"{len(errors)} unparsable region(s)")
            logger.debug(str(error))
        logger.debug(
            f"{tree.file}@{tree.revision}: {tree.backend}, {len(tree.roots)} roots, {reused} reused"
        )


class _ReusableRoots:
    """Previous roots available for reuse, matched by digest in source order."""

    def __init__(self, base: Optional[SyntaxTree], arena: NodeArena, backend: str) -> None:
        self._by_digest: dict[str, deque[RootRef]] = defaultdict(deque)
        if base is None or base.arena is not arena or base.backend != backend:
            return
        for root in base.roots:
            self._by_digest[root.digest].append(root)

    def take(self, digest: str) -> Optional[RootRef]:
        candidates = self._by_digest.get(digest)
        if not candidates:
            return None
        return candidates.popleft()


def _is_base_of(previous: Optional[SyntaxTree], revision: SourceRevision, profile: LanguageProfile) -> bool:
    """True if ``previous`` was built for the revision ``revision`` is diffed against."""
    return (
        previous is not None
        and not previous.limited
        and previous.file == revision.file
        and previous.language == profile.name
        and revision.base_revision > 0
        and previous.revision == revision.base_revision
    )


def _digest(start_col: int, snippet: Any) -> str:
    if isinstance(snippet, str):
        snippet = snippet.encode("utf-8", "surrogatepass")
    return hashlib.sha1(str(start_col).encode("ascii") + b":" + snippet).hexdigest()


def _error_tree(revision: SourceRevision, profile: LanguageProfile) -> SyntaxTree:
    """Last resort: the whole file as a single error node."""
    arena = NodeArena()
    lines = revision.text.split("\n")
    index = arena.add(
        SyntaxNode(
            kind=NodeKind.ERROR,
            type="ERROR",
            start_line=0,
            start_col=0,
            end_line=len(lines) - 1,
            end_col=len(lines[-1]),
        )
    )
    return SyntaxTree(
        file=revision.file,
        language=profile.name,
        revision=revision.revision,
        source=revision.text,
        arena=arena,
        roots=(RootRef(index, 1, _digest(0, revision.text)),),
        backend="none",
    )
