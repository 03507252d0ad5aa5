"""Normalized syntax trees.

Both the tree-sitter normalizer and the regex fallback produce the same
shape: immutable ``SyntaxNode`` records appended to a per-file
``NodeArena`` and referenced by index. A ``SyntaxTree`` is a list of
top-level roots into that arena.

Node lines are stored relative to their top-level root, so a root whose
text did not change can be reused by a later revision even when lines
above it were inserted or deleted: the new tree references the same
arena index with a different line offset. Columns are absolute (0-indexed,
in bytes for tree-sitter input).

Lines are 1-indexed throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Iterator, Optional


class NodeKind(str, Enum):
    """Language-agnostic node categories the detector queries."""

    FUNCTION = "function"
    LOOP = "loop"
    NUMBER = "number"
    DECLARATION = "declaration"
    ENUM = "enum"
    CALL = "call"
    COMPARISON = "comparison"
    PARAMETERS = "parameters"
    ERROR = "error"
    OTHER = "other"


@dataclass(frozen=True)
class SyntaxNode:
    """One immutable node.

    Attributes:
        kind: Normalized category
        type: Backend node type (e.g. "for_statement")
        start_line: Start line relative to the root (0 = root's first line)
        start_col: Start column
        end_line: End line relative to the root
        end_col: End column
        children: Arena indices of child nodes
        body: Arena index of the body child for functions and loops
        name: Function or callee name
        value: Literal text or comparison operator
        param_count: Parameter count for functions
    """

    kind: NodeKind
    type: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    children: tuple[int, ...] = ()
    body: Optional[int] = None
    name: str = ""
    value: str = ""
    param_count: int = 0


class NodeArena:
    """Append-only store of nodes shared by successive trees of one file."""

    def __init__(self) -> None:
        self._nodes: list[SyntaxNode] = []

    def add(self, node: SyntaxNode) -> int:
        self._nodes.append(node)
        return len(self._nodes) - 1

    def get(self, index: int) -> SyntaxNode:
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    def subtree_size(self, index: int) -> int:
        count = 0
        stack = [index]
        while stack:
            node = self._nodes[stack.pop()]
            count += 1
            stack.extend(node.children)
        return count


@dataclass(frozen=True)
class RootRef:
    """A top-level node placed in a particular revision.

    Attributes:
        index: Arena index of the root node
        line_offset: Absolute line of the root's first line
        digest: Hash of the root's source text (reuse key)
        reused: True if the node was carried over from the previous tree
    """

    index: int
    line_offset: int
    digest: str
    reused: bool = False


@dataclass(frozen=True)
class Positioned:
    """A node with absolute coordinates, yielded by tree walks."""

    index: int
    node: SyntaxNode
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    ancestors: tuple[NodeKind, ...]
    root: RootRef

    @property
    def kind(self) -> NodeKind:
        return self.node.kind


@dataclass(frozen=True)
class SyntaxTree:
    """Parse result for one revision. Never fails: bad input yields error nodes.

    Attributes:
        file: File identifier
        language: Profile name ("python", "javascript", "typescript")
        revision: Revision this tree was built for
        source: Text of that revision
        arena: Node arena shared with earlier trees of the same file
        roots: Top-level nodes in source order
        backend: "tree-sitter", "fallback" or "none"
        limited: True for unsupported languages (empty pattern surface)
        native: Backend tree handed to the next incremental parse
    """

    file: str
    language: str
    revision: int
    source: str
    arena: NodeArena
    roots: tuple[RootRef, ...]
    backend: str = "none"
    limited: bool = False
    native: Any = field(default=None, compare=False, repr=False)

    @cached_property
    def lines(self) -> list[str]:
        return self.source.split("\n")

    @property
    def reused_count(self) -> int:
        return sum(1 for root in self.roots if root.reused)

    def node(self, index: int) -> SyntaxNode:
        return self.arena.get(index)

    def walk(self, skip_errors: bool = True) -> Iterator[Positioned]:
        """Depth-first walk over every root, in source order."""
        for root in self.roots:
            yield from self.walk_root(root, skip_errors=skip_errors)

    def walk_root(self, root: RootRef, skip_errors: bool = True) -> Iterator[Positioned]:
        yield from self._walk(root.index, root, (), skip_errors)

    def walk_from(self, item: Positioned, skip_errors: bool = True) -> Iterator[Positioned]:
        """Walk the descendants of ``item`` (excluding ``item`` itself)."""
        ancestors = item.ancestors + (item.kind,)
        for child in item.node.children:
            yield from self._walk(child, item.root, ancestors, skip_errors)

    def position(self, index: int, root: RootRef, ancestors: tuple[NodeKind, ...] = ()) -> Positioned:
        node = self.arena.get(index)
        return Positioned(
            index=index,
            node=node,
            start_line=root.line_offset + node.start_line,
            start_col=node.start_col,
            end_line=root.line_offset + node.end_line,
            end_col=node.end_col,
            ancestors=ancestors,
            root=root,
        )

    def error_spans(self) -> list[tuple[int, int]]:
        """Absolute (start_line, end_line) of every error node."""
        return [
            (p.start_line, p.end_line)
            for p in self.walk(skip_errors=False)
            if p.kind is NodeKind.ERROR
        ]

    @property
    def has_errors(self) -> bool:
        return bool(self.error_spans())

    @property
    def fully_unparsable(self) -> bool:
        """True when the tree holds nothing but error nodes."""
        if not self.roots or self.limited:
            return False
        return all(self.arena.get(r.index).kind is NodeKind.ERROR for r in self.roots)

    def _walk(
        self,
        index: int,
        root: RootRef,
        ancestors: tuple[NodeKind, ...],
        skip_errors: bool,
    ) -> Iterator[Positioned]:
        stack = [(index, ancestors)]
        while stack:
            current, path = stack.pop()
            item = self.position(current, root, path)
            yield item
            if skip_errors and item.kind is NodeKind.ERROR:
                continue
            child_path = path + (item.kind,)
            for child in reversed(item.node.children):
                stack.append((child, child_path))
