"""MAGIC_NUMBER: numeric literals used outside a named declaration.

Scope: NODE
Severity: low

``const X = 42``, ``enum E { A = 1 }`` and Python ``TIMEOUT = 30`` name
their value and never fire. ``total = price * 42`` fires once per literal.
A function nested inside a declaration starts a fresh context, so
``const f = () => n * 42`` still fires.
"""

from __future__ import annotations

from ...scanning.syntax import NodeKind, RootRef, SyntaxTree
from ..base import DetectionSettings, NodeQuery, in_declaration_context, range_of
from ..models import Match, PatternKind, Severity


class MagicNumberQuery(NodeQuery):
    """Detects unexplained numeric literals."""

    kind = PatternKind.MAGIC_NUMBER.value

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        return [
            Match(
                kind=self.kind,
                range=range_of(item),
                severity=Severity.LOW,
                metadata={"value": item.node.value},
            )
            for item in tree.walk_root(root)
            if item.kind is NodeKind.NUMBER and not in_declaration_context(item)
        ]
