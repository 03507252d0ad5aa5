"""LOOSE_EQUALITY: ``==`` / ``!=`` where ``===`` / ``!==`` is meant.

Scope: NODE
Severity: low
"""

from __future__ import annotations

from ...scanning.syntax import NodeKind, RootRef, SyntaxTree
from ..base import DetectionSettings, NodeQuery, range_of
from ..models import Match, PatternKind, Severity


class LooseEqualityQuery(NodeQuery):
    kind = PatternKind.LOOSE_EQUALITY.value
    languages = frozenset({"javascript", "typescript"})

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        return [
            Match(kind=self.kind, range=range_of(item), severity=Severity.LOW, metadata={"operator": item.node.value})
            for item in tree.walk_root(root)
            if item.kind is NodeKind.COMPARISON
        ]
