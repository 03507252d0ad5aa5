"""EVAL_USAGE: dynamic code execution.

Scope: NODE
Severity: high

Calls to ``eval``/``exec`` in Python and ``eval``/``Function`` (including
``new Function``) in JavaScript and TypeScript.
"""

from __future__ import annotations

from ...scanning.syntax import NodeKind, RootRef, SyntaxTree
from ..base import DetectionSettings, NodeQuery, range_of
from ..models import Match, PatternKind, Severity


class EvalUsageQuery(NodeQuery):
    kind = PatternKind.EVAL_USAGE.value

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        return [
            Match(kind=self.kind, range=range_of(item), severity=Severity.HIGH, metadata={"callee": item.node.name})
            for item in tree.walk_root(root)
            if item.kind is NodeKind.CALL
        ]
