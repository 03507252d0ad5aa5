"""LONG_PARAMETER_LIST: functions taking more than ``max_parameters`` arguments.

Scope: NODE
Severity: medium

Receivers (``self``, ``cls``, ``this``) are not counted.
"""

from __future__ import annotations

from ...scanning.syntax import NodeKind, RootRef, SyntaxTree
from ..base import DetectionSettings, NodeQuery, range_of
from ..models import Match, PatternKind, Severity


class LongParameterListQuery(NodeQuery):
    kind = PatternKind.LONG_PARAMETER_LIST.value

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        limit = settings.max_parameters
        return [
            Match(
                kind=self.kind,
                range=range_of(item),
                severity=Severity.MEDIUM,
                metadata={"name": item.node.name, "parameters": item.node.param_count, "limit": limit},
            )
            for item in tree.walk_root(root)
            if item.kind is NodeKind.FUNCTION and item.node.param_count > limit
        ]
