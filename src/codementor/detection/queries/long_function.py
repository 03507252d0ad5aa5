"""LONG_FUNCTION: function bodies with too many logical lines.

Scope: NODE
Severity: medium, high above twice the threshold

A logical line is a body line that is not blank, not a comment and not
only brackets or separators. Exactly one occurrence per function whose
body has strictly more than ``min_function_length`` logical lines.
"""

from __future__ import annotations

from ...scanning.syntax import NodeKind, RootRef, SyntaxTree
from ..base import DetectionSettings, NodeQuery, body_of, count_logical_lines, range_of
from ..models import Match, PatternKind, Severity


class LongFunctionQuery(NodeQuery):
    """Detects functions and methods that do too much in one body."""

    kind = PatternKind.LONG_FUNCTION.value

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        threshold = settings.min_function_length
        matches: list[Match] = []
        for item in tree.walk_root(root):
            if item.kind is not NodeKind.FUNCTION:
                continue
            body = body_of(tree, item)
            if body is None:
                continue
            if body.node.kind is NodeKind.ERROR:
                continue
            lines = count_logical_lines(tree, body)
            if lines <= threshold:
                continue
            matches.append(
                Match(
                    kind=self.kind,
                    range=range_of(item),
                    severity=Severity.HIGH if lines > 2 * threshold else Severity.MEDIUM,
                    metadata={
                        "name": item.node.name,
                        "logical_lines": lines,
                        "threshold": threshold,
                    },
                )
            )
        return matches
