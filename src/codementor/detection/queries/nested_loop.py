"""NESTED_LOOP: a loop whose body contains another loop.

Scope: NODE
Severity: medium, high when three or more loops are nested

Anchored at the outer loop. In a nest of three, both the outer and the
middle loop report an occurrence.
"""

from __future__ import annotations

from ...scanning.syntax import NodeKind, RootRef, SyntaxTree
from ..base import DetectionSettings, NodeQuery, body_of, range_of
from ..models import Match, PatternKind, Severity


class NestedLoopQuery(NodeQuery):
    """Detects loop nests (quadratic or worse iteration)."""

    kind = PatternKind.NESTED_LOOP.value

    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        matches: list[Match] = []
        for item in tree.walk_root(root):
            if item.kind is not NodeKind.LOOP:
                continue
            body = body_of(tree, item)
            if body is None:
                continue

            base = len(body.ancestors)
            depth = 1
            candidates = [body, *tree.walk_from(body)]
            for inner in candidates:
                if inner.kind is not NodeKind.LOOP:
                    continue
                # Loops strictly between this one and ``inner``, plus both ends
                between = sum(1 for k in inner.ancestors[base:] if k is NodeKind.LOOP)
                depth = max(depth, between + 2)

            if depth < 2:
                continue
            matches.append(
                Match(
                    kind=self.kind,
                    range=range_of(item),
                    severity=Severity.HIGH if depth >= 3 else Severity.MEDIUM,
                    metadata={"depth": depth},
                )
            )
        return matches
