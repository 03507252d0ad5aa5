"""Normalizer: converts tree-sitter nodes into arena nodes.

This module takes tree-sitter parse trees and produces language-agnostic
``SyntaxNode`` records. Language-specific node types are looked up in the
``LanguageProfile``; everything unrecognised becomes ``NodeKind.OTHER``.
"""

from __future__ import annotations

from typing import Any, Optional

from ..logging_config import get_logger
from .languages import LanguageProfile
from .syntax import NodeArena, NodeKind, SyntaxNode

logger = get_logger(__name__)

# Deeper subtrees are truncated to a leaf rather than risking recursion limits
MAX_DEPTH = 400

_PARAM_NOISE = frozenset({"comment", "keyword_separator", "positional_separator", "(", ")", ","})


class TreeSitterNormalizer:
    """Converts tree-sitter subtrees for one language profile.

    Usage:
        normalizer = TreeSitterNormalizer(profile)
        for ts_node in normalizer.top_level(tree):
            index = normalizer.convert(ts_node, code_bytes, arena)
    """

    def __init__(self, profile: LanguageProfile) -> None:
        self.profile = profile

    def top_level(self, tree: Any) -> list[Any]:
        """Direct children of the module node, in source order."""
        root = tree.root_node
        if root.type == "ERROR":
            return [root]
        return [child for child in root.children if _is_structural(child)]

    def convert(self, ts_node: Any, code: bytes, arena: NodeArena) -> int:
        """Append ``ts_node`` and its descendants to ``arena``; return its index."""
        root_row = ts_node.start_point[0]
        return self._convert(ts_node, code, arena, root_row, 0)

    def _convert(self, ts_node: Any, code: bytes, arena: NodeArena, root_row: int, depth: int) -> int:
        start_row, start_col = ts_node.start_point[0], ts_node.start_point[1]
        end_row, end_col = ts_node.end_point[0], ts_node.end_point[1]
        span = dict(
            start_line=start_row - root_row,
            start_col=start_col,
            end_line=end_row - root_row,
            end_col=end_col,
        )

        if ts_node.type == "ERROR" or getattr(ts_node, "is_missing", False):
            return arena.add(SyntaxNode(kind=NodeKind.ERROR, type=ts_node.type, **span))

        kind = self._kind_of(ts_node, code)

        children: list[int] = []
        body_index: Optional[int] = None
        body_node = ts_node.child_by_field_name("body") if kind in (NodeKind.FUNCTION, NodeKind.LOOP) else None

        if depth < MAX_DEPTH:
            for child in ts_node.children:
                if not _is_structural(child):
                    continue
                index = self._convert(child, code, arena, root_row, depth + 1)
                children.append(index)
                if body_node is not None and _same_node(child, body_node):
                    body_index = index

        name = ""
        value = ""
        param_count = 0
        if kind is NodeKind.FUNCTION:
            name = self._function_name(ts_node, code)
            param_count = self._count_parameters(ts_node, code)
        elif kind is NodeKind.NUMBER:
            value = _text(ts_node, code)
        elif kind is NodeKind.CALL:
            name = self._callee_name(ts_node, code) or ""
        elif kind is NodeKind.COMPARISON:
            value = self._operator(ts_node) or ""

        return arena.add(
            SyntaxNode(
                kind=kind,
                type=ts_node.type,
                children=tuple(children),
                body=body_index,
                name=name,
                value=value,
                param_count=param_count,
                **span,
            )
        )

    def _kind_of(self, ts_node: Any, code: bytes) -> NodeKind:
        profile = self.profile
        node_type = ts_node.type
        if node_type in profile.function_types:
            return NodeKind.FUNCTION
        if node_type in profile.loop_types:
            return NodeKind.LOOP
        if node_type in profile.number_types:
            return NodeKind.NUMBER
        if node_type in profile.declaration_types:
            return NodeKind.DECLARATION
        if node_type in profile.enum_types:
            return NodeKind.ENUM
        if node_type in profile.constant_assignment_types:
            right = ts_node.child_by_field_name("right")
            if right is not None and self._is_bare_number(right):
                return NodeKind.DECLARATION
            return NodeKind.OTHER
        if node_type in profile.call_types:
            callee = self._callee_name(ts_node, code)
            if callee in profile.dangerous_calls:
                return NodeKind.CALL
            return NodeKind.OTHER
        if node_type in profile.comparison_types:
            if self._operator(ts_node) in profile.loose_equality_operators:
                return NodeKind.COMPARISON
            return NodeKind.OTHER
        if node_type in profile.parameter_list_types:
            return NodeKind.PARAMETERS
        return NodeKind.OTHER

    def _is_bare_number(self, node: Any) -> bool:
        if node.type in self.profile.number_types:
            return True
        # -1, +2.5
        if node.type in ("unary_operator", "unary_expression"):
            operands = [c for c in node.children if c.is_named]
            return len(operands) == 1 and operands[0].type in self.profile.number_types
        return False

    def _callee_name(self, ts_node: Any, code: bytes) -> Optional[str]:
        callee = ts_node.child_by_field_name("function")
        if callee is None:
            callee = ts_node.child_by_field_name("constructor")
        if callee is None or callee.type != "identifier":
            return None
        return _text(callee, code)

    def _operator(self, ts_node: Any) -> Optional[str]:
        operator = ts_node.child_by_field_name("operator")
        if operator is None:
            return None
        return operator.type

    def _function_name(self, ts_node: Any, code: bytes) -> str:
        name_node = ts_node.child_by_field_name("name")
        if name_node is not None:
            return _text(name_node, code)
        parent = ts_node.parent
        if parent is not None:
            for field_name in ("name", "left", "key"):
                target = parent.child_by_field_name(field_name)
                if target is not None and not _same_node(target, ts_node):
                    return _text(target, code)
        return "<anonymous>"

    def _count_parameters(self, ts_node: Any, code: bytes) -> int:
        params = ts_node.child_by_field_name("parameters")
        if params is None:
            # Arrow function with a single bare parameter
            return 1 if ts_node.child_by_field_name("parameter") is not None else 0

        count = 0
        for child in params.children:
            if not child.is_named or child.type in _PARAM_NOISE:
                continue
            label = _text(child, code).split(":")[0].split("=")[0].strip()
            if label in self.profile.implicit_parameters:
                continue
            count += 1
        return count


def _is_structural(node: Any) -> bool:
    return node.is_named or node.type == "ERROR" or getattr(node, "is_missing", False)


def _same_node(a: Any, b: Any) -> bool:
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type


def _text(node: Any, code: bytes) -> str:
    return code[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
