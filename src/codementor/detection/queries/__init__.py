"""Built-in pattern queries, one module per kind."""

from ..base import PatternQuery
from .duplicated_code import DuplicatedCodeQuery
from .eval_usage import EvalUsageQuery
from .long_function import LongFunctionQuery
from .long_parameter_list import LongParameterListQuery
from .loose_equality import LooseEqualityQuery
from .magic_number import MagicNumberQuery
from .nested_loop import NestedLoopQuery


def default_queries() -> list[PatternQuery]:
    """Fresh instances of every built-in query, in reporting order."""
    return [
        LongFunctionQuery(),
        MagicNumberQuery(),
        NestedLoopQuery(),
        DuplicatedCodeQuery(),
        LongParameterListQuery(),
        EvalUsageQuery(),
        LooseEqualityQuery(),
    ]


__all__ = [
    "DuplicatedCodeQuery",
    "EvalUsageQuery",
    "LongFunctionQuery",
    "LongParameterListQuery",
    "LooseEqualityQuery",
    "MagicNumberQuery",
    "NestedLoopQuery",
    "default_queries",
]
