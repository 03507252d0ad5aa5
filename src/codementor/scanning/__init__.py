"""Error-tolerant, incremental parsing into normalized syntax trees."""

from .languages import (
    LANGUAGES,
    LanguageProfile,
    detect_language,
    get_profile,
    require_profile,
    supported_languages,
)
from .parser import AstParser
from .syntax import NodeArena, NodeKind, Positioned, RootRef, SyntaxNode, SyntaxTree
from .treesitter_parser import TREE_SITTER_AVAILABLE

__all__ = [
    "AstParser",
    "LANGUAGES",
    "LanguageProfile",
    "NodeArena",
    "NodeKind",
    "Positioned",
    "RootRef",
    "SyntaxNode",
    "SyntaxTree",
    "TREE_SITTER_AVAILABLE",
    "detect_language",
    "get_profile",
    "require_profile",
    "supported_languages",
]
