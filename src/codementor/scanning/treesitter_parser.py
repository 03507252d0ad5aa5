"""Tree-sitter parser wrapper.

Provides a unified interface for tree-sitter parsing across the supported
grammars. Handles a missing tree-sitter dependency gracefully.

Usage:
    if TREE_SITTER_AVAILABLE:
        parser = TreeSitterParser()
        tree = parser.parse(code_bytes, "python")
        tree = parser.reparse(new_bytes, "python", tree, edit)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from ..logging_config import get_logger

if TYPE_CHECKING:
    from ..tracking.models import TextEdit

logger = get_logger(__name__)

# Try to import tree-sitter
TREE_SITTER_AVAILABLE = False
_tree_sitter_module: Any = None
_language_modules: dict[str, Any] = {}

try:
    import tree_sitter as _tree_sitter_module  # type: ignore[no-redef]

    TREE_SITTER_AVAILABLE = True

    try:
        import tree_sitter_python

        _language_modules["python"] = tree_sitter_python
    except ImportError:
        pass

    try:
        import tree_sitter_javascript

        _language_modules["javascript"] = tree_sitter_javascript
    except ImportError:
        pass

    try:
        import tree_sitter_typescript

        _language_modules["typescript"] = tree_sitter_typescript
        # TSX is bundled with tree-sitter-typescript, store it separately
        _language_modules["tsx"] = tree_sitter_typescript
    except ImportError:
        pass

except ImportError:
    TREE_SITTER_AVAILABLE = False


def get_supported_grammars() -> list[str]:
    """Get list of grammars that are installed."""
    if not TREE_SITTER_AVAILABLE:
        return []
    return list(_language_modules.keys())


class TreeSitterParser:
    """Wrapper around tree-sitter for multi-language parsing.

    Check TREE_SITTER_AVAILABLE before using, or check whether parse()
    returns None.
    """

    def __init__(self) -> None:
        self._parsers: dict[str, Any] = {}

        if not TREE_SITTER_AVAILABLE:
            return

        for grammar, lang_module in _language_modules.items():
            try:
                # Some modules use language_<name>() instead of language()
                lang_fn = getattr(lang_module, f"language_{grammar}", None)
                if lang_fn is None:
                    lang_fn = getattr(lang_module, "language", None)
                if lang_fn is None:
                    continue

                # tree-sitter >= 0.23 returns PyCapsule; wrap in Language()
                lang_obj = _tree_sitter_module.Language(lang_fn())
                self._parsers[grammar] = _tree_sitter_module.Parser(lang_obj)
            except Exception as e:
                logger.debug(f"Skipping {grammar} grammar: {e}")

    def is_grammar_supported(self, grammar: str) -> bool:
        return grammar in self._parsers

    def parse(self, code: bytes, grammar: str) -> Optional[Any]:
        """Parse code from scratch.

        Returns:
            Tree object, or None if the grammar is not available
        """
        parser = self._parsers.get(grammar)
        if parser is None:
            return None
        return parser.parse(code)

    def reparse(
        self, code: bytes, grammar: str, old_tree: Any, edit: Optional[TextEdit]
    ) -> Optional[Any]:
        """Incrementally re-parse after ``edit`` was applied to ``old_tree``'s text.

        The old tree is copied before editing so a superseded job cannot
        leave it half-edited. Falls back to a full parse when the binding
        has no ``Tree.copy``.
        """
        parser = self._parsers.get(grammar)
        if parser is None:
            return None
        copy = getattr(old_tree, "copy", None)
        if edit is None or copy is None:
            return parser.parse(code)

        tree = copy()
        tree.edit(
            start_byte=edit.start_byte,
            old_end_byte=edit.old_end_byte,
            new_end_byte=edit.new_end_byte,
            start_point=edit.start_point,
            old_end_point=edit.old_end_point,
            new_end_point=edit.new_end_point,
        )
        return parser.parse(code, tree)
