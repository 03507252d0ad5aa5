"""Language profiles: the single source of truth for per-language node types.

Adding a language:
  1. Add a LanguageProfile entry to LANGUAGES below.
  2. Install its tree-sitter grammar (the regex fallback covers the
     "brace" and "indent" block styles without one).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from ..exceptions import UnsupportedLanguageError


@dataclass(frozen=True)
class LanguageProfile:
    """Everything the normalizer and fallback need to know about a language."""

    name: str
    grammar: str  # tree-sitter grammar key
    block_style: str  # "indent" or "brace"

    function_types: frozenset[str] = field(default_factory=frozenset)
    loop_types: frozenset[str] = field(default_factory=frozenset)
    number_types: frozenset[str] = field(default_factory=frozenset)
    declaration_types: frozenset[str] = field(default_factory=frozenset)
    # Assignment nodes that count as a declaration when the value is a bare literal
    constant_assignment_types: frozenset[str] = field(default_factory=frozenset)
    enum_types: frozenset[str] = field(default_factory=frozenset)
    call_types: frozenset[str] = field(default_factory=frozenset)
    comparison_types: frozenset[str] = field(default_factory=frozenset)
    parameter_list_types: frozenset[str] = field(default_factory=frozenset)

    line_comment: str = "#"
    block_comment: tuple[str, str] | None = None
    # Identifiers that are receivers rather than real parameters
    implicit_parameters: frozenset[str] = field(default_factory=frozenset)
    dangerous_calls: frozenset[str] = field(default_factory=frozenset)
    loose_equality_operators: frozenset[str] = field(default_factory=frozenset)

    def is_comment_line(self, stripped: str) -> bool:
        if stripped.startswith(self.line_comment):
            return True
        if self.block_comment is not None:
            opener, _closer = self.block_comment
            return stripped.startswith(opener) or stripped.startswith("*")
        return False


_JS_FUNCTIONS = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "generator_function_declaration",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)
_JS_LOOPS = frozenset({"for_statement", "for_in_statement", "while_statement", "do_statement"})

PYTHON = LanguageProfile(
    name="python",
    grammar="python",
    block_style="indent",
    function_types=frozenset({"function_definition"}),
    loop_types=frozenset({"for_statement", "while_statement"}),
    number_types=frozenset({"integer", "float"}),
    constant_assignment_types=frozenset({"assignment"}),
    call_types=frozenset({"call"}),
    parameter_list_types=frozenset({"parameters"}),
    line_comment="#",
    implicit_parameters=frozenset({"self", "cls"}),
    dangerous_calls=frozenset({"eval", "exec"}),
)

JAVASCRIPT = LanguageProfile(
    name="javascript",
    grammar="javascript",
    block_style="brace",
    function_types=_JS_FUNCTIONS,
    loop_types=_JS_LOOPS,
    number_types=frozenset({"number"}),
    declaration_types=frozenset(
        {"lexical_declaration", "variable_declaration", "field_definition"}
    ),
    call_types=frozenset({"call_expression", "new_expression"}),
    comparison_types=frozenset({"binary_expression"}),
    parameter_list_types=frozenset({"formal_parameters"}),
    line_comment="//",
    block_comment=("/*", "*/"),
    implicit_parameters=frozenset({"this"}),
    dangerous_calls=frozenset({"eval", "Function"}),
    loose_equality_operators=frozenset({"==", "!="}),
)

TYPESCRIPT = LanguageProfile(
    name="typescript",
    grammar="typescript",
    block_style="brace",
    function_types=_JS_FUNCTIONS,
    loop_types=_JS_LOOPS,
    number_types=frozenset({"number"}),
    declaration_types=frozenset(
        {
            "lexical_declaration",
            "variable_declaration",
            "public_field_definition",
            "type_alias_declaration",
            "ambient_declaration",
        }
    ),
    enum_types=frozenset({"enum_declaration"}),
    call_types=frozenset({"call_expression", "new_expression"}),
    comparison_types=frozenset({"binary_expression"}),
    parameter_list_types=frozenset({"formal_parameters"}),
    line_comment="//",
    block_comment=("/*", "*/"),
    implicit_parameters=frozenset({"this"}),
    dangerous_calls=frozenset({"eval", "Function"}),
    loose_equality_operators=frozenset({"==", "!="}),
)

# TSX shares the TypeScript profile but needs its own grammar
TSX = replace(TYPESCRIPT, grammar="tsx")

LANGUAGES: dict[str, LanguageProfile] = {
    "python": PYTHON,
    "javascript": JAVASCRIPT,
    "typescript": TYPESCRIPT,
}

_PROFILES: dict[str, LanguageProfile] = {**LANGUAGES, "tsx": TSX}

# Host language identifiers and file extensions mapped to a profile name
ALIASES: dict[str, str] = {
    "python": "python",
    "py": "python",
    ".py": "python",
    "javascript": "javascript",
    "js": "javascript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    "javascriptreact": "javascript",
    "jsx": "javascript",
    ".jsx": "javascript",
    "typescript": "typescript",
    "ts": "typescript",
    ".ts": "typescript",
    "typescriptreact": "tsx",
    "tsx": "tsx",
    ".tsx": "tsx",
}


def get_profile(language: str) -> LanguageProfile | None:
    """Resolve a host language identifier; None means limited support."""
    name = ALIASES.get((language or "").strip().lower())
    if name is None:
        return None
    return _PROFILES[name]


def detect_language(path: str) -> str:
    """Guess a language identifier from a file name."""
    lowered = path.lower()
    for ext, name in ALIASES.items():
        if ext.startswith(".") and lowered.endswith(ext):
            return name
    return "unknown"


def supported_languages() -> list[str]:
    return list(LANGUAGES)


def require_profile(language: str) -> LanguageProfile:
    """Like ``get_profile`` but raises for languages without support.

    Raises:
        UnsupportedLanguageError: If no profile matches ``language``
    """
    profile = get_profile(language)
    if profile is None:
        raise UnsupportedLanguageError(language or "unknown", supported_languages())
    return profile
