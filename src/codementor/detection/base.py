"""Base classes for pattern queries.

Adding a new pattern kind requires:
1. Subclass NodeQuery (matches inside one top-level node) or FileQuery
   (needs the whole file) in a new module under ``queries/``.
2. Add an instance to DEFAULT_QUERIES in ``queries/__init__.py``.
3. Add a classification rule for its kind.
Existing queries are never touched.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..scanning.languages import LanguageProfile, get_profile
from ..scanning.syntax import NodeKind, Positioned, RootRef, SyntaxTree
from .models import Match, SourceRange

if TYPE_CHECKING:
    from ..config import EngineConfig

_PUNCTUATION_ONLY = re.compile(r"^[\s{}()\[\];,:]*$")


@dataclass(frozen=True)
class DetectionSettings:
    """Thresholds the queries read. Hashable, used as part of the memo key."""

    min_function_length: int = 50
    max_parameters: int = 5
    duplicate_min_lines: int = 5

    @classmethod
    def from_config(cls, config: EngineConfig) -> DetectionSettings:
        return cls(
            min_function_length=config.min_function_length,
            max_parameters=config.max_parameters,
            duplicate_min_lines=config.duplicate_min_lines,
        )


class PatternQuery(ABC):
    """A side-effect-free structural query for one pattern kind."""

    kind: str
    # None means every language
    languages: Optional[frozenset[str]] = None

    def applies_to(self, language: str) -> bool:
        return self.languages is None or language in self.languages


class NodeQuery(PatternQuery):
    """Query whose matches depend only on one top-level node's subtree.

    Results are memoized per arena node, so a node reused by a later
    revision is not queried again.
    """

    @abstractmethod
    def find_in_root(self, tree: SyntaxTree, root: RootRef, settings: DetectionSettings) -> list[Match]:
        ...


class FileQuery(PatternQuery):
    """Query that needs the whole file at once."""

    @abstractmethod
    def find_in_file(self, tree: SyntaxTree, settings: DetectionSettings) -> list[Match]:
        ...


def range_of(item: Positioned) -> SourceRange:
    return SourceRange(item.start_line, item.start_col, item.end_line, item.end_col)


def is_punctuation_only(text: str) -> bool:
    return bool(_PUNCTUATION_ONLY.match(text))


def is_logical_line(text: str, profile: Optional[LanguageProfile]) -> bool:
    """Non-blank, not a comment, not just brackets and separators."""
    stripped = text.strip()
    if not stripped or is_punctuation_only(stripped):
        return False
    if profile is not None and profile.is_comment_line(stripped):
        return False
    return True


def count_logical_lines(tree: SyntaxTree, item: Positioned) -> int:
    """Logical lines of code covered by ``item``, clipped to its columns."""
    profile = get_profile(tree.language)
    lines = tree.lines
    count = 0
    for line_no in range(item.start_line, min(item.end_line, len(lines)) + 1):
        text = lines[line_no - 1]
        if line_no == item.end_line:
            text = text[:item.end_col]
        if line_no == item.start_line:
            text = text[item.start_col:]
        if is_logical_line(text, profile):
            count += 1
    return count


def body_of(tree: SyntaxTree, item: Positioned) -> Optional[Positioned]:
    """The body child of a function or loop, positioned like a walk would."""
    if item.node.body is None:
        return None
    return tree.position(item.node.body, item.root, item.ancestors + (item.kind,))


def in_declaration_context(item: Positioned) -> bool:
    """True if a declaration or enum encloses ``item`` within its own function."""
    for kind in reversed(item.ancestors):
        if kind in (NodeKind.DECLARATION, NodeKind.ENUM):
            return True
        if kind is NodeKind.FUNCTION:
            return False
    return False
