"""Revision models produced by the source buffer tracker."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, order=True)
class LineRange:
    """Inclusive range of 1-indexed lines in a revision's text."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid line range {self.start}-{self.end}")

    def overlaps(self, start: int, end: int) -> bool:
        return self.start <= end and start <= self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class TextEdit:
    """Single coalesced edit between two texts, in UTF-8 bytes.

    Points are (row, column) pairs, 0-indexed, columns in bytes. This is the
    shape tree-sitter's ``Tree.edit`` expects.
    """

    start_byte: int
    old_end_byte: int
    new_end_byte: int
    start_point: tuple[int, int]
    old_end_point: tuple[int, int]
    new_end_point: tuple[int, int]


@dataclass(frozen=True)
class SourceRevision:
    """One recorded state of a file.

    Attributes:
        file: File identifier
        language: Language identifier as supplied by the host
        revision: Per-file counter, strictly increasing
        text: Full text of this revision
        changed_ranges: Lines touched since ``base_revision`` (new coordinates)
        base_revision: Revision the changes are relative to (0 = none)
        edit: Byte-level edit from the base text, when a base exists
    """

    file: str
    language: str
    revision: int
    text: str
    changed_ranges: tuple[LineRange, ...] = field(default_factory=tuple)
    base_revision: int = 0
    edit: TextEdit | None = None

    @property
    def line_count(self) -> int:
        if not self.text:
            return 0
        return self.text.count("\n") + (0 if self.text.endswith("\n") else 1)

    def touches(self, start_line: int, end_line: int) -> bool:
        """True if any changed range overlaps the given lines."""
        return any(r.overlaps(start_line, end_line) for r in self.changed_ranges)
