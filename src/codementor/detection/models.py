"""Data models for pattern detection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class PatternKind(str, Enum):
    """Built-in pattern kinds. Queries may emit other kind strings."""

    LONG_FUNCTION = "long-function"
    MAGIC_NUMBER = "magic-number"
    NESTED_LOOP = "nested-loop"
    DUPLICATED_CODE = "duplicated-code"
    LONG_PARAMETER_LIST = "long-parameter-list"
    EVAL_USAGE = "eval-usage"
    LOOSE_EQUALITY = "loose-equality"


# Kinds that never need the remote path
LOCAL_KINDS = frozenset(kind.value for kind in PatternKind)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, order=True)
class SourceRange:
    """Absolute source range: lines 1-indexed, columns 0-indexed."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def shifted(self, delta: int) -> SourceRange:
        if delta == 0:
            return self
        return replace(self, start_line=self.start_line + delta, end_line=self.end_line + delta)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_col": self.start_col,
            "end_line": self.end_line,
            "end_col": self.end_col,
        }


@dataclass(frozen=True)
class Match:
    """What a query reports, before the detector assigns an identity.

    Attributes:
        kind: Pattern kind
        range: Where the pattern is
        severity: Query-assigned severity
        metadata: Free-form detector metadata
    """

    kind: str
    range: SourceRange
    severity: Severity
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def shifted(self, delta: int) -> Match:
        if delta == 0:
            return self
        return replace(self, range=self.range.shifted(delta))


@dataclass(frozen=True)
class PatternOccurrence:
    """One detected pattern. Produced fresh per analysis, never mutated.

    Attributes:
        identity: Stable hash of file, kind and normalized location
        file: File identifier
        language: Profile name of the analyzed tree
        kind: Pattern kind (a PatternKind value or a custom string)
        range: Source range of the occurrence
        severity: low / medium / high
        scope: Name of the enclosing function ("<module>" at top level)
        metadata: Free-form detector metadata
    """

    identity: str
    file: str
    language: str
    kind: str
    range: SourceRange
    severity: Severity
    scope: str = "<module>"
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "file": self.file,
            "language": self.language,
            "kind": str(getattr(self.kind, "value", self.kind)),
            "range": self.range.to_dict(),
            "severity": self.severity.value,
            "scope": self.scope,
            "metadata": dict(self.metadata),
        }
