"""Classification models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from ..detection.models import PatternOccurrence


class IssueCategory(str, Enum):
    """The fixed set of categories a pattern can be filed under."""

    SYNTAX_BASICS = "Syntax Basics"
    LOGIC_CLARITY = "Logic Clarity"
    PERFORMANCE = "Performance"
    READABILITY = "Readability"
    SECURITY = "Security"


@dataclass(frozen=True)
class ClassifiedPattern:
    """A pattern occurrence with exactly one category and a confidence in [0, 1]."""

    occurrence: PatternOccurrence
    category: IssueCategory
    confidence: float
    remote_adjusted: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.category, IssueCategory):
            raise TypeError(f"category must be an IssueCategory, got {self.category!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def identity(self) -> str:
        return self.occurrence.identity

    def with_confidence(self, confidence: float) -> ClassifiedPattern:
        """Copy with an adjusted confidence; the category never changes."""
        return replace(self, confidence=min(1.0, max(0.0, confidence)), remote_adjusted=True)

    def to_dict(self) -> dict[str, Any]:
        data = self.occurrence.to_dict()
        data["category"] = self.category.value
        data["confidence"] = round(self.confidence, 4)
        data["remote_adjusted"] = self.remote_adjusted
        return data


@dataclass(frozen=True)
class LowConfidenceEvent:
    """Recorded whenever a classification falls below the confidence threshold."""

    identity: str
    kind: str
    language: str
    category: IssueCategory
    confidence: float
    reason: str
