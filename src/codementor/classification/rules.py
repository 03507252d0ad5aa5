"""Classification rule table: one rule per pattern kind.

Adding a rule: add a ClassificationRule to RULES (or to a language's entry
in LANGUAGE_RULES to override it for that language only).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..detection.models import PatternKind, PatternOccurrence
from .models import IssueCategory

# Literals that are usually fine even outside a declaration
BENIGN_NUMBERS = frozenset({"0", "1", "2", "-1", "0.0", "1.0", "0.5", "10", "100"})


@dataclass(frozen=True)
class ClassificationRule:
    kind: str
    category: IssueCategory
    confidence: float
    # Returns an adjusted confidence and a reason, or None to keep the base
    adjust: Optional[Callable[[PatternOccurrence, float], Optional[tuple[float, str]]]] = None

    def confidence_for(self, occurrence: PatternOccurrence) -> tuple[float, str]:
        if self.adjust is not None:
            adjusted = self.adjust(occurrence, self.confidence)
            if adjusted is not None:
                return adjusted
        return self.confidence, "base rule"


def _borderline_function(occurrence: PatternOccurrence, base: float) -> Optional[tuple[float, str]]:
    lines = occurrence.metadata.get("logical_lines")
    threshold = occurrence.metadata.get("threshold")
    if isinstance(lines, int) and isinstance(threshold, int) and lines <= threshold * 1.2:
        return 0.65, f"{lines} logical lines is close to the {threshold}-line threshold"
    return None


def _benign_number(occurrence: PatternOccurrence, base: float) -> Optional[tuple[float, str]]:
    value = str(occurrence.metadata.get("value", ""))
    if value in BENIGN_NUMBERS:
        return 0.6, f"literal {value} is commonly self-explanatory"
    return None


def _deep_nest(occurrence: PatternOccurrence, base: float) -> Optional[tuple[float, str]]:
    if occurrence.metadata.get("depth", 0) >= 3:
        return 0.9, "three or more nested loops"
    return None


def _long_duplicate(occurrence: PatternOccurrence, base: float) -> Optional[tuple[float, str]]:
    if occurrence.metadata.get("lines", 0) >= 10:
        return 0.95, "ten or more duplicated lines"
    return None


RULES: dict[str, ClassificationRule] = {
    rule.kind: rule
    for rule in (
        ClassificationRule(PatternKind.LONG_FUNCTION.value, IssueCategory.LOGIC_CLARITY, 0.9, _borderline_function),
        ClassificationRule(PatternKind.MAGIC_NUMBER.value, IssueCategory.READABILITY, 0.85, _benign_number),
        ClassificationRule(PatternKind.NESTED_LOOP.value, IssueCategory.PERFORMANCE, 0.8, _deep_nest),
        ClassificationRule(PatternKind.DUPLICATED_CODE.value, IssueCategory.LOGIC_CLARITY, 0.85, _long_duplicate),
        ClassificationRule(PatternKind.LONG_PARAMETER_LIST.value, IssueCategory.READABILITY, 0.8),
        ClassificationRule(PatternKind.EVAL_USAGE.value, IssueCategory.SECURITY, 0.95),
        ClassificationRule(PatternKind.LOOSE_EQUALITY.value, IssueCategory.SYNTAX_BASICS, 0.9),
    )
}

# Per-language overrides, consulted before RULES
LANGUAGE_RULES: dict[str, dict[str, ClassificationRule]] = {
    "typescript": {
        PatternKind.LOOSE_EQUALITY.value: ClassificationRule(
            PatternKind.LOOSE_EQUALITY.value, IssueCategory.SYNTAX_BASICS, 0.95
        ),
    },
}
