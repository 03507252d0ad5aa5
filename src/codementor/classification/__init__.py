"""Issue classification: pattern kind to category."""

from .classifier import LOW_CONFIDENCE_THRESHOLD, IssueClassifier
from .models import ClassifiedPattern, IssueCategory, LowConfidenceEvent
from .rules import LANGUAGE_RULES, RULES, ClassificationRule

__all__ = [
    "ClassificationRule",
    "ClassifiedPattern",
    "IssueCategory",
    "IssueClassifier",
    "LANGUAGE_RULES",
    "LOW_CONFIDENCE_THRESHOLD",
    "LowConfidenceEvent",
    "RULES",
]
