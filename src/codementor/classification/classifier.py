"""IssueClassifier: deterministic mapping from pattern kind to category.

Every call returns exactly one category. A kind with no rule raises
ClassificationAmbiguityError internally, which resolves to Logic Clarity
at confidence 0.5. Confidence below 0.7 never changes the category; the
event is logged and kept in ``low_confidence_events``.
"""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Iterable, Optional

from ..detection.models import PatternOccurrence
from ..exceptions import ClassificationAmbiguityError
from ..logging_config import get_logger
from .models import ClassifiedPattern, IssueCategory, LowConfidenceEvent
from .rules import LANGUAGE_RULES, RULES, ClassificationRule

logger = get_logger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.7
FALLBACK_CATEGORY = IssueCategory.LOGIC_CLARITY
FALLBACK_CONFIDENCE = 0.5


class IssueClassifier:
    """Rule-table classifier with a bounded low-confidence log."""

    def __init__(
        self,
        rules: Optional[dict[str, ClassificationRule]] = None,
        language_rules: Optional[dict[str, dict[str, ClassificationRule]]] = None,
        history: int = 256,
    ) -> None:
        self._rules = dict(RULES if rules is None else rules)
        self._language_rules = LANGUAGE_RULES if language_rules is None else language_rules
        self._lock = Lock()
        self.low_confidence_events: deque[LowConfidenceEvent] = deque(maxlen=history)

    def rule_for(self, kind: str, language: str) -> ClassificationRule:
        """Resolve the rule for ``kind``, preferring the language variant.

        Raises:
            ClassificationAmbiguityError: If no rule covers ``kind``
        """
        variant = self._language_rules.get(language, {}).get(kind)
        if variant is not None:
            return variant
        rule = self._rules.get(kind)
        if rule is None:
            raise ClassificationAmbiguityError(kind, language)
        return rule

    def classify(self, occurrence: PatternOccurrence, language: Optional[str] = None) -> ClassifiedPattern:
        language = language or occurrence.language
        kind = str(getattr(occurrence.kind, "value", occurrence.kind))
        try:
            rule = self.rule_for(kind, language)
            category = rule.category
            confidence, reason = rule.confidence_for(occurrence)
        except ClassificationAmbiguityError as e:
            category, confidence = FALLBACK_CATEGORY, FALLBACK_CONFIDENCE
            reason = str(e)

        confidence = min(1.0, max(0.0, confidence))
        if confidence < LOW_CONFIDENCE_THRESHOLD:
            self._record(LowConfidenceEvent(occurrence.identity, kind, language, category, confidence, reason))
        return ClassifiedPattern(occurrence=occurrence, category=category, confidence=confidence)

    def classify_all(
        self, occurrences: Iterable[PatternOccurrence], language: Optional[str] = None
    ) -> list[ClassifiedPattern]:
        return [self.classify(occurrence, language) for occurrence in occurrences]

    def _record(self, event: LowConfidenceEvent) -> None:
        with self._lock:
            self.low_confidence_events.append(event)
        logger.info(
            f"Low-confidence classification: {event.kind} ({event.language}) -> "
            f"{event.category.value} at {event.confidence:.2f}: {event.reason}"
        )
