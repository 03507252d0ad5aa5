"""Tests for IssueClassifier rules, fallback and low-confidence events."""

import logging

import pytest

from codementor.classification import (
    LOW_CONFIDENCE_THRESHOLD,
    ClassificationRule,
    ClassifiedPattern,
    IssueCategory,
    IssueClassifier,
)
from codementor.config import CATEGORY_NAMES
from codementor.detection import PatternKind, PatternOccurrence, Severity, SourceRange
from codementor.exceptions import ClassificationAmbiguityError


def _occurrence(kind, language="python", **metadata):
    return PatternOccurrence(
        identity=f"id-{kind}",
        file="a.py",
        language=language,
        kind=kind,
        range=SourceRange(1, 0, 1, 5),
        severity=Severity.MEDIUM,
        metadata=metadata,
    )


class TestRules:
    """Each built-in kind maps to its category."""

    @pytest.mark.parametrize(
        "kind, category",
        [
            (PatternKind.LONG_FUNCTION, IssueCategory.LOGIC_CLARITY),
            (PatternKind.MAGIC_NUMBER, IssueCategory.READABILITY),
            (PatternKind.NESTED_LOOP, IssueCategory.PERFORMANCE),
            (PatternKind.DUPLICATED_CODE, IssueCategory.LOGIC_CLARITY),
            (PatternKind.LONG_PARAMETER_LIST, IssueCategory.READABILITY),
            (PatternKind.EVAL_USAGE, IssueCategory.SECURITY),
            (PatternKind.LOOSE_EQUALITY, IssueCategory.SYNTAX_BASICS),
        ],
    )
    def test_category(self, kind, category):
        result = IssueClassifier().classify(_occurrence(kind.value))
        assert result.category is category
        assert 0.0 <= result.confidence <= 1.0

    def test_categories_match_config_names(self):
        assert [c.value for c in IssueCategory] == list(CATEGORY_NAMES)

    def test_borderline_long_function(self):
        classifier = IssueClassifier()
        near = classifier.classify(_occurrence("long-function", logical_lines=55, threshold=50))
        far = classifier.classify(_occurrence("long-function", logical_lines=90, threshold=50))
        assert near.confidence == pytest.approx(0.65)
        assert far.confidence == pytest.approx(0.9)
        assert near.category is far.category is IssueCategory.LOGIC_CLARITY

    def test_benign_magic_number(self):
        classifier = IssueClassifier()
        assert classifier.classify(_occurrence("magic-number", value="1")).confidence == pytest.approx(0.6)
        assert classifier.classify(_occurrence("magic-number", value="86400")).confidence == pytest.approx(0.85)

    def test_deep_nest_and_long_duplicate(self):
        classifier = IssueClassifier()
        assert classifier.classify(_occurrence("nested-loop", depth=3)).confidence == pytest.approx(0.9)
        assert classifier.classify(_occurrence("duplicated-code", lines=12)).confidence == pytest.approx(0.95)

    def test_language_override(self):
        classifier = IssueClassifier()
        ts = classifier.classify(_occurrence("loose-equality", language="typescript"))
        js = classifier.classify(_occurrence("loose-equality", language="javascript"))
        assert ts.confidence == pytest.approx(0.95)
        assert js.confidence == pytest.approx(0.9)

    def test_deterministic(self):
        occurrence = _occurrence("magic-number", value="7")
        assert IssueClassifier().classify(occurrence) == IssueClassifier().classify(occurrence)


class TestFallback:
    """Unknown kinds still get exactly one category."""

    def test_unknown_kind(self):
        classifier = IssueClassifier()
        result = classifier.classify(_occurrence("main-function"))
        assert result.category is IssueCategory.LOGIC_CLARITY
        assert result.confidence == pytest.approx(0.5)

    def test_rule_for_raises(self):
        with pytest.raises(ClassificationAmbiguityError):
            IssueClassifier().rule_for("main-function", "python")

    def test_custom_rule(self):
        rules = {"main-function": ClassificationRule("main-function", IssueCategory.READABILITY, 0.8)}
        result = IssueClassifier(rules=rules).classify(_occurrence("main-function"))
        assert result.category is IssueCategory.READABILITY


class TestLowConfidence:
    """Low confidence is logged and kept, never re-categorized."""

    def test_event_recorded_and_logged(self, caplog):
        classifier = IssueClassifier()
        with caplog.at_level(logging.INFO, logger="codementor"):
            result = classifier.classify(_occurrence("main-function"))
        (event,) = classifier.low_confidence_events
        assert event.identity == result.identity
        assert event.confidence < LOW_CONFIDENCE_THRESHOLD
        assert event.category is IssueCategory.LOGIC_CLARITY
        assert "Low-confidence classification" in caplog.text

    def test_high_confidence_not_recorded(self):
        classifier = IssueClassifier()
        classifier.classify(_occurrence("eval-usage"))
        assert len(classifier.low_confidence_events) == 0

    def test_ring_is_bounded(self):
        classifier = IssueClassifier(history=3)
        for _ in range(5):
            classifier.classify(_occurrence("main-function"))
        assert len(classifier.low_confidence_events) == 3


class TestClassifiedPattern:
    """Invariants of the classified record."""

    def test_confidence_range_enforced(self):
        with pytest.raises(ValueError):
            ClassifiedPattern(_occurrence("eval-usage"), IssueCategory.SECURITY, 1.5)

    def test_category_type_enforced(self):
        with pytest.raises(TypeError):
            ClassifiedPattern(_occurrence("eval-usage"), "Security", 0.9)

    def test_with_confidence_keeps_category(self):
        pattern = ClassifiedPattern(_occurrence("eval-usage"), IssueCategory.SECURITY, 0.95)
        adjusted = pattern.with_confidence(1.7)
        assert adjusted.category is IssueCategory.SECURITY
        assert adjusted.confidence == 1.0
        assert adjusted.remote_adjusted

    def test_to_dict(self):
        data = ClassifiedPattern(_occurrence("eval-usage"), IssueCategory.SECURITY, 0.95).to_dict()
        assert data["category"] == "Security"
        assert data["kind"] == "eval-usage"
        assert data["range"] == {"start_line": 1, "start_col": 0, "end_line": 1, "end_col": 5}
