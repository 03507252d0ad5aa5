"""Tests for the codementor exception hierarchy."""

import pytest

from codementor.exceptions import (
    AnalysisError,
    AnalysisSupersededError,
    CacheCorruptionError,
    ClassificationAmbiguityError,
    CodementorError,
    ConfigurationError,
    InvalidRequestError,
    ParseError,
    QueueOverflowError,
    RemoteUnavailableError,
    UnsupportedLanguageError,
)


class TestHierarchy:
    """Every engine error derives from CodementorError."""

    @pytest.mark.parametrize(
        "error",
        [
            ParseError("a.py", "python", "unbalanced"),
            UnsupportedLanguageError("cobol", ["python"]),
            ClassificationAmbiguityError("main-function", "python"),
            AnalysisSupersededError("a.py", 1, 2),
            RemoteUnavailableError("structural analysis", "timed out", 5.0),
            QueueOverflowError("default", 32),
            CacheCorruptionError("/tmp/cache", "checksum mismatch"),
            InvalidRequestError("must be a list", "changedRanges"),
            ConfigurationError("bad"),
        ],
    )
    def test_base_class(self, error):
        assert isinstance(error, CodementorError)

    def test_analysis_errors(self):
        assert issubclass(ParseError, AnalysisError)
        assert issubclass(AnalysisSupersededError, AnalysisError)
        assert not issubclass(QueueOverflowError, AnalysisError)


class TestMessages:
    """Details are rendered after the message."""

    def test_details_in_str(self):
        error = RemoteUnavailableError("classification assist", "timed out", 10.0)
        assert str(error) == (
            "Remote classification assist unavailable "
            "(operation=classification assist, reason=timed out, timeout=10.0s)"
        )

    def test_plain_message(self):
        assert str(ConfigurationError("Config file not found: x.toml")) == "Config file not found: x.toml"

    def test_supersession_attributes(self):
        error = AnalysisSupersededError("a.py", 3, 5)
        assert (error.revision, error.latest) == (3, 5)
        assert "latest=5" in str(error)

    def test_invalid_request_without_field(self):
        error = InvalidRequestError("payload must be a JSON object")
        assert error.field is None
        assert error.details == {}
