"""Exception hierarchy for the codementor engine."""

from .analysis import (
    AnalysisError,
    AnalysisSupersededError,
    ClassificationAmbiguityError,
    ParseError,
    UnsupportedLanguageError,
)
from .base import CodementorError
from .config import ConfigurationError
from .runtime import (
    CacheCorruptionError,
    InvalidRequestError,
    QueueOverflowError,
    RemoteUnavailableError,
)

__all__ = [
    "CodementorError",
    "AnalysisError",
    "ParseError",
    "UnsupportedLanguageError",
    "ClassificationAmbiguityError",
    "AnalysisSupersededError",
    "RemoteUnavailableError",
    "QueueOverflowError",
    "CacheCorruptionError",
    "InvalidRequestError",
    "ConfigurationError",
]
