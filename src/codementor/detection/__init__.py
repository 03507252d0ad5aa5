"""Pattern detection over normalized syntax trees."""

from .base import DetectionSettings, FileQuery, NodeQuery, PatternQuery
from .detector import PatternDetector
from .identity import pattern_identity
from .models import LOCAL_KINDS, Match, PatternKind, PatternOccurrence, Severity, SourceRange

__all__ = [
    "DetectionSettings",
    "FileQuery",
    "LOCAL_KINDS",
    "Match",
    "NodeQuery",
    "PatternDetector",
    "PatternKind",
    "PatternOccurrence",
    "PatternQuery",
    "Severity",
    "SourceRange",
    "pattern_identity",
]
