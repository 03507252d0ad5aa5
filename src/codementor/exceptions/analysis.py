"""Analysis-related exceptions: parsing, classification, supersession."""

from typing import List

from .base import CodementorError


class AnalysisError(CodementorError):
    """Base class for analysis-related errors."""
    pass


class ParseError(AnalysisError):
    """A region of source could not be parsed.

    Localized and non-fatal: the parser records it as an error node and
    detection skips the affected subtree.
    """

    def __init__(self, file: str, language: str, reason: str):
        super().__init__(
            f"Failed to parse {language} source: {file}",
            details={"file": file, "language": language, "reason": reason},
        )
        self.file = file
        self.language = language
        self.reason = reason


class UnsupportedLanguageError(AnalysisError):
    """Raised when a language identifier has no parser capability."""

    def __init__(self, language: str, supported_languages: List[str]):
        super().__init__(
            f"Unsupported language: {language}",
            details={"language": language, "supported": ", ".join(supported_languages)},
        )
        self.language = language
        self.supported_languages = supported_languages


class ClassificationAmbiguityError(AnalysisError):
    """No rule matched a pattern kind; resolved by the classifier's fallback."""

    def __init__(self, kind: str, language: str):
        super().__init__(
            f"No classification rule for pattern kind: {kind}",
            details={"kind": kind, "language": language},
        )
        self.kind = kind
        self.language = language


class AnalysisSupersededError(AnalysisError):
    """A newer revision of the same file made this analysis obsolete."""

    def __init__(self, file: str, revision: int, latest: int):
        super().__init__(
            f"Analysis of {file} superseded",
            details={"file": file, "revision": str(revision), "latest": str(latest)},
        )
        self.file = file
        self.revision = revision
        self.latest = latest
