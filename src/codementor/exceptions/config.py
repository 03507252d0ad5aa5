"""Configuration-related exceptions."""

from .base import CodementorError


class ConfigurationError(CodementorError):
    """Raised when configuration is invalid or cannot be loaded."""
    pass
