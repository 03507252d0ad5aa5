"""
codementor - Real-time Code Analysis Engine

Turns raw source text into classified, de-duplicated learning moments:
multi-language structural pattern detection over incrementally re-parsed
syntax trees, rule-based issue classification, a TTL- and size-bounded
notification cache, and a bounded per-workspace job scheduler with an
optional remote assist path that degrades gracefully.
"""

__version__ = "0.1.0"

from .api import handle_json, handle_request, handle_request_async
from .classification import ClassifiedPattern, IssueCategory
from .config import EngineConfig, file_provider, load_config, static_provider
from .engine import SCHEMA_VERSION, AnalysisEngine, AnalysisResult

__all__ = [
    "AnalysisEngine",  # Main entry point: analyze() and check_and_record()
    "AnalysisResult",
    "ClassifiedPattern",
    "IssueCategory",
    "EngineConfig",
    "load_config",
    "file_provider",
    "static_provider",
    "handle_request",  # JSON boundary
    "handle_request_async",
    "handle_json",
    "SCHEMA_VERSION",
]
