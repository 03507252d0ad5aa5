"""Source buffer tracking: revisions and changed ranges."""

from .diff import compute_changed_ranges, compute_text_edit, merge_ranges, normalize_ranges
from .models import LineRange, SourceRevision, TextEdit
from .tracker import SourceBufferTracker

__all__ = [
    "LineRange",
    "SourceRevision",
    "TextEdit",
    "SourceBufferTracker",
    "compute_changed_ranges",
    "compute_text_edit",
    "merge_ranges",
    "normalize_ranges",
]
