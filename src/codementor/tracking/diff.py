"""Line and byte diffing between consecutive revisions."""

from __future__ import annotations

import difflib
from typing import Iterable, Optional

from .models import LineRange, TextEdit


def compute_changed_ranges(old_text: Optional[str], new_text: str) -> tuple[LineRange, ...]:
    """Minimal set of new-text line ranges that differ from ``old_text``.

    With no previous text every line counts as changed. Pure deletions mark
    the lines on either side of the removed block.
    """
    new_lines = new_text.splitlines()
    if old_text is None:
        return (LineRange(1, len(new_lines)),) if new_lines else ()

    old_lines = old_text.splitlines()
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    ranges: list[LineRange] = []
    for tag, _i1, _i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        if j2 > j1:
            ranges.append(LineRange(j1 + 1, j2))
        elif new_lines:
            # Deletion: the seam sits between new lines j1 and j1 + 1
            start = max(1, j1)
            ranges.append(LineRange(start, min(j1 + 1, len(new_lines)) or start))
    return merge_ranges(ranges)


def normalize_ranges(ranges: Iterable[tuple[int, int] | LineRange], line_count: int) -> tuple[LineRange, ...]:
    """Clamp host-supplied ranges to the text and merge them."""
    clamped: list[LineRange] = []
    upper = max(line_count, 1)
    for item in ranges:
        start, end = (item.start, item.end) if isinstance(item, LineRange) else item
        start = min(max(int(start), 1), upper)
        end = min(max(int(end), start), upper)
        clamped.append(LineRange(start, end))
    return merge_ranges(clamped)


def merge_ranges(ranges: Iterable[LineRange]) -> tuple[LineRange, ...]:
    """Merge overlapping and adjacent ranges."""
    merged: list[LineRange] = []
    for r in sorted(ranges):
        if merged and r.start <= merged[-1].end + 1:
            last = merged[-1]
            merged[-1] = LineRange(last.start, max(last.end, r.end))
        else:
            merged.append(r)
    return tuple(merged)


def compute_text_edit(old_text: str, new_text: str) -> Optional[TextEdit]:
    """Coalesce the difference into one edit via common prefix and suffix.

    Returns None when the texts are identical.
    """
    old_bytes = old_text.encode("utf-8", "surrogatepass")
    new_bytes = new_text.encode("utf-8", "surrogatepass")
    if old_bytes == new_bytes:
        return None

    limit = min(len(old_bytes), len(new_bytes))
    prefix = 0
    while prefix < limit and old_bytes[prefix] == new_bytes[prefix]:
        prefix += 1

    suffix = 0
    while (
        suffix < limit - prefix
        and old_bytes[len(old_bytes) - 1 - suffix] == new_bytes[len(new_bytes) - 1 - suffix]
    ):
        suffix += 1

    old_end = len(old_bytes) - suffix
    new_end = len(new_bytes) - suffix
    return TextEdit(
        start_byte=prefix,
        old_end_byte=old_end,
        new_end_byte=new_end,
        start_point=_point_at(new_bytes, prefix),
        old_end_point=_point_at(old_bytes, old_end),
        new_end_point=_point_at(new_bytes, new_end),
    )


def _point_at(data: bytes, offset: int) -> tuple[int, int]:
    row = data.count(b"\n", 0, offset)
    line_start = data.rfind(b"\n", 0, offset) + 1
    return (row, offset - line_start)
