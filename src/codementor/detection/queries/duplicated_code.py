"""DUPLICATED_CODE: the same run of lines appearing twice in one file.

Scope: FILE
Severity: medium, high for runs of 20 or more lines

Lines are compared after whitespace normalization (every run of
whitespace collapses to one space, ends trimmed) and must be exactly equal.
Blank and comment-only lines are skipped, so "consecutive" means
consecutive among the remaining lines. A window made only of brackets and
separators never counts, and lines inside unparsable regions break a run.

Each duplicate run is reported once, at the later copy, with the earliest
copy's lines in the metadata.
"""

from __future__ import annotations

from typing import Optional

from ...scanning.languages import get_profile
from ...scanning.syntax import SyntaxTree
from ..base import DetectionSettings, FileQuery, is_logical_line, is_punctuation_only
from ..models import Match, PatternKind, SourceRange, Severity

_HIGH_SEVERITY_LINES = 20


class DuplicatedCodeQuery(FileQuery):
    """Detects copy-pasted blocks within a file."""

    kind = PatternKind.DUPLICATED_CODE.value

    def find_in_file(self, tree: SyntaxTree, settings: DetectionSettings) -> list[Match]:
        window = settings.duplicate_min_lines
        lines = self._significant_lines(tree)
        if len(lines) < 2 * window:
            return []

        first_seen: dict[tuple[str, ...], int] = {}
        pairs: list[tuple[int, int]] = []
        for i in range(len(lines) - window + 1):
            chunk = lines[i:i + window]
            if any(text is None for _, text in chunk):
                continue
            key = tuple(text for _, text in chunk)  # type: ignore[misc]
            if all(is_punctuation_only(text) for text in key):
                continue
            j = first_seen.get(key)
            if j is None:
                first_seen[key] = i
            elif i - j >= window:
                pairs.append((i, j))

        source_lines = tree.source.split("\n")
        return [self._to_match(lines, source_lines, run, window) for run in _merge_runs(pairs)]

    def _significant_lines(self, tree: SyntaxTree) -> list[tuple[int, Optional[str]]]:
        """(line number, normalized text); text is None for an error barrier."""
        profile = get_profile(tree.language)
        error_lines: set[int] = set()
        for start, end in tree.error_spans():
            error_lines.update(range(start, end + 1))

        result: list[tuple[int, Optional[str]]] = []
        for line_no, raw in enumerate(tree.source.split("\n"), start=1):
            if line_no in error_lines:
                if result and result[-1][1] is not None:
                    result.append((line_no, None))
                continue
            stripped = raw.strip()
            if not stripped or (profile is not None and profile.is_comment_line(stripped)):
                continue
            result.append((line_no, " ".join(stripped.split())))
        return result

    def _to_match(
        self,
        lines: list[tuple[int, Optional[str]]],
        source_lines: list[str],
        run: tuple[int, int, int],
        window: int,
    ) -> Match:
        dup_start, orig_start, length = run
        count = length + window - 1
        dup_first, dup_last = lines[dup_start][0], lines[dup_start + count - 1][0]
        orig_first, orig_last = lines[orig_start][0], lines[orig_start + count - 1][0]
        logical = sum(
            1 for _, text in lines[dup_start:dup_start + count] if text is not None and is_logical_line(text, None)
        )
        return Match(
            kind=self.kind,
            range=SourceRange(dup_first, 0, dup_last, len(source_lines[dup_last - 1].rstrip())),
            severity=Severity.HIGH if count >= _HIGH_SEVERITY_LINES else Severity.MEDIUM,
            metadata={
                "lines": count,
                "logical_lines": logical,
                "original_start_line": orig_first,
                "original_end_line": orig_last,
            },
        )


def _merge_runs(pairs: list[tuple[int, int]]) -> list[tuple[int, int, int]]:
    """Merge (dup, orig) window pairs that continue each other.

    Returns (dup_start, orig_start, window_count) per run.
    """
    runs: list[tuple[int, int, int]] = []
    for i, j in pairs:
        if runs:
            dup_start, orig_start, length = runs[-1]
            if i == dup_start + length and j == orig_start + length:
                runs[-1] = (dup_start, orig_start, length + 1)
                continue
        runs.append((i, j, 1))
    return runs
