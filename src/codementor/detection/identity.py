"""Stable pattern identities.

An identity must survive edits elsewhere in the file, so it is built from
the file, the pattern kind, the enclosing function path, the
whitespace-normalized text of the occurrence's first line and an ordinal
among occurrences sharing all of those. Line numbers are not part of it.
"""

from __future__ import annotations

import hashlib
from collections import defaultdict
from typing import Iterable, Sequence

from .models import Match, PatternOccurrence, SourceRange

MODULE_SCOPE = "<module>"


def normalize_text(text: str) -> str:
    return " ".join(text.split())


def pattern_identity(file: str, kind: str, scope: str, anchor: str, ordinal: int) -> str:
    payload = "\x1f".join((file, kind, scope, anchor, str(ordinal)))
    return hashlib.sha256(payload.encode("utf-8", "surrogatepass")).hexdigest()


def scope_of(span: SourceRange, functions: Sequence[tuple[SourceRange, str]]) -> str:
    """Dotted path of the functions enclosing ``span``'s start."""
    start = (span.start_line, span.start_col)
    names = [
        name
        for outer, name in sorted(functions)
        if outer != span
        and (outer.start_line, outer.start_col) <= start <= (outer.end_line, outer.end_col)
    ]
    return ".".join(names) if names else MODULE_SCOPE


def assign_identities(
    file: str,
    language: str,
    lines: list[str],
    matches: Iterable[Match],
    functions: Sequence[tuple[SourceRange, str]],
) -> list[PatternOccurrence]:
    """Turn query matches into occurrences, ordered by position."""
    ordinals: dict[tuple[str, str, str], int] = defaultdict(int)
    occurrences: list[PatternOccurrence] = []
    for match in sorted(matches, key=lambda m: (m.range, m.kind)):
        scope = scope_of(match.range, functions)
        line_index = match.range.start_line - 1
        anchor = normalize_text(lines[line_index]) if 0 <= line_index < len(lines) else ""
        key = (match.kind, scope, anchor)
        ordinal = ordinals[key]
        ordinals[key] += 1
        occurrences.append(
            PatternOccurrence(
                identity=pattern_identity(file, match.kind, scope, anchor, ordinal),
                file=file,
                language=language,
                kind=match.kind,
                range=match.range,
                severity=match.severity,
                scope=scope,
                metadata=dict(match.metadata),
            )
        )
    return occurrences
