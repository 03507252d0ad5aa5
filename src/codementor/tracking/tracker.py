"""Source buffer tracker: per-file revisions and change ranges."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from ..logging_config import get_logger
from .diff import compute_changed_ranges, compute_text_edit, normalize_ranges
from .models import LineRange, SourceRevision

logger = get_logger(__name__)


class SourceBufferTracker:
    """Holds the latest and last-analyzed revision of each file.

    Change ranges are computed against the last *analyzed* revision when
    there is one, since that is the revision whose syntax tree the parser
    can reuse. Before the first analysis completes they are computed against
    the previous recorded revision.

    Recording the same text twice without explicit ranges returns the
    current revision unchanged, so repeated analysis of one revision is
    idempotent.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, SourceRevision] = {}
        self._analyzed: dict[str, SourceRevision] = {}

    def record_edit(
        self,
        file: str,
        new_text: str,
        changed_ranges: Optional[Iterable[tuple[int, int] | LineRange]] = None,
        language: str = "",
    ) -> SourceRevision:
        """Record a new state of ``file`` and return its revision."""
        with self._lock:
            latest = self._latest.get(file)
            if (
                latest is not None
                and changed_ranges is None
                and latest.text == new_text
                and (not language or latest.language == language)
            ):
                return latest

            base = self._analyzed.get(file) or latest
            number = latest.revision + 1 if latest is not None else 1

            # Host ranges describe the step from the latest revision only
            if changed_ranges is not None and base is not None and base is latest:
                line_count = new_text.count("\n") + 1
                ranges = normalize_ranges(changed_ranges, line_count)
            else:
                ranges = compute_changed_ranges(base.text if base else None, new_text)

            revision = SourceRevision(
                file=file,
                language=language or (latest.language if latest else ""),
                revision=number,
                text=new_text,
                changed_ranges=ranges,
                base_revision=base.revision if base is not None else 0,
                edit=compute_text_edit(base.text, new_text) if base is not None else None,
            )
            self._latest[file] = revision

        logger.debug(
            f"{file}: revision {number} (base {revision.base_revision}, "
            f"{len(ranges)} changed range(s))"
        )
        return revision

    def latest(self, file: str) -> Optional[SourceRevision]:
        with self._lock:
            return self._latest.get(file)

    def last_analyzed(self, file: str) -> Optional[SourceRevision]:
        with self._lock:
            return self._analyzed.get(file)

    def is_current(self, revision: SourceRevision) -> bool:
        """True while no newer revision of the same file has been recorded."""
        with self._lock:
            latest = self._latest.get(revision.file)
            return latest is not None and latest.revision == revision.revision

    def mark_analyzed(self, revision: SourceRevision) -> bool:
        """Promote ``revision`` to last-analyzed unless a newer one already is."""
        with self._lock:
            current = self._analyzed.get(revision.file)
            if current is not None and current.revision >= revision.revision:
                return False
            self._analyzed[revision.file] = revision
            return True

    def forget(self, file: str) -> None:
        with self._lock:
            self._latest.pop(file, None)
            self._analyzed.pop(file, None)

    def tracked_files(self) -> list[str]:
        with self._lock:
            return sorted(self._latest)
