"""Bookkeeping for commits left out of the changelog."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from logsmith.exceptions import CommitSkipped, SkipKind

logger = logging.getLogger(__name__)


@dataclass
class ProcessingSummary:
    """Counts of processed and skipped commits.

    ``unparsed`` counts commits that failed conventional parsing but were
    kept because unconventional commits are not filtered.
    """

    processed: int = 0
    skipped: Counter[SkipKind] = field(default_factory=Counter)
    unparsed: int = 0

    def record_skip(self, commit_id: str, skip: CommitSkipped) -> None:
        self.skipped[skip.kind] += 1
        logger.debug("Skipping commit %s (%s): %s", commit_id[:7], skip.kind, skip.reason)

    @property
    def unconventional(self) -> int:
        """Number of commits that failed conventional parsing."""
        return self.skipped[SkipKind.UNCONVENTIONAL] + self.unparsed

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def messages(self) -> list[tuple[SkipKind, str]]:
        """Human readable lines, one per skip kind that occurred."""
        lines = []
        for kind in SkipKind:
            count = self.skipped[kind]
            if not count:
                continue
            noun = "commit" if count == 1 else "commits"
            if kind is SkipKind.UNCONVENTIONAL:
                text = f"{count} {noun} skipped because they are not conventional"
            elif kind is SkipKind.SKIPPED:
                text = f"{count} {noun} skipped by commit parsers"
            else:
                text = f"{count} {noun} skipped because no commit parser matched"
            lines.append((kind, text))
        return lines
