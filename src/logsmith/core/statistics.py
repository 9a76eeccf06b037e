"""Per-release statistics."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from logsmith.core.commits import Commit


@dataclass(frozen=True)
class LinkCount:
    """How often a link appears in a release."""

    text: str
    href: str
    count: int

    def to_context(self) -> dict[str, Any]:
        return {"text": self.text, "href": self.href, "count": self.count}


@dataclass(frozen=True)
class Statistics:
    """Aggregated numbers about a release."""

    commit_count: int
    commits_timespan: int | None
    conventional_commit_count: int
    links: tuple[LinkCount, ...]
    days_passed_since_last_release: int | None

    def to_context(self) -> dict[str, Any]:
        return {
            "commit_count": self.commit_count,
            "commits_timespan": self.commits_timespan,
            "conventional_commit_count": self.conventional_commit_count,
            "links": [link.to_context() for link in self.links],
            "days_passed_since_last_release": self.days_passed_since_last_release,
        }


def _day(timestamp: int) -> date:
    return datetime.fromtimestamp(timestamp, tz=UTC).date()


def days_between(start: int, end: int) -> int:
    """Number of calendar days (UTC) between two timestamps."""
    return (_day(end) - _day(start)).days


def compute_statistics(
    commits: Sequence[Commit],
    timestamp: int | None,
    previous_timestamp: int | None,
    now: int | None = None,
) -> Statistics:
    """Compute statistics for the commits of one release.

    Args:
        commits: Commits of the release
        timestamp: Release timestamp, None for an unreleased release
        previous_timestamp: Timestamp of the previous release, if any
        now: Reference time used for unreleased releases (default: now)

    Returns:
        Statistics of the release
    """
    counts: Counter[tuple[str, str]] = Counter(
        (link.text, link.href) for commit in commits for link in commit.links
    )
    links = sorted(
        (LinkCount(text, href, count) for (text, href), count in counts.items()),
        key=lambda link: (-link.count, link.text, link.href),
    )

    timespan = None
    if len(commits) >= 2:
        stamps = [commit.committer.timestamp for commit in commits]
        timespan = days_between(min(stamps), max(stamps))

    days_passed = None
    if previous_timestamp is not None:
        reference = timestamp if timestamp is not None else (now if now is not None else int(time.time()))
        days_passed = days_between(previous_timestamp, reference)

    return Statistics(
        commit_count=len(commits),
        commits_timespan=timespan,
        conventional_commit_count=sum(1 for commit in commits if commit.conv is not None),
        links=tuple(links),
        days_passed_since_last_release=days_passed,
    )
