"""Release assembly.

A history is cut into releases at tagged commits. Each release holds the
commits after the previous tag up to and including its own tagged commit,
and links to the release before it through ``previous``. Commits after the
newest tag form the unreleased release.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from logsmith.core.statistics import Statistics, compute_statistics
from logsmith.core.version import next_version

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from logsmith.config.models import BumpConfig, ChangelogConfig, GitConfig
    from logsmith.core.commits import Commit
    from logsmith.remote.models import RemoteReleaseMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tag:
    """A git tag pointing at a commit."""

    name: str
    message: str | None = None
    timestamp: int | None = None


@dataclass
class Release:
    """A tagged (or unreleased) set of commits."""

    version: str | None = None
    message: str | None = None
    commits: list[Commit] = field(default_factory=list)
    submodule_commits: dict[str, list[Commit]] = field(default_factory=dict)
    commit_id: str | None = None
    timestamp: int | None = None
    previous: Release | None = field(default=None, repr=False)
    repository: str | None = None
    statistics: Statistics | None = None
    remote: RemoteReleaseMetadata | None = None

    def calculate_next_version(self, config: BumpConfig) -> str:
        """Compute the version this release should get.

        Returns ``initial_tag`` when there is no previous version to bump.

        Raises:
            VersionParseError: If the previous version is not semver-like
        """
        if self.previous is None or self.previous.version is None:
            logger.warning("No releases found, using %s as the next version", config.initial_tag)
            return config.initial_tag
        return next_version(
            self.previous.version,
            (commit.message for commit in self.commits),
            config,
        )

    def to_context(self, include_previous: bool = True) -> dict[str, Any]:
        """Serialize the release for templates and JSON output.

        Only one level of ``previous`` is serialized.
        """
        previous = None
        if include_previous and self.previous is not None:
            previous = self.previous.to_context(include_previous=False)
        return {
            "version": self.version,
            "message": self.message,
            "commits": [commit.to_context() for commit in self.commits],
            "submodule_commits": {
                path: [commit.to_context() for commit in commits]
                for path, commits in self.submodule_commits.items()
            },
            "commit_id": self.commit_id,
            "timestamp": self.timestamp,
            "previous": previous,
            "repository": self.repository,
            "statistics": self.statistics.to_context() if self.statistics else None,
            "remote": self.remote.to_context() if self.remote else None,
        }


def filter_tags(tags: Mapping[str, Tag], config: GitConfig) -> dict[str, Tag]:
    """Drop tags that should not start a release.

    Tags that do not match ``tag_pattern``, match ``ignore_tags`` or do not
    match ``count_tags`` are removed, so their commits fold into the next
    release. Tags matching ``skip_tags`` are kept here and pruned later
    together with their commits.
    """
    result: dict[str, Tag] = {}
    for commit_id, tag in tags.items():
        if config.tag_pattern is not None and not config.tag_pattern.search(tag.name):
            continue
        if config.skip_tags is not None and config.skip_tags.search(tag.name):
            result[commit_id] = tag
            continue
        if config.ignore_tags is not None and config.ignore_tags.search(tag.name):
            logger.debug("Ignoring tag %s", tag.name)
            continue
        if config.count_tags is not None and not config.count_tags.search(tag.name):
            logger.debug("Not counting tag %s", tag.name)
            continue
        result[commit_id] = tag
    return result


def assemble_releases(
    commits: Sequence[Commit],
    tags: Mapping[str, Tag],
    *,
    repository: str | None = None,
    sort_commits: Literal["oldest", "newest"] = "oldest",
) -> list[Release]:
    """Partition a history into releases.

    Args:
        commits: Commits in git log order (newest first)
        tags: Tags keyed by commit id, oldest tag first
        repository: Repository path recorded on every release
        sort_commits: Commit order inside each release

    Returns:
        Releases, newest first; an unreleased release comes first if the
        newest commits are not tagged
    """
    releases: list[Release] = []
    previous: Release | None = None
    bucket: list[Commit] = []
    first_tag: str | None = None

    for commit in reversed(commits):
        bucket.append(commit)
        tag = tags.get(commit.id)
        if tag is None:
            continue
        if first_tag is None:
            first_tag = commit.id
        release = Release(
            version=tag.name,
            message=tag.message,
            commits=bucket,
            commit_id=commit.id,
            timestamp=tag.timestamp if tag.timestamp is not None else commit.committer.timestamp,
            previous=previous,
            repository=repository,
        )
        releases.append(release)
        previous = release
        bucket = []

    if bucket:
        releases.append(Release(commits=bucket, previous=previous, repository=repository))

    if sort_commits == "newest":
        for release in releases:
            release.commits.reverse()

    if releases and releases[0].previous is None:
        releases[0].previous = _baseline_release(tags, first_tag)

    releases.reverse()
    return releases


def _baseline_release(tags: Mapping[str, Tag], first_tag: str | None) -> Release | None:
    """Release for the tag preceding the assembled range, if any."""
    ids = list(tags)
    if first_tag is None:
        if not ids:
            return None
        index = len(ids) - 1
    else:
        index = ids.index(first_tag) - 1
        if index < 0:
            return None

    commit_id = ids[index]
    tag = tags[commit_id]
    return Release(
        version=tag.name,
        message=tag.message,
        commit_id=commit_id,
        timestamp=tag.timestamp,
    )


def process_releases(
    releases: list[Release],
    git_config: GitConfig,
    changelog_config: ChangelogConfig,
) -> list[Release]:
    """Prune skipped and empty releases and attach statistics.

    Args:
        releases: Releases, newest first
        git_config: Provides ``skip_tags``
        changelog_config: Provides ``render_always``

    Returns:
        The surviving releases, in the same order
    """
    skip_tags = git_config.skip_tags

    def skipped(release: Release) -> bool:
        return (
            skip_tags is not None
            and release.version is not None
            and skip_tags.search(release.version) is not None
        )

    kept: list[Release] = []
    for release in releases:
        if skipped(release):
            logger.debug("Skipping release %s and its %d commits", release.version, len(release.commits))
            continue
        kept.append(release)

    for release in kept:
        while release.previous is not None and skipped(release.previous):
            release.previous = release.previous.previous

    result: list[Release] = []
    for release in kept:
        if not release.commits:
            previous = release.previous
            if not (changelog_config.render_always and previous is not None and not previous.commits):
                logger.debug("Dropping empty release %s", release.version or "unreleased")
                continue
        result.append(release)

    for release in result:
        release.statistics = compute_statistics(
            release.commits,
            release.timestamp,
            release.previous.timestamp if release.previous is not None else None,
        )

    return result
