"""Merging remote metadata into releases."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from logsmith.remote.models import RemoteContributor, RemoteReleaseMetadata

if TYPE_CHECKING:
    from collections.abc import Sequence

    from logsmith.core.commits import Commit
    from logsmith.core.release import Release
    from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest


def _merge_commits(
    commits: Sequence[Commit],
    remote_commits: dict[str, RemoteCommit],
    pull_requests: dict[str, RemotePullRequest],
) -> tuple[list[Commit], list[RemoteContributor]]:
    seen: set[str] = set()
    merged: list[Commit] = []
    contributors: list[RemoteContributor] = []

    for commit in commits:
        remote_commit = remote_commits.get(commit.id)
        pull_request = pull_requests.get(commit.id)
        if remote_commit is None and pull_request is None:
            merged.append(commit)
            continue

        username = remote_commit.username if remote_commit else None
        first_time = username is not None and username not in seen

        contributor = RemoteContributor(
            username=username,
            pr_title=pull_request.title if pull_request else None,
            pr_number=pull_request.number if pull_request else None,
            pr_labels=pull_request.labels if pull_request else (),
            is_first_time=first_time,
        )
        merged.append(dataclasses.replace(commit, remote=contributor))

        if first_time:
            seen.add(username)
            contributors.append(contributor)

    return merged, contributors


def merge_remote_metadata(
    release: Release,
    provider: RemoteProvider,
    remote_commits: Sequence[RemoteCommit],
    pull_requests: Sequence[RemotePullRequest],
) -> Release:
    """Attach remote usernames and pull request data to a release.

    Commits are matched to remote commits by id and to pull requests by
    merge commit id, independently of each other. The first commit of each
    username gets ``is_first_time``; the release's contributors are the
    distinct usernames with the data of their first commit. Submodule
    commit lists are merged on their own and do not add contributors.

    Merging data from a second provider keeps the contributors found by
    the first one and appends its own.

    Args:
        release: Release to enrich; it is not modified
        provider: Provider the data was fetched from
        remote_commits: Commits fetched from the remote
        pull_requests: Merged pull requests fetched from the remote

    Returns:
        A new release carrying the remote metadata
    """
    commits_by_id = {remote_commit.id: remote_commit for remote_commit in remote_commits}
    prs_by_merge_commit = {
        pr.merge_commit: pr for pr in pull_requests if pr.merge_commit is not None
    }

    commits, contributors = _merge_commits(release.commits, commits_by_id, prs_by_merge_commit)
    submodule_commits = {
        path: _merge_commits(sub_commits, commits_by_id, prs_by_merge_commit)[0]
        for path, sub_commits in release.submodule_commits.items()
    }

    earlier = release.remote.contributors if release.remote else ()
    remote = RemoteReleaseMetadata(provider=provider, contributors=(*earlier, *contributors))

    return dataclasses.replace(
        release,
        commits=commits,
        submodule_commits=submodule_commits,
        remote=remote,
    )
