"""Tests for merging remote metadata into releases."""

from __future__ import annotations

from typing import TYPE_CHECKING

from logsmith.core.release import Release
from logsmith.remote.merge import merge_remote_metadata
from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from logsmith.core.commits import Commit

GITLAB = RemoteProvider.GITLAB


class TestMergeRemoteMetadata:
    """Tests for merge_remote_metadata()."""

    def test_first_time_contributors(self, make_commit: Callable[..., Commit]):
        """Each username is a first-time contributor once."""
        release = Release(commits=[make_commit("a", "feat: a"), make_commit("b", "fix: b"), make_commit("c", "fix: c")])
        remote_commits = [
            RemoteCommit(GITLAB, id="a", username="alice"),
            RemoteCommit(GITLAB, id="b", username="bob"),
            RemoteCommit(GITLAB, id="c", username="alice"),
        ]

        merged = merge_remote_metadata(release, GITLAB, remote_commits, [])

        assert [c.remote.is_first_time for c in merged.commits] == [True, True, False]
        assert [c.username for c in merged.remote.contributors] == ["alice", "bob"]
        assert merged.remote.provider is GITLAB

    def test_pull_request_by_merge_commit(self, make_commit: Callable[..., Commit]):
        """Pull requests attach to the commit they were merged as."""
        release = Release(commits=[make_commit("a", "feat: a"), make_commit("b", "fix: b")])
        remote_commits = [RemoteCommit(GITLAB, id="a", username="alice"), RemoteCommit(GITLAB, id="b", username="bob")]
        pull_requests = [RemotePullRequest(GITLAB, number=3, title="Fix b", labels=("bug",), merge_commit="b")]

        merged = merge_remote_metadata(release, GITLAB, remote_commits, pull_requests)

        assert merged.commits[0].remote.pr_number is None
        assert merged.commits[1].remote.pr_number == 3
        assert merged.commits[1].remote.pr_title == "Fix b"
        assert merged.commits[1].remote.pr_labels == ("bug",)

    def test_unknown_commits_untouched(self, make_commit: Callable[..., Commit]):
        """Commits the remote doesn't know keep no remote data."""
        commit = make_commit("local", "feat: a")
        release = Release(commits=[commit])

        merged = merge_remote_metadata(release, GITLAB, [RemoteCommit(GITLAB, id="other", username="x")], [])

        assert merged.commits[0] is commit
        assert merged.remote.contributors == ()

    def test_input_not_modified(self, make_commit: Callable[..., Commit]):
        """The original release keeps its commits."""
        release = Release(commits=[make_commit("a", "feat: a")])

        merged = merge_remote_metadata(release, GITLAB, [RemoteCommit(GITLAB, id="a", username="alice")], [])

        assert merged is not release
        assert release.commits[0].remote is None
        assert release.remote is None

    def test_submodules_merged_separately(self, make_commit: Callable[..., Commit]):
        """Submodule commits get remote data but don't add contributors."""
        release = Release(
            commits=[make_commit("a", "feat: a")],
            submodule_commits={"lib": [make_commit("s", "fix: s")]},
        )
        remote_commits = [RemoteCommit(GITLAB, id="a", username="alice"), RemoteCommit(GITLAB, id="s", username="sam")]

        merged = merge_remote_metadata(release, GITLAB, remote_commits, [])

        assert merged.submodule_commits["lib"][0].remote.username == "sam"
        assert merged.submodule_commits["lib"][0].remote.is_first_time
        assert [c.username for c in merged.remote.contributors] == ["alice"]

    def test_no_remote_commits(self, make_commit: Callable[..., Commit]):
        """Without remote data the release has the provider and no contributors."""
        release = Release(commits=[make_commit("a", "feat: a")])

        merged = merge_remote_metadata(release, GITLAB, [], [])

        assert merged.remote.provider is GITLAB
        assert merged.remote.contributors == ()
        assert merged.commits[0].remote is None

    def test_pull_request_without_remote_commit(self, make_commit: Callable[..., Commit]):
        """A pull request attaches even when the commit list doesn't know the commit."""
        release = Release(commits=[make_commit("abc", "feat: a")])
        pull_requests = [RemotePullRequest(GITLAB, number=7, title="Add a", merge_commit="abc")]

        merged = merge_remote_metadata(release, GITLAB, [], pull_requests)

        remote = merged.commits[0].remote
        assert remote.pr_number == 7
        assert remote.pr_title == "Add a"
        assert remote.username is None
        assert not remote.is_first_time
        assert merged.remote.provider is GITLAB
        assert merged.remote.contributors == ()

    def test_providers_accumulate(self, make_commit: Callable[..., Commit]):
        """A second provider adds its contributors to those of the first."""
        release = Release(commits=[make_commit("a", "feat: a"), make_commit("b", "fix: b")])

        first = merge_remote_metadata(release, GITLAB, [RemoteCommit(GITLAB, id="a", username="alice")], [])
        github = RemoteProvider.GITHUB
        second = merge_remote_metadata(first, github, [RemoteCommit(github, id="b", username="bob")], [])

        assert [c.username for c in second.remote.contributors] == ["alice", "bob"]
        assert second.remote.provider is github
        assert second.commits[0].remote.username == "alice"
        assert second.commits[1].remote.username == "bob"

    def test_previous_kept(self, make_commit: Callable[..., Commit]):
        """The previous link is carried over."""
        previous = Release(version="v1.0.0")
        release = Release(commits=[make_commit("a", "feat: a")], previous=previous)

        assert merge_remote_metadata(release, GITLAB, [], []).previous is previous
