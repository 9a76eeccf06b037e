"""Normalized remote data.

Every provider client converts its API payloads into these types, so the
merge step does not need to know which provider the data came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class RemoteProvider(StrEnum):
    """Supported code hosting providers."""

    GITHUB = "github"
    GITLAB = "gitlab"
    GITEA = "gitea"
    BITBUCKET = "bitbucket"
    AZURE_DEVOPS = "azure_devops"


@dataclass(frozen=True)
class RemoteCommit:
    """A commit as reported by a remote API."""

    provider: RemoteProvider
    id: str
    username: str | None = None
    timestamp: int | None = None


@dataclass(frozen=True)
class RemotePullRequest:
    """A merged pull (or merge) request."""

    provider: RemoteProvider
    number: int
    title: str | None = None
    labels: tuple[str, ...] = ()
    merge_commit: str | None = None


@dataclass(frozen=True)
class RemoteContributor:
    """Remote metadata attached to a single commit."""

    username: str | None = None
    pr_title: str | None = None
    pr_number: int | None = None
    pr_labels: tuple[str, ...] = ()
    is_first_time: bool = False

    def to_context(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "pr_title": self.pr_title,
            "pr_number": self.pr_number,
            "pr_labels": list(self.pr_labels),
            "is_first_time": self.is_first_time,
        }


@dataclass(frozen=True)
class RemoteReleaseMetadata:
    """Contributors of a release and the provider that was merged last."""

    provider: RemoteProvider
    contributors: tuple[RemoteContributor, ...] = field(default=())

    def to_context(self) -> dict[str, Any]:
        return {"contributors": [c.to_context() for c in self.contributors]}
