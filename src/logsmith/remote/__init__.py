"""Remote repository integrations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from logsmith.remote.azure_devops import AzureDevOpsClient
from logsmith.remote.bitbucket import BitbucketClient
from logsmith.remote.client import RemoteClient, fetch_pages
from logsmith.remote.gitea import GiteaClient
from logsmith.remote.github import GitHubClient
from logsmith.remote.gitlab import GitLabClient
from logsmith.remote.merge import merge_remote_metadata
from logsmith.remote.models import (
    RemoteCommit,
    RemoteContributor,
    RemoteProvider,
    RemotePullRequest,
    RemoteReleaseMetadata,
)

if TYPE_CHECKING:
    from logsmith.config.models import RemoteConfig, RemoteSettings


def create_clients(config: RemoteConfig) -> list[RemoteClient]:
    """Create a client for every configured remote."""
    candidates: list[tuple[type[RemoteClient], RemoteSettings]] = [
        (GitHubClient, config.github),
        (GitLabClient, config.gitlab),
        (GiteaClient, config.gitea),
        (BitbucketClient, config.bitbucket),
        (AzureDevOpsClient, config.azure_devops),
    ]
    return [client_class(settings) for client_class, settings in candidates if settings.is_set]


__all__ = [
    "AzureDevOpsClient",
    "BitbucketClient",
    "GitHubClient",
    "GitLabClient",
    "GiteaClient",
    "RemoteClient",
    "RemoteCommit",
    "RemoteContributor",
    "RemoteProvider",
    "RemotePullRequest",
    "RemoteReleaseMetadata",
    "create_clients",
    "fetch_pages",
    "merge_remote_metadata",
]
