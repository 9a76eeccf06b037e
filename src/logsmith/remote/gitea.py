"""Gitea REST API client."""

from __future__ import annotations

from typing import Any

from logsmith.remote.client import RemoteClient, parse_timestamp
from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

PAGE_SIZE = 100


class GiteaClient(RemoteClient):
    """Fetches commits and closed pull requests from a Gitea instance."""

    provider = RemoteProvider.GITEA
    default_api_url = "https://codeberg.org"
    api_url_env = "GITEA_API_URL"
    token_env = "GITEA_TOKEN"

    def commits_url(self, page: int, ref: str | None = None) -> str:
        url = f"{self.api_url}/api/v1/repos/{self.owner}/{self.repo}/commits?limit={PAGE_SIZE}&page={page + 1}"
        if ref:
            url += f"&sha={ref}"
        return url

    def pull_requests_url(self, page: int) -> str:
        return (
            f"{self.api_url}/api/v1/repos/{self.owner}/{self.repo}/pulls"
            f"?limit={PAGE_SIZE}&page={page + 1}&state=closed"
        )

    def parse_commit(self, item: dict[str, Any]) -> RemoteCommit:
        author = item.get("author") or {}
        return RemoteCommit(
            provider=self.provider,
            id=item["sha"],
            username=author.get("login"),
            timestamp=parse_timestamp(item.get("created")),
        )

    def parse_pull_request(self, item: dict[str, Any]) -> RemotePullRequest:
        return RemotePullRequest(
            provider=self.provider,
            number=item["number"],
            title=item.get("title"),
            labels=tuple(label["name"] for label in item.get("labels") or []),
            merge_commit=item.get("merge_commit_sha"),
        )
