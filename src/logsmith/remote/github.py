"""GitHub REST API client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from logsmith.remote.client import RemoteClient, parse_timestamp
from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

PAGE_SIZE = 100


class GitHubClient(RemoteClient):
    """Fetches commits and closed pull requests from GitHub."""

    provider = RemoteProvider.GITHUB
    default_api_url = "https://api.github.com"
    api_url_env = "GITHUB_API_URL"
    token_env = "GITHUB_TOKEN"
    accept = "application/vnd.github+json"

    def commits_url(self, page: int, ref: str | None = None) -> str:
        url = f"{self.api_url}/repos/{self.owner}/{self.repo}/commits?per_page={PAGE_SIZE}&page={page + 1}"
        if ref:
            url += f"&sha={quote(ref, safe='')}"
        return url

    def pull_requests_url(self, page: int) -> str:
        return (
            f"{self.api_url}/repos/{self.owner}/{self.repo}/pulls"
            f"?per_page={PAGE_SIZE}&page={page + 1}&state=closed"
        )

    def parse_commit(self, item: dict[str, Any]) -> RemoteCommit:
        author = item.get("author") or {}
        commit_author = (item.get("commit") or {}).get("author") or {}
        return RemoteCommit(
            provider=self.provider,
            id=item["sha"],
            username=author.get("login"),
            timestamp=parse_timestamp(commit_author.get("date")),
        )

    def parse_pull_request(self, item: dict[str, Any]) -> RemotePullRequest:
        return RemotePullRequest(
            provider=self.provider,
            number=item["number"],
            title=item.get("title"),
            labels=tuple(label["name"] for label in item.get("labels") or []),
            merge_commit=item.get("merge_commit_sha"),
        )
