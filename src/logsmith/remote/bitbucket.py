"""Bitbucket REST API client.

Bitbucket Cloud is used by default. Setting ``BITBUCKET_API_URL`` (or the
``api_url`` option) points the client at a Bitbucket Server/Data Center
instance, whose API pages by item offset instead of page number.
"""

from __future__ import annotations

from typing import Any

from logsmith.remote.client import RemoteClient
from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

CLOUD_API_URL = "https://api.bitbucket.org/2.0/repositories"

CLOUD_COMMITS_PAGE_SIZE = 100
CLOUD_PRS_PAGE_SIZE = 50
SERVER_COMMITS_PAGE_SIZE = 25
SERVER_PRS_PAGE_SIZE = 50


class BitbucketClient(RemoteClient):
    """Fetches commits and merged pull requests from Bitbucket."""

    provider = RemoteProvider.BITBUCKET
    default_api_url = CLOUD_API_URL
    api_url_env = "BITBUCKET_API_URL"
    token_env = "BITBUCKET_TOKEN"

    @property
    def is_server(self) -> bool:
        return self.api_url != CLOUD_API_URL

    def commits_url(self, page: int, ref: str | None = None) -> str:
        if self.is_server:
            start = page * SERVER_COMMITS_PAGE_SIZE
            return (
                f"{self.api_url}/rest/api/1.0/projects/{self.owner}/repos/{self.repo}/commits"
                f"?limit={SERVER_COMMITS_PAGE_SIZE}&start={start}"
            )
        return (
            f"{self.api_url}/{self.owner}/{self.repo}/commits"
            f"?pagelen={CLOUD_COMMITS_PAGE_SIZE}&page={page + 1}"
        )

    def pull_requests_url(self, page: int) -> str:
        if self.is_server:
            start = page * SERVER_PRS_PAGE_SIZE
            return (
                f"{self.api_url}/rest/api/1.0/projects/{self.owner}/repos/{self.repo}/pull-requests"
                f"?limit={SERVER_PRS_PAGE_SIZE}&start={start}&state=MERGED"
            )
        return (
            f"{self.api_url}/{self.owner}/{self.repo}/pullrequests"
            f"?pagelen={CLOUD_PRS_PAGE_SIZE}&page={page + 1}&state=MERGED"
        )

    def page_items(self, payload: Any) -> list[dict[str, Any]]:
        return payload.get("values", [])

    def parse_commit(self, item: dict[str, Any]) -> RemoteCommit:
        author = item.get("author") or {}
        if self.is_server:
            return RemoteCommit(provider=self.provider, id=item["id"], username=author.get("name"))
        return RemoteCommit(provider=self.provider, id=item["hash"], username=author.get("raw"))

    def parse_pull_request(self, item: dict[str, Any]) -> RemotePullRequest:
        if self.is_server:
            merge_commit = (item.get("fromRef") or {}).get("latestCommit")
        else:
            merge_commit = (item.get("merge_commit") or {}).get("hash")
        return RemotePullRequest(
            provider=self.provider,
            number=item["id"],
            title=item.get("title"),
            merge_commit=merge_commit,
        )
