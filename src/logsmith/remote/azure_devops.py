"""Azure DevOps REST API client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from logsmith.remote.client import RemoteClient, parse_timestamp
from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

API_VERSION = "7.1"
PAGE_SIZE = 100


class AzureDevOpsClient(RemoteClient):
    """Fetches commits and completed pull requests from Azure DevOps.

    ``owner`` is the ``organization/project`` path and ``repo`` the
    repository name.
    """

    provider = RemoteProvider.AZURE_DEVOPS
    default_api_url = "https://dev.azure.com"
    api_url_env = "AZURE_DEVOPS_API_URL"
    token_env = "AZURE_DEVOPS_TOKEN"

    def _base_url(self) -> str:
        return f"{self.api_url}/{quote(self.owner)}/_apis/git/repositories/{quote(self.repo, safe='')}"

    def commits_url(self, page: int, ref: str | None = None) -> str:
        url = (
            f"{self._base_url()}/commits?api-version={API_VERSION}"
            f"&$top={PAGE_SIZE}&$skip={page * PAGE_SIZE}"
        )
        if ref:
            url += (
                "&searchCriteria.itemVersion.versionType=tag"
                f"&searchCriteria.itemVersion.version={quote(ref, safe='')}"
            )
        return url

    def pull_requests_url(self, page: int) -> str:
        return (
            f"{self._base_url()}/pullrequests?api-version={API_VERSION}"
            f"&searchCriteria.status=completed&$top={PAGE_SIZE}&$skip={page * PAGE_SIZE}"
        )

    def page_items(self, payload: Any) -> list[dict[str, Any]]:
        return payload.get("value", [])

    def parse_commit(self, item: dict[str, Any]) -> RemoteCommit:
        author = item.get("author") or {}
        return RemoteCommit(
            provider=self.provider,
            id=item["commitId"],
            username=author.get("name"),
            timestamp=parse_timestamp(author.get("date")),
        )

    def parse_pull_request(self, item: dict[str, Any]) -> RemotePullRequest:
        return RemotePullRequest(
            provider=self.provider,
            number=item["pullRequestId"],
            title=item.get("title"),
            labels=tuple(label["name"] for label in item.get("labels") or []),
            merge_commit=(item.get("lastMergeCommit") or {}).get("commitId"),
        )
