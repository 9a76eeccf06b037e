"""GitLab REST API client.

GitLab addresses repositories by numeric project id, so the project is
looked up once before any page is fetched.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from logsmith.exceptions import RemoteError
from logsmith.remote.client import RemoteClient, parse_timestamp
from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

PAGE_SIZE = 100


class GitLabClient(RemoteClient):
    """Fetches commits and merged merge requests from GitLab."""

    provider = RemoteProvider.GITLAB
    default_api_url = "https://gitlab.com/api/v4"
    api_url_env = "GITLAB_API_URL"
    token_env = "GITLAB_TOKEN"

    _project_id: int | None = None

    @property
    def project_id(self) -> int:
        """Numeric id of ``owner/repo``, fetched on first use.

        Raises:
            RemoteError: If the project cannot be found
        """
        if self._project_id is None:
            url = f"{self.api_url}/projects/{quote(self.owner, safe='')}%2F{self.repo}"
            project = self.get_json(url)
            if not isinstance(project, dict) or "id" not in project:
                raise RemoteError(f"GitLab project {self.owner}/{self.repo} not found")
            self._project_id = project["id"]
        return self._project_id

    def commits_url(self, page: int, ref: str | None = None) -> str:
        url = (
            f"{self.api_url}/projects/{self.project_id}/repository/commits"
            f"?page={page + 1}&per_page={PAGE_SIZE}"
        )
        if ref:
            url += f"&ref_name={quote(ref, safe='')}"
        return url

    def pull_requests_url(self, page: int) -> str:
        return (
            f"{self.api_url}/projects/{self.project_id}/merge_requests"
            f"?page={page + 1}&per_page={PAGE_SIZE}&state=merged"
        )

    def get_commits(self, ref: str | None = None) -> list[RemoteCommit]:
        # Resolve the project before pages are fetched concurrently
        _ = self.project_id
        return super().get_commits(ref)

    def get_pull_requests(self) -> list[RemotePullRequest]:
        _ = self.project_id
        return super().get_pull_requests()

    def parse_commit(self, item: dict[str, Any]) -> RemoteCommit:
        return RemoteCommit(
            provider=self.provider,
            id=item["id"],
            username=item.get("author_name"),
            timestamp=parse_timestamp(item.get("committed_date")),
        )

    def parse_pull_request(self, item: dict[str, Any]) -> RemotePullRequest:
        merge_commit = item.get("merge_commit_sha") or item.get("squash_commit_sha") or item.get("sha")
        return RemotePullRequest(
            provider=self.provider,
            number=item["iid"],
            title=item.get("title"),
            labels=tuple(item.get("labels") or []),
            merge_commit=merge_commit,
        )
