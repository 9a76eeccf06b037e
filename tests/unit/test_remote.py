"""Tests for remote clients."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from logsmith.config.models import RemoteConfig, RemoteSettings
from logsmith.exceptions import RemoteError, RemoteNotSetError
from logsmith.remote import (
    AzureDevOpsClient,
    BitbucketClient,
    GiteaClient,
    GitHubClient,
    GitLabClient,
    RemoteProvider,
    create_clients,
    fetch_pages,
)
from logsmith.remote.client import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Callable

SETTINGS = RemoteSettings(owner="octo", repo="project")

REMOTE_ENV_VARS = [
    f"{provider}_{suffix}"
    for provider in ("GITHUB", "GITLAB", "GITEA", "BITBUCKET", "AZURE_DEVOPS")
    for suffix in ("API_URL", "TOKEN")
]


@pytest.fixture(autouse=True)
def clean_remote_env(monkeypatch):
    """Keep CI provided API URLs and tokens out of the clients."""
    for name in REMOTE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_session(responder: Callable[[str], Any]) -> MagicMock:
    """A fake requests session answering GETs with ``responder(url)``."""
    session = MagicMock()

    def get(url: str, timeout: int) -> MagicMock:
        response = MagicMock()
        response.json.return_value = responder(url)
        return response

    session.get.side_effect = get
    return session


def query(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


class TestFetchPages:
    """Tests for fetch_pages()."""

    def test_pages_in_order(self):
        """Items come back in page order up to the first empty page."""

        def fetch(page: int) -> list[int]:
            return [page * 10, page * 10 + 1] if page < 3 else []

        assert fetch_pages(fetch, window=2) == [0, 1, 10, 11, 20, 21]

    def test_stops_at_first_empty_page(self):
        """Pages after an empty page are ignored."""

        def fetch(page: int) -> list[int]:
            return [] if page == 1 else [page]

        assert fetch_pages(fetch, window=4) == [0]

    def test_error_is_wrapped(self):
        """Request failures become RemoteError."""

        def fetch(page: int) -> list[int]:
            if page == 1:
                raise requests.ConnectionError("connection refused")
            return [page]

        with pytest.raises(RemoteError, match="connection refused"):
            fetch_pages(fetch, window=3)

    def test_payload_errors_are_wrapped(self):
        """Malformed payloads become RemoteError."""

        def fetch(page: int) -> list[int]:
            raise KeyError("sha")

        with pytest.raises(RemoteError):
            fetch_pages(fetch, window=1)

    def test_remote_error_propagates(self):
        """RemoteError from a page is raised as is."""
        error = RemoteError("boom")

        def fetch(page: int) -> list[int]:
            raise error

        with pytest.raises(RemoteError) as exc_info:
            fetch_pages(fetch, window=2)

        assert exc_info.value is error


class TestRemoteClient:
    """Tests for the shared client behaviour."""

    def test_requires_owner_and_repo(self):
        """A client needs a configured remote."""
        with pytest.raises(RemoteNotSetError):
            GitHubClient(RemoteSettings(owner="octo"))

    def test_api_url_from_environment(self, monkeypatch):
        """The API URL can come from the environment."""
        monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3/")

        assert GitHubClient(SETTINGS).api_url == "https://ghe.example.com/api/v3"

    def test_api_url_setting_wins(self, monkeypatch):
        """The configured API URL wins over the environment."""
        monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3")
        settings = RemoteSettings(owner="octo", repo="project", api_url="https://other.example.com")

        assert GitHubClient(settings).api_url == "https://other.example.com"

    def test_token_from_settings(self):
        """The token is sent as a bearer token."""
        settings = RemoteSettings(owner="octo", repo="project", token="secret")
        client = GitHubClient(settings)

        assert client.session.headers["Authorization"] == "Bearer secret"
        assert client.session.headers["User-Agent"].startswith("logsmith/")

    def test_token_from_environment(self, monkeypatch):
        """The token falls back to the provider's environment variable."""
        monkeypatch.setenv("GITLAB_TOKEN", "from-env")

        assert GitLabClient(SETTINGS).session.headers["Authorization"] == "Bearer from-env"

    def test_no_token(self):
        """Without a token no Authorization header is sent."""
        assert "Authorization" not in GiteaClient(SETTINGS).session.headers

    def test_http_error(self):
        """Non-2xx responses raise RemoteError with the status code."""
        session = MagicMock()
        response = MagicMock(status_code=403)
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
        session.get.return_value = response
        client = GitHubClient(SETTINGS, session=session)

        with pytest.raises(RemoteError, match="403"):
            client.get_json("https://api.github.com/x")

    def test_invalid_json(self):
        """Undecodable bodies raise RemoteError."""
        session = MagicMock()
        session.get.return_value.json.side_effect = ValueError("not json")
        client = GitHubClient(SETTINGS, session=session)

        with pytest.raises(RemoteError, match="not json"):
            client.get_json("https://api.github.com/x")

    def test_parse_timestamp(self):
        """ISO dates become unix timestamps."""
        assert parse_timestamp("2024-01-01T00:00:00Z") == 1_704_067_200
        assert parse_timestamp("2024-01-01T01:00:00+01:00") == 1_704_067_200
        assert parse_timestamp(None) is None


class TestGitHubClient:
    """Tests for GitHubClient."""

    def test_urls(self):
        """Pages are one-based and refs are passed as sha."""
        client = GitHubClient(SETTINGS)

        assert client.commits_url(0) == "https://api.github.com/repos/octo/project/commits?per_page=100&page=1"
        assert query(client.commits_url(2, "v1.0.0"))["sha"] == "v1.0.0"
        assert query(client.pull_requests_url(0)) == {"per_page": "100", "page": "1", "state": "closed"}

    def test_get_commits(self):
        """Commit payloads are normalized."""

        def responder(url: str) -> list[dict[str, Any]]:
            if query(url)["page"] != "1":
                return []
            return [
                {"sha": "abc", "author": {"login": "alice"}, "commit": {"author": {"date": "2024-01-01T00:00:00Z"}}},
                {"sha": "def", "author": None, "commit": {"author": {}}},
            ]

        client = GitHubClient(SETTINGS, session=make_session(responder))
        commits = client.get_commits()

        assert [(c.id, c.username, c.timestamp) for c in commits] == [
            ("abc", "alice", 1_704_067_200),
            ("def", None, None),
        ]
        assert commits[0].provider is RemoteProvider.GITHUB

    def test_get_pull_requests(self):
        """Pull request payloads are normalized."""

        def responder(url: str) -> list[dict[str, Any]]:
            if query(url)["page"] != "1":
                return []
            return [{"number": 7, "title": "Add x", "labels": [{"name": "feature"}], "merge_commit_sha": "abc"}]

        client = GitHubClient(SETTINGS, session=make_session(responder))
        (pull_request,) = client.get_pull_requests()

        assert pull_request.number == 7
        assert pull_request.labels == ("feature",)
        assert pull_request.merge_commit == "abc"


class TestGitLabClient:
    """Tests for GitLabClient."""

    def test_project_lookup(self):
        """The project id is fetched once and used in every URL."""

        def responder(url: str) -> Any:
            if url.endswith("/projects/octo%2Fproject"):
                return {"id": 42}
            path = urlsplit(url).path
            if path.endswith("/repository/commits") and query(url)["page"] == "1":
                return [{"id": "abc", "author_name": "Alice", "committed_date": "2024-01-01T00:00:00Z"}]
            return []

        session = make_session(responder)
        client = GitLabClient(SETTINGS, session=session)
        (commit,) = client.get_commits()

        assert commit.username == "Alice"
        assert client.project_id == 42
        project_lookups = [c for c in session.get.call_args_list if c.args[0].endswith("%2Fproject")]
        assert len(project_lookups) == 1

    def test_missing_project(self):
        """An unknown project is a RemoteError."""
        client = GitLabClient(SETTINGS, session=make_session(lambda url: {"message": "404 Project Not Found"}))

        with pytest.raises(RemoteError, match="not found"):
            client.get_pull_requests()

    def test_merge_request_commit_fallback(self):
        """Squash and head commits are used when there is no merge commit."""
        client = GitLabClient(SETTINGS)

        squashed = client.parse_pull_request({"iid": 3, "merge_commit_sha": None, "squash_commit_sha": "sq", "sha": "h"})
        head_only = client.parse_pull_request({"iid": 4, "sha": "h", "labels": ["bug"]})

        assert squashed.merge_commit == "sq"
        assert squashed.number == 3
        assert head_only.merge_commit == "h"
        assert head_only.labels == ("bug",)


class TestGiteaClient:
    """Tests for GiteaClient."""

    def test_urls(self):
        """Codeberg is the default instance."""
        client = GiteaClient(SETTINGS)

        assert client.commits_url(0).startswith("https://codeberg.org/api/v1/repos/octo/project/commits?")
        assert query(client.pull_requests_url(1))["page"] == "2"

    def test_parse(self):
        """Payloads are normalized."""
        client = GiteaClient(SETTINGS)
        commit = client.parse_commit({"sha": "abc", "author": {"login": "bob"}, "created": "2024-01-01T00:00:00Z"})

        assert (commit.id, commit.username, commit.timestamp) == ("abc", "bob", 1_704_067_200)


class TestBitbucketClient:
    """Tests for BitbucketClient."""

    def test_cloud(self):
        """Cloud pages are numbered and items are under values."""
        client = BitbucketClient(SETTINGS)

        assert not client.is_server
        assert client.commits_url(0) == (
            "https://api.bitbucket.org/2.0/repositories/octo/project/commits?pagelen=100&page=1"
        )
        assert client.page_items({"values": [{"hash": "a"}]}) == [{"hash": "a"}]
        assert client.parse_commit({"hash": "a", "author": {"raw": "Alice <a@example.com>"}}).username == (
            "Alice <a@example.com>"
        )
        assert client.parse_pull_request({"id": 9, "merge_commit": {"hash": "m"}}).merge_commit == "m"

    def test_server(self):
        """Server instances page by offset."""
        settings = RemoteSettings(owner="PROJ", repo="project", api_url="https://bitbucket.example.com")
        client = BitbucketClient(settings)

        assert client.is_server
        assert query(client.commits_url(2))["start"] == "50"
        assert "/rest/api/1.0/projects/PROJ/repos/project/pull-requests" in client.pull_requests_url(0)
        assert client.parse_commit({"id": "a", "author": {"name": "alice"}}).username == "alice"
        assert client.parse_pull_request({"id": 9, "fromRef": {"latestCommit": "h"}}).merge_commit == "h"


class TestAzureDevOpsClient:
    """Tests for AzureDevOpsClient."""

    def test_urls(self):
        """Pages are expressed with $top and $skip."""
        client = AzureDevOpsClient(RemoteSettings(owner="org/proj", repo="project"))
        params = query(client.commits_url(2))

        assert client.commits_url(0).startswith("https://dev.azure.com/org/proj/_apis/git/repositories/project/commits?")
        assert params["$top"] == "100"
        assert params["$skip"] == "200"
        assert query(client.pull_requests_url(0))["searchCriteria.status"] == "completed"

    def test_parse(self):
        """Payloads are normalized."""
        client = AzureDevOpsClient(SETTINGS)
        commit = client.parse_commit({"commitId": "abc", "author": {"name": "Alice", "date": "2024-01-01T00:00:00Z"}})
        pull_request = client.parse_pull_request(
            {"pullRequestId": 12, "title": "Add x", "lastMergeCommit": {"commitId": "abc"}}
        )

        assert client.page_items({"value": [1]}) == [1]
        assert (commit.id, commit.username) == ("abc", "Alice")
        assert (pull_request.number, pull_request.merge_commit) == (12, "abc")


class TestCreateClients:
    """Tests for create_clients()."""

    def test_only_configured_remotes(self):
        """A client is created for every configured remote."""
        config = RemoteConfig(github=SETTINGS, bitbucket=SETTINGS)

        clients = create_clients(config)

        assert [type(client) for client in clients] == [GitHubClient, BitbucketClient]

    def test_none_configured(self):
        """No remotes, no clients."""
        assert create_clients(RemoteConfig()) == []
