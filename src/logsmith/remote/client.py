"""Shared HTTP plumbing for remote clients.

Remote APIs are paginated. :func:`fetch_pages` keeps a fixed number of page
requests in flight on a thread pool and consumes the results in page order
until the first empty page.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

import requests

from logsmith import __version__
from logsmith.exceptions import RemoteError, RemoteNotSetError

if TYPE_CHECKING:
    from collections.abc import Callable

    from logsmith.config.models import RemoteSettings
    from logsmith.remote.models import RemoteCommit, RemoteProvider, RemotePullRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUEST_TIMEOUT = 30
USER_AGENT = f"logsmith/{__version__}"


def fetch_pages(fetch_page: Callable[[int], list[T]], window: int) -> list[T]:
    """Fetch pages concurrently and return their items in page order.

    Args:
        fetch_page: Returns the items of a zero-based page
        window: Number of page requests kept in flight

    Returns:
        Items of every page before the first empty one

    Raises:
        RemoteError: If any page request fails; pending requests are
            cancelled and nothing is returned
    """
    items: list[T] = []
    with ThreadPoolExecutor(max_workers=window) as executor:
        pending: deque[Future[list[T]]] = deque()
        next_page = 0
        for _ in range(window):
            pending.append(executor.submit(fetch_page, next_page))
            next_page += 1

        while pending:
            future = pending.popleft()
            try:
                page = future.result()
            except (RemoteError, requests.RequestException, ValueError, KeyError) as e:
                for other in pending:
                    other.cancel()
                if isinstance(e, RemoteError):
                    raise
                raise RemoteError(f"Failed to fetch page: {e}") from e

            if not page:
                for other in pending:
                    other.cancel()
                break

            items.extend(page)
            pending.append(executor.submit(fetch_page, next_page))
            next_page += 1

    return items


def create_session(token: str | None, accept: str = "application/json") -> requests.Session:
    """Create an HTTP session with the default headers."""
    session = requests.Session()
    session.headers.update({"Accept": accept, "User-Agent": USER_AGENT})
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


class RemoteClient:
    """Base class for provider clients.

    Subclasses describe their URLs and payloads; pagination, HTTP and error
    handling live here.
    """

    provider: ClassVar[RemoteProvider]
    default_api_url: ClassVar[str]
    api_url_env: ClassVar[str]
    token_env: ClassVar[str]
    accept: ClassVar[str] = "application/json"
    commits_window: ClassVar[int] = 10
    pull_requests_window: ClassVar[int] = 5

    def __init__(self, settings: RemoteSettings, session: requests.Session | None = None) -> None:
        if not settings.is_set:
            raise RemoteNotSetError()
        self.owner = settings.owner
        self.repo = settings.repo
        self.api_url = (
            settings.api_url or os.environ.get(self.api_url_env) or self.default_api_url
        ).rstrip("/")

        token = settings.token.get_secret_value() if settings.token else os.environ.get(self.token_env)
        self.session = session or create_session(token, self.accept)

    def get_json(self, url: str) -> Any:
        """GET a URL and decode the JSON body.

        Raises:
            RemoteError: On connection errors or non-2xx responses
        """
        logger.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            raise RemoteError(
                f"{self.provider} API returned {e.response.status_code} for {url}"
            ) from e
        except (requests.RequestException, ValueError) as e:
            raise RemoteError(f"Request to {url} failed: {e}") from e

    # Provider hooks

    def commits_url(self, page: int, ref: str | None = None) -> str:
        raise NotImplementedError

    def pull_requests_url(self, page: int) -> str:
        raise NotImplementedError

    def page_items(self, payload: Any) -> list[dict[str, Any]]:
        """Extract the list of items from a page payload."""
        return payload

    def parse_commit(self, item: dict[str, Any]) -> RemoteCommit:
        raise NotImplementedError

    def parse_pull_request(self, item: dict[str, Any]) -> RemotePullRequest:
        raise NotImplementedError

    # Fetching

    def get_commits(self, ref: str | None = None) -> list[RemoteCommit]:
        """Fetch every commit of the repository.

        Raises:
            RemoteError: If a request fails
        """

        def fetch(page: int) -> list[RemoteCommit]:
            payload = self.get_json(self.commits_url(page, ref))
            return [self.parse_commit(item) for item in self.page_items(payload)]

        return fetch_pages(fetch, self.commits_window)

    def get_pull_requests(self) -> list[RemotePullRequest]:
        """Fetch every merged pull request of the repository.

        Raises:
            RemoteError: If a request fails
        """

        def fetch(page: int) -> list[RemotePullRequest]:
            payload = self.get_json(self.pull_requests_url(page))
            return [self.parse_pull_request(item) for item in self.page_items(payload)]

        return fetch_pages(fetch, self.pull_requests_window)


def parse_timestamp(value: str | None) -> int | None:
    """Convert an ISO 8601 date to a unix timestamp."""
    if not value:
        return None
    return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
