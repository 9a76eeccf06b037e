"""Shared test fixtures."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import TYPE_CHECKING

import pytest

from logsmith.core.commits import Commit, Signature

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

DAY = 86_400
BASE_TIME = 1_700_000_000


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo CLI logging setup so caplog keeps working."""
    yield
    logger = logging.getLogger("logsmith")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_commit() -> Callable[..., Commit]:
    """Factory for commits with predictable timestamps."""

    def _make(
        id: str,
        message: str,
        timestamp: int = BASE_TIME,
        author: str = "Test Author",
    ) -> Commit:
        signature = Signature(name=author, email="test@example.com", timestamp=timestamp)
        return Commit(id=id, message=message, author=signature, committer=signature)

    return _make


class GitHelper:
    """Runs git in a temporary repository with fixed dates."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.clock = BASE_TIME

    def run(self, *args: str) -> str:
        date = f"@{self.clock} +0000"
        env = {
            **os.environ,
            "GIT_AUTHOR_NAME": "Test Author",
            "GIT_AUTHOR_EMAIL": "test@example.com",
            "GIT_COMMITTER_NAME": "Test Author",
            "GIT_COMMITTER_EMAIL": "test@example.com",
            "GIT_AUTHOR_DATE": date,
            "GIT_COMMITTER_DATE": date,
        }
        result = subprocess.run(
            ["git", "-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false", *args],
            cwd=self.path,
            env=env,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    def commit(self, message: str) -> str:
        self.clock += DAY
        self.run("commit", "--allow-empty", "-m", message)
        return self.run("rev-parse", "HEAD")

    def tag(self, name: str, message: str | None = None) -> None:
        if message:
            self.run("tag", "-a", name, "-m", message)
        else:
            self.run("tag", name)


@pytest.fixture
def git_repo(tmp_path: Path) -> GitHelper:
    """An empty git repository."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    helper = GitHelper(tmp_path)
    helper.run("init", "-q", "-b", "main")
    return helper


@pytest.fixture
def tagged_repo(git_repo: GitHelper) -> GitHelper:
    """A repository with two releases and unreleased work.

    History (oldest first)::

        feat: initial feature      v0.1.0
        fix: fix a bug
        feat: add another feature  v0.2.0 (annotated)
        feat(api): add endpoint
        fix: handle errors
    """
    git_repo.commit("feat: initial feature")
    git_repo.tag("v0.1.0")
    git_repo.commit("fix: fix a bug")
    git_repo.commit("feat: add another feature")
    git_repo.tag("v0.2.0", "Release 0.2.0")
    git_repo.commit("feat(api): add endpoint")
    git_repo.commit("fix: handle errors")
    return git_repo
