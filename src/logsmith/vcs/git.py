"""Git repository access.

All data is read by running the ``git`` executable. Records are requested
with ASCII unit (0x1F) and record (0x1E) separators so that commit
messages can contain anything else.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from logsmith.core.commits import Commit, Signature
from logsmith.core.release import Tag
from logsmith.exceptions import GitError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

_LOG_FORMAT = FIELD_SEP.join(["%H", "%P", "%an", "%ae", "%at", "%cn", "%ce", "%ct", "%B"]) + RECORD_SEP

_TAG_FORMAT = (
    FIELD_SEP.join(
        [
            "%(refname:short)",
            "%(objecttype)",
            "%(objectname)",
            "%(*objectname)",
            "%(committerdate:unix)",
            "%(*committerdate:unix)",
            "%(contents)",
        ]
    )
    + RECORD_SEP
)

_SIGNATURE_BLOCK = re.compile(
    r"-----BEGIN (?:PGP|SSH) SIGNATURE-----.*?-----END (?:PGP|SSH) SIGNATURE-----\s*",
    re.DOTALL,
)

# https://host/owner/repo(.git), ssh://git@host[:port]/owner/repo(.git), git@host:owner/repo(.git)
_REMOTE_URL = re.compile(
    r"^(?:[a-z+]+://(?:[^@/]+@)?[^/]+/|[^@]+@[^:]+:)(?P<path>.+?)(?:\.git)?/?$"
)


@dataclass(frozen=True)
class GitCommit:
    """A commit as read from ``git log``."""

    id: str
    message: str
    author: Signature
    committer: Signature
    parents: tuple[str, ...] = ()

    def to_commit(self) -> Commit:
        return Commit(
            id=self.id,
            message=self.message,
            author=self.author,
            committer=self.committer,
            merge_commit=len(self.parents) > 1,
        )


def _optional(value: str) -> str | None:
    return value or None


def _timestamp(value: str) -> int:
    return int(value) if value.strip() else 0


def parse_remote_url(url: str) -> tuple[str, str] | None:
    """Split a remote URL into ``(owner, repo)``.

    Nested groups (GitLab subgroups) stay in the owner.
    """
    match = _REMOTE_URL.match(url.strip())
    if not match:
        return None
    owner, _, repo = match.group("path").rpartition("/")
    if not owner or not repo:
        return None
    return owner, repo


class GitRepository:
    """A local git repository.

    Args:
        path: Repository path (default: current directory)
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or Path.cwd()

    def _run(self, *args: str) -> str:
        """Run a git command in the repository and return stdout.

        Raises:
            GitError: If git is missing or the command fails
        """
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            raise GitError(f"git {args[0]} failed", stderr=e.stderr) from e
        return result.stdout

    def commits(
        self,
        range: str | None = None,
        include_paths: Sequence[str] = (),
        exclude_paths: Sequence[str] = (),
        topo_order: bool = False,
    ) -> list[GitCommit]:
        """List commits, newest first.

        Args:
            range: Revision range such as ``v1.0.0..HEAD`` (default: HEAD)
            include_paths: Only commits touching these pathspecs
            exclude_paths: Skip commits touching only these pathspecs
            topo_order: Use topological instead of date order
        """
        args = ["log", f"--format={_LOG_FORMAT}"]
        if topo_order:
            args.append("--topo-order")
        args.append(range or "HEAD")
        pathspecs = [*include_paths, *(f":(exclude){path}" for path in exclude_paths)]
        if pathspecs:
            if not include_paths:
                pathspecs.insert(0, ".")
            args.extend(["--", *pathspecs])

        commits = []
        for record in self._run(*args).split(RECORD_SEP):
            record = record.lstrip("\n")
            if not record:
                continue
            sha, parents, an, ae, at, cn, ce, ct, message = record.split(FIELD_SEP, 8)
            commits.append(
                GitCommit(
                    id=sha,
                    message=message.rstrip("\n"),
                    author=Signature(_optional(an), _optional(ae), _timestamp(at)),
                    committer=Signature(_optional(cn), _optional(ce), _timestamp(ct)),
                    parents=tuple(parents.split()),
                )
            )
        logger.debug("Read %d commits from %s", len(commits), range or "HEAD")
        return commits

    def tags(self, pattern: re.Pattern[str] | None = None, topo_order: bool = False) -> dict[str, Tag]:
        """Map tagged commit ids to tags, oldest tag first.

        Tags are ordered by the time of the tagged commit, or by the
        topological order of history with ``topo_order``.
        """
        output = self._run("for-each-ref", f"--format={_TAG_FORMAT}", "refs/tags")

        entries: list[tuple[str, Tag]] = []
        for record in output.split(RECORD_SEP):
            record = record.lstrip("\n")
            if not record:
                continue
            name, object_type, object_id, peeled_id, date, peeled_date, contents = record.split(FIELD_SEP, 6)
            if pattern is not None and not pattern.search(name):
                continue

            if object_type == "tag":
                commit_id, timestamp = peeled_id, _timestamp(peeled_date)
                message = _SIGNATURE_BLOCK.sub("", contents).strip() or None
            else:
                commit_id, timestamp, message = object_id, _timestamp(date), None
            entries.append((commit_id, Tag(name=name, message=message, timestamp=timestamp)))

        if topo_order:
            position = {
                sha: index
                for index, sha in enumerate(self._run("rev-list", "--topo-order", "--reverse", "--all").split())
            }
            entries.sort(key=lambda entry: position.get(entry[0], -1))
        else:
            entries.sort(key=lambda entry: entry[1].timestamp or 0)

        return dict(entries)

    def submodule_ranges(self, old: str | None, new: str) -> dict[str, str]:
        """Revision ranges of submodules that changed between two commits.

        Args:
            old: Older commit, or None for the root of history
            new: Newer commit

        Returns:
            Submodule path to ``old..new`` range (just ``new`` when the
            submodule was added)
        """
        if old is None:
            output = self._run("ls-tree", "-r", new)
            ranges = {}
            for line in output.splitlines():
                meta, _, path = line.partition("\t")
                mode, _, sha = meta.split()
                if mode == "160000":
                    ranges[path] = sha
            return ranges

        ranges = {}
        for line in self._run("diff-tree", "-r", old, new).splitlines():
            meta, _, path = line.partition("\t")
            fields = meta.lstrip(":").split()
            if len(fields) < 5 or fields[1] != "160000":
                continue
            old_sha, new_sha = fields[2], fields[3]
            if set(new_sha) == {"0"}:
                continue
            ranges[path] = new_sha if set(old_sha) == {"0"} else f"{old_sha}..{new_sha}"
        return ranges

    def submodule(self, path: str) -> GitRepository:
        return GitRepository(self.path / path)

    def upstream_remote(self) -> tuple[str, str] | None:
        """Owner and repository name of the upstream remote.

        The remote of the current branch's upstream is used, falling back
        to ``origin``.
        """
        remote = "origin"
        try:
            upstream = self._run("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}").strip()
            remote = upstream.split("/", 1)[0] or remote
        except GitError:
            logger.debug("No upstream branch, using %s", remote)

        try:
            url = self._run("remote", "get-url", remote).strip()
        except GitError:
            return None
        return parse_remote_url(url)

    def find_commit(self, rev: str) -> str | None:
        """Resolve a revision to a full commit id, None if it doesn't exist."""
        try:
            return self._run("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}").strip() or None
        except GitError:
            return None
