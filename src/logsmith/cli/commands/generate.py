"""Implementation of the 'generate' command.

Reads the history, builds the changelog and writes it to stdout, a file,
or in front of an existing changelog.
"""

from __future__ import annotations

import io
import re
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from logsmith.config import load_config
from logsmith.config.models import BumpType, CommitParser
from logsmith.core.changelog import Changelog
from logsmith.core.commits import Commit, Signature
from logsmith.core.release import Release, assemble_releases, filter_tags
from logsmith.exceptions import ChangelogError, LogsmithError, SkipKind
from logsmith.remote import create_clients
from logsmith.vcs.git import GitRepository

if TYPE_CHECKING:
    from rich.console import Console

    from logsmith.config.models import LogsmithConfig
    from logsmith.core.release import Tag


@dataclass
class GenerateOptions:
    """Command line options of ``logsmith generate``."""

    revision_range: str | None = None
    config: Path | None = None
    repository: Path | None = None
    output: Path | None = None
    prepend: Path | None = None
    unreleased: bool = False
    latest: bool = False
    current: bool = False
    tag: str | None = None
    body: str | None = None
    with_commits: list[str] = field(default_factory=list)
    bump: str | None = None
    bumped_version: bool = False
    context: bool = False
    strip: str | None = None
    sort: str | None = None
    topo_order: bool = False
    include_paths: list[str] = field(default_factory=list)
    exclude_paths: list[str] = field(default_factory=list)
    skip_commits: list[str] = field(default_factory=list)
    no_exec: bool = False
    offline: bool = False


def apply_options(config: LogsmithConfig, options: GenerateOptions) -> LogsmithConfig:
    """Apply command line overrides to a loaded configuration."""
    if options.sort:
        config.git.sort_commits = options.sort
    if options.topo_order:
        config.git.topo_order = True
    if options.body is not None:
        config.changelog.body = options.body
    if options.strip in ("header", "all"):
        config.changelog.header = None
    if options.strip in ("footer", "all"):
        config.changelog.footer = None
    if options.bump and options.bump != "auto":
        config.bump.bump_type = BumpType(options.bump)
    if options.skip_commits:
        config.git.commit_parsers = [
            *(CommitParser(sha=sha, skip=True) for sha in options.skip_commits),
            *config.git.commit_parsers,
        ]
    if options.no_exec:
        config.git.commit_preprocessors = [
            p for p in config.git.commit_preprocessors if p.replace_command is None
        ]
        config.changelog.postprocessors = [
            p for p in config.changelog.postprocessors if p.replace_command is None
        ]
    return config


def commit_range(tags: dict[str, Tag], unreleased: bool, latest: bool) -> str | None:
    """Revision range to read for ``--unreleased`` / ``--latest``."""
    tagged = list(tags)
    if unreleased and tagged:
        return f"{tagged[-1]}..HEAD"
    if latest and tagged:
        if len(tagged) == 1:
            return tagged[0]
        return f"{tagged[-2]}..{tagged[-1]}"
    return None


def current_range(tags: dict[str, Tag], head: str | None) -> str:
    """Revision range of the tag that points at HEAD, for ``--current``.

    Raises:
        ChangelogError: If HEAD is not tagged
    """
    tagged = list(tags)
    if head is None or head not in tags:
        raise ChangelogError("No tag exists for the current commit")
    index = tagged.index(head)
    if index == 0:
        return head
    return f"{tagged[index - 1]}..{head}"


_SHA_PREFIX = re.compile(r"^([0-9a-f]{40}) (.*)$", re.DOTALL)


def custom_commit(text: str) -> Commit:
    """Build a commit for ``--with-commit``.

    ``<40 hex digits> <message>`` sets the commit id, anything else is
    taken as the message of a commit without an id.
    """
    signature = Signature(timestamp=int(time.time()))
    commit_id, message = "", text
    match = _SHA_PREFIX.match(text)
    if match:
        commit_id, message = match.groups()
    return Commit(id=commit_id, message=message, author=signature, committer=signature)


def read_releases(repo: GitRepository, config: LogsmithConfig, options: GenerateOptions) -> list[Release]:
    """Read commits and tags and assemble them into releases."""
    git = config.git
    tags = filter_tags(repo.tags(git.tag_pattern, git.topo_order), git)

    if options.revision_range:
        rev_range = options.revision_range
    elif options.current:
        rev_range = current_range(tags, repo.find_commit("HEAD"))
    else:
        rev_range = commit_range(tags, options.unreleased, options.latest)

    git_commits = repo.commits(
        rev_range,
        include_paths=options.include_paths,
        exclude_paths=options.exclude_paths,
        topo_order=git.topo_order,
    )
    if git.limit_commits is not None:
        git_commits = git_commits[: git.limit_commits]

    releases = assemble_releases(
        [commit.to_commit() for commit in git_commits],
        tags,
        repository=str(repo.path),
        sort_commits=git.sort_commits,
    )

    if git.recurse_submodules:
        head = repo.find_commit("HEAD")
        for release in releases:
            new = release.commit_id or head
            if new is None:
                continue
            old = release.previous.commit_id if release.previous else None
            for path, revisions in repo.submodule_ranges(old, new).items():
                release.submodule_commits[path] = [
                    commit.to_commit() for commit in repo.submodule(path).commits(revisions)
                ]

    if options.with_commits:
        extra = [custom_commit(text) for text in options.with_commits]
        if not releases:
            releases.append(Release(repository=str(repo.path)))
        releases[0].commits.extend(extra)

    if options.tag and releases and releases[0].version is None:
        releases[0].version = options.tag
        releases[0].timestamp = int(time.time())

    return releases


def _print_summary(changelog: Changelog, err_console: Console) -> None:
    for kind, text in changelog.summary.messages():
        if kind is SkipKind.SKIPPED:
            err_console.print(f"[dim]{text}[/]")
        else:
            err_console.print(f"[yellow]Warning:[/] {text}")


def run_generate(options: GenerateOptions, console: Console, err_console: Console) -> None:
    """Run the generate command.

    Args:
        options: Parsed command line options
        console: Console for standard output
        err_console: Console for error output
    """
    repo_path = options.repository or Path.cwd()

    try:
        config = apply_options(load_config(options.config or repo_path), options)
    except LogsmithError as e:
        err_console.print(f"[red]Error loading config:[/] {e}")
        raise SystemExit(1) from e

    try:
        repo = GitRepository(repo_path)
        releases = read_releases(repo, config, options)
        changelog = Changelog(releases, config)

        if not options.offline and config.remote.is_any_set:
            changelog.add_remote_data(create_clients(config.remote))

        if options.bump or options.bumped_version:
            version = changelog.bump_version()
            if options.bumped_version:
                if version is None and changelog.releases:
                    version = changelog.releases[0].version
                if version is None:
                    err_console.print("[red]Error:[/] No version to print")
                    raise SystemExit(1)
                console.print(version, markup=False, highlight=False)
                return

        _print_summary(changelog, err_console)

        if options.context:
            changelog.write_context(sys.stdout)
            return

        output = options.output or config.changelog.output
        if options.prepend:
            existing = options.prepend.read_text() if options.prepend.exists() else ""
            buffer = io.StringIO()
            changelog.prepend(existing, buffer)
            options.prepend.write_text(buffer.getvalue())
            console.print(f"[green]✓[/] Updated {options.prepend}")
        elif output:
            buffer = io.StringIO()
            changelog.generate(buffer)
            Path(output).write_text(buffer.getvalue())
            console.print(f"[green]✓[/] Wrote {output}")
        else:
            changelog.generate(sys.stdout)
    except LogsmithError as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1) from e
