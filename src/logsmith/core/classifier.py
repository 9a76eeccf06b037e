"""Commit classification.

Turns raw commits into grouped, structured commits. The stages run in a
fixed order:

1. message preprocessing (``commit_preprocessors``)
2. conventional commit parsing
3. grouping with ``commit_parsers``
4. link extraction (``link_parsers``)

With ``split_commits`` every non-empty line of the preprocessed message is
classified as a commit of its own.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from logsmith.config.models import to_python_replacement
from logsmith.core.commits import Link, parse_conventional
from logsmith.core.summary import ProcessingSummary
from logsmith.exceptions import (
    CommitSkipped,
    ConventionalCommitError,
    FieldError,
    SkipKind,
)

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable

    from logsmith.config.models import CommitParser, GitConfig
    from logsmith.core.commits import Commit

logger = logging.getLogger(__name__)

_MISSING = object()


def lookup_field(context: dict[str, Any], path: str) -> Any:
    """Resolve a dotted path such as ``author.name`` in a commit context.

    A ``None`` on the way, such as ``remote`` before remote data is
    fetched, resolves the whole path to ``None``.

    Raises:
        FieldError: If a path segment does not exist
    """
    value: Any = context
    for part in path.split("."):
        if value is None:
            return None
        if not isinstance(value, dict):
            raise FieldError(f"field '{path}' is not a valid commit field")
        value = value.get(part, _MISSING)
        if value is _MISSING:
            raise FieldError(f"field '{path}' is not a valid commit field")
    return value


def _expand(template: str | None, match: re.Match[str]) -> str | None:
    if template is None:
        return None
    return match.expand(to_python_replacement(template))


class CommitClassifier:
    """Applies the ``[git]`` configuration to commits."""

    def __init__(self, config: GitConfig) -> None:
        self.config = config

    def preprocess(self, commit: Commit) -> Commit:
        """Rewrite the commit message with the configured preprocessors.

        Raises:
            CommandError: If a ``replace_command`` fails
        """
        message = commit.message
        envs = {"COMMIT_SHA": commit.id}
        for processor in self.config.commit_preprocessors:
            message = processor.apply(message, envs=envs)
        if message == commit.message:
            return commit
        return dataclasses.replace(commit, message=message)

    def classify(self, commit: Commit) -> Commit:
        """Run every classification stage on a single commit.

        Raises:
            CommitSkipped: If the commit should not appear in the changelog
            CommandError: If a preprocessor command fails
            FieldError: If a commit parser references an unknown field
        """
        return self.parse(self.preprocess(commit))

    def parse(self, commit: Commit) -> Commit:
        """Run the stages that follow preprocessing.

        Raises:
            CommitSkipped: If the commit should not appear in the changelog
            FieldError: If a commit parser references an unknown field
        """
        if self.config.conventional_commits:
            commit = self._parse_conventional(commit)
        if self.config.commit_parsers:
            commit = self._group(commit)
        if self.config.link_parsers:
            commit = self._extract_links(commit)
        return commit

    def process(
        self,
        commits: Iterable[Commit],
        summary: ProcessingSummary | None = None,
    ) -> list[Commit]:
        """Classify a list of commits, dropping the skipped ones.

        Args:
            commits: Commits in the order they should keep
            summary: Collects counts of processed and skipped commits

        Returns:
            The classified commits
        """
        summary = summary if summary is not None else ProcessingSummary()
        result: list[Commit] = []

        for commit in commits:
            if self.config.split_commits:
                preprocessed = self.preprocess(commit)
                candidates = [
                    dataclasses.replace(preprocessed, message=line, links=())
                    for line in preprocessed.message.splitlines()
                    if line.strip()
                ]
                stage = self.parse
            else:
                candidates = [commit]
                stage = self.classify

            for candidate in candidates:
                summary.processed += 1
                try:
                    classified = stage(candidate)
                except CommitSkipped as skip:
                    summary.record_skip(candidate.id, skip)
                    continue
                if self.config.conventional_commits and classified.conv is None:
                    summary.unparsed += 1
                result.append(classified)

        return result

    def _parse_conventional(self, commit: Commit) -> Commit:
        try:
            conv = parse_conventional(commit.message)
        except ConventionalCommitError as e:
            if self.config.filter_unconventional and not self.config.require_conventional:
                raise CommitSkipped(SkipKind.UNCONVENTIONAL, str(e)) from e
            logger.debug("Commit %s is not conventional: %s", commit.id[:7], e)
            return commit
        return dataclasses.replace(commit, conv=conv)

    def _candidates(self, commit: Commit, parser: CommitParser) -> list[tuple[re.Pattern[str], str]]:
        candidates: list[tuple[re.Pattern[str], str]] = []
        if parser.message is not None:
            candidates.append((parser.message, commit.message.strip()))
        if parser.body is not None and commit.conv is not None and commit.conv.body:
            candidates.append((parser.body, commit.conv.body.strip()))
        if parser.footer is not None and commit.conv is not None:
            candidates.extend((parser.footer, str(footer)) for footer in commit.conv.footers)
        if parser.field is not None and parser.pattern is not None:
            value = lookup_field(commit.to_context(), parser.field)
            if isinstance(value, list):
                candidates.extend((parser.pattern, str(item)) for item in value)
            elif value is not None:
                candidates.append((parser.pattern, str(value)))
        return candidates

    def _should_skip(self, commit: Commit, parser: CommitParser) -> bool:
        return parser.skip and not (commit.breaking and self.config.protect_breaking_commits)

    def _group(self, commit: Commit) -> Commit:
        for parser in self.config.commit_parsers:
            if parser.sha is not None and parser.sha == commit.id:
                if self._should_skip(commit, parser):
                    raise CommitSkipped(SkipKind.SKIPPED, f"commit matched sha {parser.sha}")
                return dataclasses.replace(
                    commit,
                    group=parser.group,
                    scope=parser.scope,
                    default_scope=parser.default_scope,
                )

            for regex, text in self._candidates(commit, parser):
                match = regex.search(text)
                if match is None:
                    continue
                if self._should_skip(commit, parser):
                    raise CommitSkipped(SkipKind.SKIPPED, f"commit matched {regex.pattern!r}")
                return dataclasses.replace(
                    commit,
                    group=_expand(parser.group, match),
                    scope=_expand(parser.scope, match),
                    default_scope=parser.default_scope,
                )

        if self.config.filter_commits:
            raise CommitSkipped(SkipKind.UNGROUPED, "commit does not belong to any group")
        return commit

    def _extract_links(self, commit: Commit) -> Commit:
        links: list[Link] = []
        for parser in self.config.link_parsers:
            for match in parser.pattern.finditer(commit.message):
                href = match.expand(to_python_replacement(parser.href))
                text = _expand(parser.text, match) if parser.text is not None else match.group(0)
                links.append(Link(text=text, href=href))
        return dataclasses.replace(commit, links=tuple(links))
