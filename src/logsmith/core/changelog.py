"""Changelog generation.

This module turns assembled releases into changelog text. Construction
classifies every commit, prunes releases and compiles the templates;
:meth:`Changelog.generate` writes header, one body per release and the
footer, running the postprocessors over every rendered piece.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from logsmith.core.classifier import CommitClassifier
from logsmith.core.release import process_releases
from logsmith.core.summary import ProcessingSummary
from logsmith.core.template import Template
from logsmith.exceptions import UnconventionalCommitsError
from logsmith.remote.merge import merge_remote_metadata

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import TextIO

    from logsmith.config.models import LogsmithConfig
    from logsmith.core.release import Release
    from logsmith.remote.client import RemoteClient

logger = logging.getLogger(__name__)


class Changelog:
    """Releases plus the configuration needed to render them.

    Args:
        releases: Assembled releases, newest first
        config: Full configuration
        additional_context: Extra variables available to every template

    Raises:
        CommandError: If a preprocessor command fails
        FieldError: If a commit parser references an unknown field
        UnconventionalCommitsError: If conventional commits are required
            and some commits are not conventional
        TemplateParseError: If a template does not compile
    """

    def __init__(
        self,
        releases: list[Release],
        config: LogsmithConfig,
        additional_context: dict[str, Any] | None = None,
    ) -> None:
        self.config = config
        self.additional_context = dict(additional_context or {})
        self.summary = ProcessingSummary()

        self._classify(releases)
        if config.git.require_conventional and self.summary.unconventional:
            raise UnconventionalCommitsError(self.summary.unconventional)

        self.releases = process_releases(releases, config.git, config.changelog)

        trim = config.changelog.trim
        self.header_template = Template(config.changelog.header, trim) if config.changelog.header else None
        self.body_template = Template(config.changelog.body, trim)
        self.footer_template = Template(config.changelog.footer, trim) if config.changelog.footer else None

    def _classify(self, releases: list[Release]) -> None:
        classifier = CommitClassifier(self.config.git)
        for release in releases:
            release.commits = classifier.process(release.commits, self.summary)
            release.submodule_commits = {
                path: classifier.process(commits, self.summary)
                for path, commits in release.submodule_commits.items()
            }
        logger.info(
            "Processed %d commits, skipped %d",
            self.summary.processed,
            self.summary.total_skipped,
        )

    def _postprocess(self, text: str) -> str:
        for processor in self.config.changelog.postprocessors:
            text = processor.apply(text)
        return text

    def _releases_context(self) -> dict[str, Any]:
        return {
            **self.additional_context,
            "releases": [release.to_context() for release in self.releases],
        }

    def render_header(self) -> str:
        """Render the header, or an empty string if there is none."""
        if self.header_template is None:
            return ""
        return self._postprocess(self.header_template.render(self._releases_context()))

    def render_footer(self) -> str:
        """Render the footer, or an empty string if there is none."""
        if self.footer_template is None:
            return ""
        return self._postprocess(self.footer_template.render(self._releases_context()))

    def render_release(self, release: Release) -> str:
        context = {**release.to_context(), **self.additional_context}
        return self._postprocess(self.body_template.render(context))

    def render(self) -> str:
        """Render the whole changelog to a string."""
        parts = [self.render_header()]
        parts.extend(self.render_release(release) for release in self.releases)
        parts.append(self.render_footer())
        return "".join(parts)

    def generate(self, out: TextIO) -> None:
        """Write the changelog to ``out``.

        A closed pipe on the reading side (``logsmith generate | head``)
        ends the output silently.
        """
        logger.debug("Generating changelog for %d releases", len(self.releases))
        try:
            out.write(self.render_header())
            for release in self.releases:
                out.write(self.render_release(release))
            out.write(self.render_footer())
            out.flush()
        except BrokenPipeError:
            logger.debug("Output pipe closed, stopping")

    def prepend(self, existing: str, out: TextIO) -> None:
        """Write the new changelog followed by an existing one.

        The existing changelog loses its header (one occurrence), so the
        result carries a single header at the top.
        """
        header = self.render_header()
        if header:
            existing = existing.replace(header, "", 1)
        elif self.config.changelog.header:
            existing = existing.replace(self.config.changelog.header, "", 1)

        try:
            out.write(header)
            for release in self.releases:
                out.write(self.render_release(release))
            out.write(existing)
            out.flush()
        except BrokenPipeError:
            logger.debug("Output pipe closed, stopping")

    def write_context(self, out: TextIO) -> None:
        """Write the template context of every release as JSON."""
        context = [release.to_context() for release in self.releases]
        out.write(json.dumps(context, indent=2))
        out.write("\n")

    def bump_version(self) -> str | None:
        """Give the unreleased release its next version.

        Returns:
            The new version, or None if there is no unreleased release
        """
        if not self.releases or self.releases[0].version is not None:
            logger.warning("There is nothing to bump")
            return None

        release = self.releases[0]
        version = release.calculate_next_version(self.config.bump)
        release.version = version
        release.timestamp = int(time.time())
        logger.info("Bumped version to %s", version)
        return version

    def add_remote_data(self, clients: Iterable[RemoteClient]) -> None:
        """Fetch remote metadata and merge it into every release.

        Raises:
            RemoteError: If a remote request fails
        """
        for client in clients:
            logger.info("Fetching data from %s", client.provider)
            remote_commits = client.get_commits()
            pull_requests = client.get_pull_requests()
            logger.debug(
                "Got %d commits and %d pull requests from %s",
                len(remote_commits),
                len(pull_requests),
                client.provider,
            )

            merged = [
                merge_remote_metadata(release, client.provider, remote_commits, pull_requests)
                for release in self.releases
            ]
            replaced = {id(old): new for old, new in zip(self.releases, merged, strict=True)}
            for release in merged:
                if release.previous is not None:
                    release.previous = replaced.get(id(release.previous), release.previous)
            self.releases = merged
