"""Semantic version parsing and bumping.

Tags often carry a prefix in front of the version (``v1.2.3``,
``mylib/1.2.3``, ``release-1.2.3``). The prefix is kept opaque and
re-attached unchanged after bumping.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from logsmith.config.models import BumpType
from logsmith.core.commits import parse_conventional
from logsmith.exceptions import ConventionalCommitError, VersionParseError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from logsmith.config.models import BumpConfig

logger = logging.getLogger(__name__)

_IDENT = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"

SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    rf"(?:-(?P<prerelease>{_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@dataclass(frozen=True)
class Version:
    """A semantic version (``MAJOR.MINOR.PATCH[-pre][+build]``)."""

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a strict semantic version.

        Raises:
            VersionParseError: If ``text`` is not a valid semantic version
        """
        match = SEMVER_PATTERN.match(text)
        if not match:
            raise VersionParseError(f"invalid semantic version: {text!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease") or "",
            build=match.group("build") or "",
        )

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build:
            version += f"+{self.build}"
        return version

    def bump(self, bump_type: BumpType) -> Version:
        """Return the version incremented by ``bump_type``."""
        if bump_type is BumpType.MAJOR:
            return Version(self.major + 1, 0, 0)
        if bump_type is BumpType.MINOR:
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)

    def bump_prerelease(self) -> Version:
        """Increment the trailing numeric pre-release identifier.

        ``1.0.0-rc.1`` becomes ``1.0.0-rc.2`` and ``1.0.0-alpha`` becomes
        ``1.0.0-alpha.1``.
        """
        parts = self.prerelease.split(".")
        if parts[-1].isdigit():
            parts[-1] = str(int(parts[-1]) + 1)
        else:
            parts.append("1")
        return replace(self, prerelease=".".join(parts), build="")


def split_version(text: str) -> tuple[str, Version]:
    """Split a tag into an opaque prefix and a semantic version.

    The tag is first parsed as-is. Otherwise, when it has at least one dot,
    it is scanned left to right: at the start of every run of digits the
    remainder is tried as a version, and the text before it becomes the
    prefix.

    Raises:
        VersionParseError: If no semantic version can be found
    """
    try:
        return "", Version.parse(text)
    except VersionParseError:
        if len(text.split(".")) < 2:
            raise

    in_digits = False
    for index, char in enumerate(text):
        if char.isdigit() and not in_digits:
            in_digits = True
            try:
                return text[:index], Version.parse(text[index:])
            except VersionParseError:
                continue
        elif not char.isdigit():
            in_digits = False

    raise VersionParseError(f"could not find a semantic version in {text!r}")


def _matches(pattern: re.Pattern[str] | None, commit_type: str) -> bool:
    return pattern is not None and pattern.search(commit_type) is not None


def increment_version(version: Version, messages: Iterable[str], config: BumpConfig) -> Version:
    """Compute the next version from conventional commit messages.

    Args:
        version: The previous version
        messages: Commit messages since the previous version
        config: Bump rules

    Returns:
        The next version; ``version`` itself when there are no messages
    """
    messages = list(messages)
    if not messages:
        return version

    if version.prerelease:
        return version.bump_prerelease()

    major_bump = False
    minor_bump = False
    for message in messages:
        try:
            conv = parse_conventional(message)
        except ConventionalCommitError:
            continue
        if conv.breaking or _matches(config.custom_major_increment_regex, conv.type):
            major_bump = True
        elif conv.type == "feat" or _matches(config.custom_minor_increment_regex, conv.type):
            minor_bump = True

    if major_bump:
        if version.major == 0 and not config.breaking_always_bump_major:
            return version.bump(BumpType.MINOR)
        return version.bump(BumpType.MAJOR)
    if minor_bump:
        if version.major == 0 and not config.features_always_bump_minor:
            return version.bump(BumpType.PATCH)
        return version.bump(BumpType.MINOR)
    return version.bump(BumpType.PATCH)


def next_version(previous: str, messages: Iterable[str], config: BumpConfig) -> str:
    """Bump a tag name, keeping its prefix.

    Raises:
        VersionParseError: If ``previous`` holds no semantic version
    """
    prefix, version = split_version(previous)
    if config.bump_type is not None:
        bumped = version.bump(config.bump_type)
    else:
        bumped = increment_version(version, messages, config)
    logger.debug("Next version after %s is %s%s", previous, prefix, bumped)
    return f"{prefix}{bumped}"
