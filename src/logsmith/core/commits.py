"""Commit data model and conventional commit parsing.

A conventional commit looks like::

    type(scope)!: description

    optional body paragraphs

    Token: footer value
    BREAKING CHANGE: what broke

The ``!`` marker or a ``BREAKING CHANGE``/``BREAKING-CHANGE`` footer marks
the commit as breaking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from logsmith.exceptions import ConventionalCommitError

if TYPE_CHECKING:
    from logsmith.remote.models import RemoteContributor

SUMMARY_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z0-9][\w-]*)"
    r"(?:\((?P<scope>[^()\r\n]+)\))?"
    r"(?P<breaking>!)?"
    r":[ \t]+(?P<description>\S.*)$"
)

FOOTER_PATTERN = re.compile(r"^(?P<token>BREAKING[ -]CHANGE|[\w-]+)(?P<separator>: | #)(?P<value>.*)$")

BREAKING_TOKENS = frozenset({"BREAKING CHANGE", "BREAKING-CHANGE"})


@dataclass(frozen=True)
class Signature:
    """Author or committer of a commit."""

    name: str | None = None
    email: str | None = None
    timestamp: int = 0

    def to_context(self) -> dict[str, Any]:
        return {"name": self.name, "email": self.email, "timestamp": self.timestamp}


@dataclass(frozen=True)
class Link:
    """A link extracted from a commit message."""

    text: str
    href: str

    def to_context(self) -> dict[str, Any]:
        return {"text": self.text, "href": self.href}


@dataclass(frozen=True)
class Footer:
    """A conventional commit footer (trailer)."""

    token: str
    separator: str
    value: str
    breaking: bool = False

    def __str__(self) -> str:
        separator = ": " if self.separator == ":" else self.separator
        return f"{self.token}{separator}{self.value}"

    def to_context(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "separator": self.separator,
            "value": self.value,
            "breaking": self.breaking,
        }


@dataclass(frozen=True)
class ConventionalCommit:
    """Structured form of a conventional commit message."""

    type: str
    description: str
    scope: str | None = None
    body: str | None = None
    footers: tuple[Footer, ...] = ()
    breaking: bool = False
    breaking_description: str | None = None


def _parse_footers(lines: list[str]) -> list[Footer]:
    footers: list[Footer] = []
    for line in lines:
        match = FOOTER_PATTERN.match(line)
        if match:
            token = match.group("token")
            separator = ":" if match.group("separator") == ": " else " #"
            footers.append(
                Footer(
                    token=token,
                    separator=separator,
                    value=match.group("value"),
                    breaking=token in BREAKING_TOKENS,
                )
            )
        elif footers:
            # Continuation of the previous footer's value
            last = footers[-1]
            footers[-1] = Footer(last.token, last.separator, f"{last.value}\n{line}", last.breaking)
    return footers


def parse_conventional(message: str) -> ConventionalCommit:
    """Parse a commit message with the conventional commit grammar.

    Args:
        message: Full commit message

    Returns:
        Parsed conventional commit

    Raises:
        ConventionalCommitError: If the message does not follow the grammar
    """
    text = message.strip()
    if not text:
        raise ConventionalCommitError("missing type in the commit summary")

    summary, _, rest = text.partition("\n")
    match = SUMMARY_PATTERN.match(summary.strip())
    if not match:
        raise ConventionalCommitError(f"invalid commit summary: {summary.strip()!r}")

    paragraphs = [p.strip("\n") for p in re.split(r"\n[ \t]*\n", rest.strip("\n")) if p.strip()]

    # Footers start at the first paragraph whose first line is a footer.
    footer_start = len(paragraphs)
    for index, paragraph in enumerate(paragraphs):
        if FOOTER_PATTERN.match(paragraph.splitlines()[0]):
            footer_start = index
            break

    body = "\n\n".join(paragraphs[:footer_start]) or None
    footer_lines = "\n".join(paragraphs[footer_start:]).splitlines()
    footers = _parse_footers(footer_lines)

    breaking_footer = next((f for f in footers if f.breaking), None)
    breaking = bool(match.group("breaking")) or breaking_footer is not None
    description = match.group("description").strip()

    breaking_description = None
    if breaking:
        breaking_description = breaking_footer.value if breaking_footer else description

    return ConventionalCommit(
        type=match.group("type"),
        description=description,
        scope=match.group("scope"),
        body=body,
        footers=tuple(footers),
        breaking=breaking,
        breaking_description=breaking_description,
    )


@dataclass(frozen=True)
class Commit:
    """A commit flowing through the changelog pipeline.

    Pipeline stages never mutate a commit; they return a modified copy made
    with :func:`dataclasses.replace`.
    """

    id: str
    message: str
    author: Signature = field(default_factory=Signature)
    committer: Signature = field(default_factory=Signature)
    conv: ConventionalCommit | None = None
    group: str | None = None
    scope: str | None = None
    default_scope: str | None = None
    links: tuple[Link, ...] = ()
    remote: RemoteContributor | None = None
    merge_commit: bool = False

    @property
    def effective_scope(self) -> str | None:
        """Parser scope, else conventional scope, else parser default scope."""
        if self.scope is not None:
            return self.scope
        if self.conv is not None and self.conv.scope is not None:
            return self.conv.scope
        return self.default_scope

    @property
    def effective_group(self) -> str | None:
        """Parser group, else the conventional type."""
        if self.group is not None:
            return self.group
        return self.conv.type if self.conv is not None else None

    @property
    def breaking(self) -> bool:
        return self.conv is not None and self.conv.breaking

    @property
    def timestamp(self) -> int:
        return self.committer.timestamp

    def to_context(self) -> dict[str, Any]:
        """Serialize the commit for templates, JSON output and field lookup."""
        conv = self.conv
        return {
            "id": self.id,
            "message": conv.description if conv else self.message,
            "body": conv.body if conv else None,
            "footers": [f.to_context() for f in conv.footers] if conv else [],
            "group": self.effective_group,
            "scope": self.effective_scope,
            "breaking_description": conv.breaking_description if conv else None,
            "breaking": self.breaking,
            "conventional": conv is not None,
            "merge_commit": self.merge_commit,
            "links": [link.to_context() for link in self.links],
            "author": self.author.to_context(),
            "committer": self.committer.to_context(),
            "remote": self.remote.to_context() if self.remote else None,
            "raw_message": self.message,
        }
