"""Exception hierarchy for logsmith.

All errors raised by the library derive from :class:`LogsmithError` so that
callers (and the CLI) can catch them in one place. :class:`CommitSkipped` is
the odd one out: it is an expected, frequent outcome of commit
classification and is absorbed by the classifier's caller.
"""

from __future__ import annotations

from enum import StrEnum


class LogsmithError(Exception):
    """Base exception for all logsmith errors."""


# =============================================================================
# Configuration
# =============================================================================


class ConfigError(LogsmithError):
    """Base class for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when a configuration file cannot be located."""


class ConfigValidationError(ConfigError):
    """Raised when configuration values are invalid."""


# =============================================================================
# Commit processing
# =============================================================================


class SkipKind(StrEnum):
    """Reason a commit was left out of the changelog."""

    UNCONVENTIONAL = "unconventional"
    SKIPPED = "skipped"
    UNGROUPED = "ungrouped"


class CommitSkipped(LogsmithError):
    """Raised when a commit is intentionally excluded during classification."""

    def __init__(self, kind: SkipKind, reason: str) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


class ConventionalCommitError(LogsmithError):
    """Raised when a message does not follow the conventional commit grammar."""


class FieldError(LogsmithError):
    """Raised when a commit parser references a field the commit does not have."""


class CommandError(LogsmithError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, message: str, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr

    def __str__(self) -> str:
        if self.stderr:
            return f"{super().__str__()}\n{self.stderr.strip()}"
        return super().__str__()


# =============================================================================
# Versioning
# =============================================================================


class VersionParseError(LogsmithError):
    """Raised when a version string cannot be parsed as semver."""


# =============================================================================
# Changelog and templates
# =============================================================================


class ChangelogError(LogsmithError):
    """Raised when changelog generation fails."""


class UnconventionalCommitsError(ChangelogError):
    """Raised when all commits must be conventional but some are not."""

    def __init__(self, count: int) -> None:
        super().__init__(
            f"Requiring all commits be conventional but found {count} unconventional commits."
        )
        self.count = count


class TemplateParseError(ChangelogError):
    """Raised when a template cannot be compiled."""


class TemplateRenderError(ChangelogError):
    """Raised when a template fails to render."""


# =============================================================================
# Git and remotes
# =============================================================================


class GitError(LogsmithError):
    """Raised when a git command fails."""

    def __init__(self, message: str, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr


class RemoteError(LogsmithError):
    """Raised when fetching data from a remote API fails."""


class RemoteNotSetError(RemoteError):
    """Raised when a remote client is built without owner/repo."""

    def __init__(self) -> None:
        super().__init__("Repository remote is not set.")
