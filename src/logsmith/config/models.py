"""Configuration models.

The configuration is split into four sections that mirror the stages of
changelog generation:

- ``[changelog]``: templates, postprocessors and output options
- ``[git]``: how commits are read, parsed, grouped and filtered
- ``[remote]``: remote repositories used for pull request metadata
- ``[bump]``: how the next version is computed

All models are pydantic models with defaults, so ``LogsmithConfig()`` is a
valid configuration on its own. Regex fields are compiled at validation
time.
"""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from logsmith.core.command import run_command

DEFAULT_INITIAL_TAG = "0.1.0"

DEFAULT_HEADER = """\
# Changelog

All notable changes to this project will be documented in this file.

"""

DEFAULT_BODY = """\
{% if version %}
## [{{ version | replace_regex("^v", "") }}] - {{ timestamp | date("%Y-%m-%d") }}
{% else %}
## [unreleased]
{% endif %}
{% for group, commits in commits | group_by("group") %}

### {{ group | upper_first }}

{% for commit in commits %}
- {% if commit.scope %}*({{ commit.scope }})* {% endif %}\
{% if commit.breaking %}[**breaking**] {% endif %}{{ commit.message | upper_first }}
{% endfor %}
{% endfor %}

"""

DEFAULT_FOOTER = "<!-- generated by logsmith -->\n"

# Rust/PCRE style replacement references: $1, ${1}, ${name} and the $$ escape.
_REPLACEMENT_REF = re.compile(r"\$(?:\$|(\d+)|\{(\w+)\})")


def to_python_replacement(template: str) -> str:
    """Translate ``$1``/``${name}`` references into ``re.sub`` syntax.

    Backslashes are escaped first so that literal text survives ``re.sub``.
    """
    escaped = template.replace("\\", "\\\\")

    def _convert(match: re.Match[str]) -> str:
        if match.group(0) == "$$":
            return "$"
        ref = match.group(1) or match.group(2)
        return f"\\g<{ref}>"

    return _REPLACEMENT_REF.sub(_convert, escaped)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)


class TextProcessor(_Section):
    """Regex based text rewriting rule.

    Either ``replace`` (regex substitution) or ``replace_command`` (external
    command, only run when ``pattern`` matches) should be set.
    """

    pattern: re.Pattern[str]
    replace: str | None = None
    replace_command: str | None = None

    def apply(self, text: str, envs: dict[str, str] | None = None) -> str:
        """Return ``text`` rewritten by this processor.

        Raises:
            CommandError: If ``replace_command`` fails
        """
        if self.replace is not None:
            return self.pattern.sub(to_python_replacement(self.replace), text)
        if self.replace_command is not None and self.pattern.search(text):
            return run_command(self.replace_command, input=text, envs=envs)
        return text


class CommitParser(_Section):
    """Rule for grouping or skipping commits.

    A rule matches when any of its matchers succeeds: ``sha`` (exact commit
    id), ``message``, ``body``, ``footer`` or ``field`` + ``pattern``.
    """

    sha: str | None = None
    message: re.Pattern[str] | None = None
    body: re.Pattern[str] | None = None
    footer: re.Pattern[str] | None = None
    group: str | None = None
    default_scope: str | None = None
    scope: str | None = None
    skip: bool = False
    field: str | None = None
    pattern: re.Pattern[str] | None = None

    @model_validator(mode="after")
    def _check_field_pattern(self) -> CommitParser:
        if (self.field is None) != (self.pattern is None):
            raise ValueError("'field' and 'pattern' must be set together")
        return self


class LinkParser(_Section):
    """Rule for extracting links from commit messages."""

    pattern: re.Pattern[str]
    href: str
    text: str | None = None


class ChangelogConfig(_Section):
    """Changelog rendering configuration."""

    header: str | None = DEFAULT_HEADER
    body: str = DEFAULT_BODY
    footer: str | None = DEFAULT_FOOTER
    trim: bool = True
    render_always: bool = False
    postprocessors: list[TextProcessor] = Field(default_factory=list)
    output: Path | None = None


class GitConfig(_Section):
    """Commit reading and classification configuration."""

    conventional_commits: bool = True
    require_conventional: bool = False
    filter_unconventional: bool = True
    split_commits: bool = False
    commit_preprocessors: list[TextProcessor] = Field(default_factory=list)
    commit_parsers: list[CommitParser] = Field(default_factory=list)
    protect_breaking_commits: bool = False
    link_parsers: list[LinkParser] = Field(default_factory=list)
    filter_commits: bool = False
    tag_pattern: re.Pattern[str] | None = None
    skip_tags: re.Pattern[str] | None = None
    ignore_tags: re.Pattern[str] | None = None
    count_tags: re.Pattern[str] | None = None
    topo_order: bool = False
    sort_commits: Literal["oldest", "newest"] = "oldest"
    limit_commits: int | None = Field(default=None, ge=1)
    recurse_submodules: bool = False


class RemoteSettings(_Section):
    """A single remote repository."""

    owner: str = ""
    repo: str = ""
    token: SecretStr | None = None
    api_url: str | None = None

    @property
    def is_set(self) -> bool:
        """True if both owner and repo are known."""
        return bool(self.owner and self.repo)

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


class RemoteConfig(_Section):
    """Remote repositories, one per supported provider."""

    github: RemoteSettings = Field(default_factory=RemoteSettings)
    gitlab: RemoteSettings = Field(default_factory=RemoteSettings)
    gitea: RemoteSettings = Field(default_factory=RemoteSettings)
    bitbucket: RemoteSettings = Field(default_factory=RemoteSettings)
    azure_devops: RemoteSettings = Field(default_factory=RemoteSettings)

    @property
    def is_any_set(self) -> bool:
        """True if at least one remote is configured."""
        return any(
            remote.is_set
            for remote in (self.github, self.gitlab, self.gitea, self.bitbucket, self.azure_devops)
        )


class BumpType(StrEnum):
    """Forced version increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class BumpConfig(_Section):
    """Version bump configuration."""

    features_always_bump_minor: bool = True
    breaking_always_bump_major: bool = True
    initial_tag: str = DEFAULT_INITIAL_TAG
    custom_major_increment_regex: re.Pattern[str] | None = None
    custom_minor_increment_regex: re.Pattern[str] | None = None
    bump_type: BumpType | None = None


class LogsmithConfig(_Section):
    """Root configuration object."""

    changelog: ChangelogConfig = Field(default_factory=ChangelogConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    bump: BumpConfig = Field(default_factory=BumpConfig)
