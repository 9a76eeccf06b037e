"""Implementation of the 'init' command."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from logsmith.config.loader import CONFIG_FILE_NAME
from logsmith.config.models import DEFAULT_BODY, DEFAULT_FOOTER, DEFAULT_HEADER
from logsmith.vcs.git import GitRepository

if TYPE_CHECKING:
    from rich.console import Console


def render_default_config(remote: tuple[str, str] | None = None) -> str:
    """Default ``logsmith.toml`` contents.

    Args:
        remote: Owner and repository of the upstream remote, written as a
            commented-out ``[remote.github]`` example when known
    """
    lines = [
        "# logsmith configuration",
        "",
        "[changelog]",
        f"header = '''\n{DEFAULT_HEADER}'''",
        f"body = '''\n{DEFAULT_BODY}'''",
        f"footer = '''\n{DEFAULT_FOOTER}'''",
        "trim = true",
        "",
        "[git]",
        "conventional_commits = true",
        "filter_unconventional = true",
        "split_commits = false",
        "commit_parsers = [",
        '  { message = "^feat", group = "Features" },',
        '  { message = "^fix", group = "Bug Fixes" },',
        '  { message = "^doc", group = "Documentation" },',
        '  { message = "^perf", group = "Performance" },',
        '  { message = "^refactor", group = "Refactor" },',
        '  { message = "^chore\\\\(release\\\\)", skip = true },',
        '  { message = ".*", group = "Other" },',
        "]",
        "protect_breaking_commits = false",
        "filter_commits = false",
        'sort_commits = "oldest"',
        "",
        "[bump]",
        "features_always_bump_minor = true",
        "breaking_always_bump_major = true",
        "",
    ]
    if remote is not None:
        owner, repo = remote
        lines += [
            "# [remote.github]",
            f'# owner = "{owner}"',
            f'# repo = "{repo}"',
            "",
        ]
    return "\n".join(lines)


def run_init(
    path: str | None,
    force: bool,
    console: Console,
    err_console: Console,
) -> None:
    """Run the init command.

    Args:
        path: Optional path to the project directory
        force: Overwrite an existing configuration file
        console: Console for standard output
        err_console: Console for error output
    """
    project_path = Path(path) if path else Path.cwd()
    config_path = project_path / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        err_console.print(
            f"[red]Error:[/] {config_path} already exists. Use [cyan]--force[/] to overwrite it."
        )
        raise SystemExit(1)

    remote = GitRepository(project_path).upstream_remote()
    config_path.write_text(render_default_config(remote))
    console.print(f"[green]✓[/] Created {config_path}")
