"""Command line interface."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from logsmith import __version__
from logsmith.cli.commands.generate import GenerateOptions, run_generate
from logsmith.cli.commands.init import run_init
from logsmith.log import setup_logging

app = typer.Typer(
    name="logsmith",
    help="Generate changelogs from git history.",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


class BumpChoice(StrEnum):
    AUTO = "auto"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class StripChoice(StrEnum):
    HEADER = "header"
    FOOTER = "footer"
    ALL = "all"


class SortChoice(StrEnum):
    OLDEST = "oldest"
    NEWEST = "newest"


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"logsmith {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version."),
    ] = False,
) -> None:
    """Generate changelogs from git history."""


@app.command()
def generate(
    revision_range: Annotated[
        str | None, typer.Argument(metavar="RANGE", help="Revision range to read, e.g. v1.0.0..HEAD.")
    ] = None,
    config: Annotated[Path | None, typer.Option("--config", "-c", help="Configuration file.")] = None,
    repository: Annotated[
        Path | None, typer.Option("--repository", "-r", help="Path of the git repository.")
    ] = None,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write to a file.")] = None,
    prepend: Annotated[
        Path | None, typer.Option("--prepend", help="Prepend to an existing changelog.")
    ] = None,
    unreleased: Annotated[bool, typer.Option("--unreleased", "-u", help="Only unreleased changes.")] = False,
    latest: Annotated[bool, typer.Option("--latest", "-l", help="Only the latest release.")] = False,
    current: Annotated[bool, typer.Option("--current", help="Only the release tagged at HEAD.")] = False,
    tag: Annotated[str | None, typer.Option("--tag", "-t", help="Version of the unreleased changes.")] = None,
    body: Annotated[str | None, typer.Option("--body", "-b", help="Template for the changelog body.")] = None,
    with_commit: Annotated[
        list[str] | None, typer.Option("--with-commit", help="Add a commit message to the latest release.")
    ] = None,
    bump: Annotated[
        BumpChoice | None, typer.Option("--bump", help="Bump the version of the unreleased changes.")
    ] = None,
    bumped_version: Annotated[
        bool, typer.Option("--bumped-version", help="Print the next version and exit.")
    ] = False,
    context: Annotated[bool, typer.Option("--context", "-x", help="Print the template context as JSON.")] = False,
    strip: Annotated[StripChoice | None, typer.Option("--strip", help="Leave out header or footer.")] = None,
    sort: Annotated[SortChoice | None, typer.Option("--sort", help="Commit order inside releases.")] = None,
    topo_order: Annotated[bool, typer.Option("--topo-order", help="Sort tags topologically.")] = False,
    include_path: Annotated[
        list[str] | None, typer.Option("--include-path", help="Only commits touching these paths.")
    ] = None,
    exclude_path: Annotated[
        list[str] | None, typer.Option("--exclude-path", help="Ignore commits touching these paths.")
    ] = None,
    skip_commit: Annotated[
        list[str] | None, typer.Option("--skip-commit", help="Leave out commits by id.")
    ] = None,
    no_exec: Annotated[bool, typer.Option("--no-exec", help="Do not run external commands.")] = False,
    offline: Annotated[bool, typer.Option("--offline", help="Do not fetch remote data.")] = False,
    verbose: Annotated[int, typer.Option("--verbose", "-v", count=True, help="Increase verbosity.")] = 0,
) -> None:
    """Generate a changelog."""
    setup_logging(verbose)
    options = GenerateOptions(
        revision_range=revision_range,
        config=config,
        repository=repository,
        output=output,
        prepend=prepend,
        unreleased=unreleased,
        latest=latest,
        current=current,
        tag=tag,
        body=body,
        with_commits=with_commit or [],
        bump=bump.value if bump else None,
        bumped_version=bumped_version,
        context=context,
        strip=strip.value if strip else None,
        sort=sort.value if sort else None,
        topo_order=topo_order,
        include_paths=include_path or [],
        exclude_paths=exclude_path or [],
        skip_commits=skip_commit or [],
        no_exec=no_exec,
        offline=offline,
    )
    run_generate(options, console, err_console)


@app.command()
def init(
    path: Annotated[str | None, typer.Argument(help="Project directory.")] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Overwrite an existing file.")] = False,
) -> None:
    """Write a default logsmith.toml."""
    setup_logging()
    run_init(path, force, console, err_console)


def main() -> None:
    app()
