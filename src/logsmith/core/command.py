"""External command execution.

Preprocessors and postprocessors may delegate text rewriting to a shell
command. The text is written to the command's stdin and whatever the
command prints on stdout replaces it.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import TYPE_CHECKING

from logsmith.exceptions import CommandError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


def run_command(
    command: str,
    input: str | None = None,
    envs: Mapping[str, str] | None = None,
) -> str:
    """Run a shell command and return its standard output.

    Args:
        command: Command line passed to the system shell
        input: Optional text written to the command's stdin
        envs: Extra environment variables for the command

    Returns:
        Captured stdout of the command

    Raises:
        CommandError: If the command cannot be started or exits non-zero
    """
    if sys.platform == "win32":
        args = ["cmd", "/C", command]
    else:
        args = ["sh", "-c", command]

    env = None
    if envs:
        env = {**os.environ, **envs}

    logger.debug("Running command: %s", command)
    try:
        result = subprocess.run(
            args,
            input=input,
            capture_output=True,
            text=True,
            check=True,
            env=env,
        )
    except FileNotFoundError as e:
        raise CommandError(f"failed to start command: {command}") from e
    except subprocess.CalledProcessError as e:
        raise CommandError(
            f"command exited with status {e.returncode}: {command}",
            stderr=e.stderr,
        ) from e
    return result.stdout
