"""Async wrapper around external command execution.

Every vendor tool (java, brew, docker, mvn, gradle, apt...) is driven through
``run_command`` so that tests can patch a single seam.
"""

import asyncio
import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Sequence

from scalardb_setup.config import settings
from scalardb_setup.core.errors import CommandError, CommandTimeout

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    cmd: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout + stderr (``java -version`` prints to stderr)."""
        return f"{self.stdout}{self.stderr}"


def _display(cmd: str | Sequence[str]) -> str:
    return cmd if isinstance(cmd, str) else shlex.join(cmd)


async def run_command(
    cmd: str | Sequence[str],
    *,
    timeout: float | None = None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    check: bool = True,
) -> CommandResult:
    """Run an external command in a worker thread.

    A ``str`` command goes through the shell (needed for ``curl ... | bash``
    installers); a sequence is executed directly.

    Raises:
        CommandError: non-zero exit with ``check=True``, or executable not found.
        CommandTimeout: the command ran longer than ``timeout`` seconds.
    """
    display = _display(cmd)
    timeout = timeout if timeout is not None else settings.command_timeout
    logger.debug("Running command: %s", display)

    try:
        proc = await asyncio.to_thread(
            subprocess.run,
            cmd if isinstance(cmd, str) else list(cmd),
            shell=isinstance(cmd, str),
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=env,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning("Command timed out after %ss: %s", timeout, display)
        raise CommandTimeout(display, timeout) from e
    except FileNotFoundError as e:
        raise CommandError(display, 127, "", str(e)) from e

    result = CommandResult(display, proc.returncode, proc.stdout or "", proc.stderr or "")
    if check and not result.ok:
        logger.debug("Command failed (%d): %s", result.returncode, display)
        raise CommandError(display, result.returncode, result.stdout, result.stderr)
    return result


def which(name: str) -> str | None:
    """Return the full path of an executable on PATH, or None."""
    return shutil.which(name)
