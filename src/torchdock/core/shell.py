"""
External command execution.

Every call to docker, nvidia-smi or the PyTorch build goes through
run_command() so exit codes are checked in one place. Commands are always
passed as argv lists and never through a shell.
"""

import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from torchdock.core.exceptions import CommandError, CommandNotFoundError
from torchdock.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of an external command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def which(name: str) -> Optional[str]:
    """Return the full path of an executable, or None if it is not on PATH."""
    return shutil.which(name)


def format_command(args: Sequence[str]) -> str:
    """Render argv as a copy-pasteable shell command."""
    return shlex.join(str(a) for a in args)


def run_command(
    args: Sequence[str],
    timeout: Optional[float] = None,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    capture: bool = True,
    check: bool = False,
) -> CommandResult:
    """
    Run an external command.

    Args:
        args: Command and arguments
        timeout: Seconds before the command is killed (None waits forever)
        cwd: Working directory for the command
        env: Full environment for the child (None inherits ours)
        capture: Capture stdout/stderr as text. When False the child
                 inherits the terminal so long builds stream their output.
        check: Raise CommandError on a non-zero exit status

    Returns:
        CommandResult with exit status and captured output

    Raises:
        CommandNotFoundError: If the executable does not exist
        CommandError: On timeout, or on non-zero exit when check is True
    """
    argv = [str(a) for a in args]
    logger.debug(f"Running: {format_command(argv)}")

    try:
        completed = subprocess.run(
            argv,
            capture_output=capture,
            text=True,
            timeout=timeout,
            cwd=str(cwd) if cwd is not None else None,
            env=env,
        )
    except FileNotFoundError as e:
        raise CommandNotFoundError(argv[0]) from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(
            argv,
            -1,
            message=f"Command '{format_command(argv)}' timed out after {timeout}s",
        ) from e

    result = CommandResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )

    if not result.ok:
        logger.debug(f"Command exited with status {result.returncode}: {argv[0]}")
        if check:
            raise CommandError(argv, result.returncode, result.stderr)

    return result
