"""
Exception classes raised by torchdock core modules.

Services catch these and turn them into failed ServiceResults, so the CLI
never sees a traceback for an expected failure.
"""

from typing import List, Optional, Sequence


class TorchdockError(Exception):
    """Base class for torchdock errors."""

    def __init__(self, message: str = "torchdock operation failed.") -> None:
        super().__init__(message)
        self.message = message


class CommandNotFoundError(TorchdockError):
    """
    Raised when an external executable is not on PATH.

    Attributes:
        executable (str): Name of the missing executable
    """

    def __init__(self, executable: str) -> None:
        super().__init__(f"Command not found: {executable}")
        self.executable = executable


class CommandError(TorchdockError):
    """
    Raised when an external command fails or times out.

    Attributes:
        command (List[str]): The argv that was executed
        returncode (int): Exit status, -1 on timeout
        stderr (str): Captured standard error, empty when not captured
    """

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        stderr: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.command: List[str] = list(args)
        self.returncode = returncode
        self.stderr = stderr or ""
        if message is None:
            message = f"Command '{' '.join(self.command)}' exited with status {returncode}"
            if self.stderr.strip():
                message += f": {self.stderr.strip()}"
        super().__init__(message)
