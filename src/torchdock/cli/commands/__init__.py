"""CLI command modules for torchdock."""

from .build import build, dockerfile
from .config import config
from .container import run, stop
from .info import info, version
from .preflight import preflight
from .rebuild import rebuild

__all__ = [
    "build",
    "config",
    "dockerfile",
    "info",
    "preflight",
    "rebuild",
    "run",
    "stop",
    "version",
]
