"""Container lifecycle models."""

from dataclasses import dataclass, field
from typing import List

from torchdock.models.base import ToDictMixin


@dataclass
class RunResult(ToDictMixin):
    """Outcome of a `docker run`."""

    image_ref: str
    command: List[str]
    returncode: int


@dataclass
class ContainerStopResult(ToDictMixin):
    """Outcome of stopping containers started from an image."""

    image_ref: str
    inside_container: bool = False
    stopped: List[str] = field(default_factory=list)
