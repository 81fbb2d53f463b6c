"""Image build models."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from torchdock.models.base import ToDictMixin


@dataclass
class BuildResult(ToDictMixin):
    """Outcome of a `docker build`."""

    image_ref: str
    command: List[str]
    returncode: int
    duration_seconds: float = 0.0
    dockerfile: Optional[str] = None
    hints: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0
