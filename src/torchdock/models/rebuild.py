"""Incremental rebuild models."""

from dataclasses import dataclass, field
from typing import List

from torchdock.models.base import ToDictMixin


@dataclass
class RebuildResult(ToDictMixin):
    """Outcome of an incremental rebuild."""

    source_dir: str
    duration_seconds: float
    links: List[str] = field(default_factory=list)
