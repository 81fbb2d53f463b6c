"""Pre-flight check reporting models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from torchdock.models.base import ToDictMixin


@dataclass
class CheckInfo(ToDictMixin):
    """Result of one host check."""

    name: str
    severity: str
    message: str
    detail: Optional[str] = None
    hint: Optional[str] = None


@dataclass
class GpuDevice(ToDictMixin):
    """A host GPU."""

    index: int
    name: str
    compute_capability: str


@dataclass
class PreflightReport(ToDictMixin):
    """All host checks for one build."""

    checks: List[CheckInfo] = field(default_factory=list)
    gpus: List[GpuDevice] = field(default_factory=list)
    passed: bool = True
    needs_confirmation: bool = False

    @property
    def errors(self) -> List[CheckInfo]:
        return [c for c in self.checks if c.severity == "error"]

    @property
    def warnings(self) -> List[CheckInfo]:
        return [c for c in self.checks if c.severity == "warning"]

    def _to_dict_extra(self) -> Optional[Dict[str, Any]]:
        return {"error_count": len(self.errors), "warning_count": len(self.warnings)}
