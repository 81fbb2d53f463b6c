"""Data models returned by torchdock services."""

from torchdock.models.base import ToDictMixin
from torchdock.models.container import ContainerStopResult, RunResult
from torchdock.models.diagnostics import TorchDevice, TorchInfo
from torchdock.models.image import BuildResult
from torchdock.models.preflight import CheckInfo, GpuDevice, PreflightReport
from torchdock.models.rebuild import RebuildResult

__all__ = [
    "ToDictMixin",
    "CheckInfo",
    "GpuDevice",
    "PreflightReport",
    "BuildResult",
    "RunResult",
    "ContainerStopResult",
    "RebuildResult",
    "TorchDevice",
    "TorchInfo",
]
