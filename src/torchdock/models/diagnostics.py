"""PyTorch build diagnostics models."""

from dataclasses import dataclass, field
from typing import List, Optional

from torchdock.models.base import ToDictMixin


@dataclass
class TorchDevice(ToDictMixin):
    """A CUDA device visible to torch."""

    index: int
    name: str


@dataclass
class TorchInfo(ToDictMixin):
    """What the built PyTorch reports about itself."""

    torch_version: str
    cuda_available: bool
    cuda_version: Optional[str] = None
    cudnn_version: Optional[int] = None
    device_count: int = 0
    devices: List[TorchDevice] = field(default_factory=list)
    nvidia_smi: Optional[str] = None
