# services/diagnostics.py
"""
Service for PyTorch build diagnostics and version information.
"""

from torchdock.core.diagnostics import get_nvidia_smi, get_torch_info, get_torchdock_version
from torchdock.core.exceptions import TorchdockError
from torchdock.models.diagnostics import TorchDevice, TorchInfo

from .base import BaseService, ServiceResult


class DiagnosticsService(BaseService):
    """Service for inspecting the built PyTorch."""

    def torch_info(self, include_nvidia_smi: bool = True) -> ServiceResult[TorchInfo]:
        """
        Collect what the importable torch reports.

        Args:
            include_nvidia_smi: Attach raw nvidia-smi output

        Returns:
            ServiceResult containing TorchInfo; fails when torch is missing
        """
        try:
            raw = get_torch_info()
        except TorchdockError as e:
            return ServiceResult.fail(e.message)

        info = TorchInfo(
            torch_version=raw["torch_version"],
            cuda_available=raw["cuda_available"],
            cuda_version=raw["cuda_version"],
            cudnn_version=raw["cudnn_version"],
            device_count=raw["device_count"],
            devices=[TorchDevice(index=d["index"], name=d["name"]) for d in raw["devices"]],
            nvidia_smi=get_nvidia_smi() if include_nvidia_smi else None,
        )
        return ServiceResult.ok(data=info, message=f"PyTorch {info.torch_version}")

    def version(self) -> ServiceResult[str]:
        """Installed torchdock version."""
        return ServiceResult.ok(data=get_torchdock_version())
