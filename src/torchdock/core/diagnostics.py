"""
Diagnostic information for a PyTorch build.

This module reports what the `pytorch-info` helper in the image reports: the
PyTorch, CUDA and cuDNN versions the build ended up with, which GPUs it can
see, and the raw nvidia-smi output. It is meant to run inside the container,
where the freshly built torch is importable.
"""

import importlib.metadata
from typing import Any, Dict, Optional

from torchdock.core.exceptions import CommandError, CommandNotFoundError, TorchdockError
from torchdock.core.logger import get_logger
from torchdock.core.shell import run_command

logger = get_logger(__name__)


def get_torchdock_version() -> str:
    """
    Get the installed version of torchdock.

    Falls back to the package's __version__ when running from a source tree
    that was never installed.
    """
    try:
        return importlib.metadata.version("torchdock")
    except importlib.metadata.PackageNotFoundError:
        from torchdock import __version__

        return __version__


def get_torch_info() -> Dict[str, Any]:
    """
    Get build and device information from the importable torch.

    Returns:
        Dict[str, Any]: A dictionary containing:
            - torch_version (str): torch.__version__
            - cuda_available (bool): Whether CUDA is usable
            - cuda_version (Optional[str]): CUDA version torch was built with
            - cudnn_version (Optional[int]): cuDNN version, None if absent
            - device_count (int): Number of visible CUDA devices
            - devices (List[Dict[str, Any]]): index and name per device

    Raises:
        TorchdockError: If torch cannot be imported
    """
    try:
        import torch
    except ImportError as e:
        raise TorchdockError(f"PyTorch is not importable here: {e}") from e

    cuda_available = torch.cuda.is_available()
    device_count = torch.cuda.device_count() if cuda_available else 0

    info = {
        "torch_version": torch.__version__,
        "cuda_available": cuda_available,
        "cuda_version": torch.version.cuda,
        "cudnn_version": torch.backends.cudnn.version() if torch.backends.cudnn.is_available() else None,
        "device_count": device_count,
        "devices": [],
    }

    for i in range(device_count):
        info["devices"].append({"index": i, "name": torch.cuda.get_device_name(i)})

    return info


def get_nvidia_smi() -> Optional[str]:
    """Raw `nvidia-smi` output, or None when it is unavailable."""
    try:
        result = run_command(["nvidia-smi"], timeout=30)
    except (CommandError, CommandNotFoundError) as e:
        logger.debug(f"nvidia-smi unavailable: {e}")
        return None
    return result.stdout if result.ok else None
