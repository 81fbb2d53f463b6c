"""
Host pre-flight checks.

These checks run before an image build: they confirm docker and the NVIDIA
container runtime work, that the host driver is new enough for CUDA 13.0,
and that there is enough disk and memory for a PyTorch source build.

Every check returns a CheckStatus instead of raising, so a report can show
all problems at once.
"""

import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from torchdock.core.config import Config
from torchdock.core.exceptions import CommandError, CommandNotFoundError
from torchdock.core.logger import get_logger
from torchdock.core.shell import run_command, which

logger = get_logger(__name__)

BYTES_PER_GB = 1024**3

CONTAINER_TOOLKIT_URL = (
    "https://docs.nvidia.com/datacenter/cloud-native/container-toolkit/install-guide.html"
)


# =============================================================================
# Data Structures
# =============================================================================


class CheckSeverity(str, Enum):
    """Outcome of a single check."""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class CheckStatus:
    """Status of a single pre-flight check."""

    name: str
    severity: CheckSeverity
    message: str
    detail: Optional[str] = None
    hint: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.severity == CheckSeverity.OK


@dataclass
class GpuInfo:
    """One GPU as reported by nvidia-smi."""

    index: int
    name: str
    compute_capability: str


@dataclass
class PreflightOutcome:
    """All check results for one host."""

    checks: List[CheckStatus] = field(default_factory=list)
    gpus: List[GpuInfo] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(c.severity == CheckSeverity.ERROR for c in self.checks)

    @property
    def needs_confirmation(self) -> bool:
        return any(c.name == "disk" and c.severity == CheckSeverity.WARNING for c in self.checks)


# =============================================================================
# Individual Checks
# =============================================================================


def check_root() -> CheckStatus:
    """Warn when running as root."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() == 0:
        return CheckStatus(
            name="root",
            severity=CheckSeverity.WARNING,
            message="Running as root. It's recommended to run Docker as a non-root user.",
        )
    return CheckStatus(name="root", severity=CheckSeverity.OK, message="Running as non-root user")


def check_docker() -> CheckStatus:
    """Check that the docker CLI is installed."""
    if not which("docker"):
        return CheckStatus(
            name="docker",
            severity=CheckSeverity.ERROR,
            message="Docker is not installed. Please install Docker first.",
        )

    version = None
    try:
        result = run_command(["docker", "--version"], timeout=10)
        if result.ok:
            version = result.stdout.strip()
    except (CommandError, CommandNotFoundError) as e:
        logger.debug(f"docker --version failed: {e}")

    return CheckStatus(
        name="docker",
        severity=CheckSeverity.OK,
        message=f"Docker is installed: {version}" if version else "Docker is installed",
        detail=version,
    )


def check_nvidia_runtime(probe_image: str, timeout: Optional[float] = 120) -> CheckStatus:
    """
    Check that containers can reach the GPUs through the NVIDIA runtime.

    Runs nvidia-smi inside a throwaway CUDA base container.

    Args:
        probe_image: Small CUDA image used for the probe
        timeout: Seconds to wait (the first run may pull the image)
    """
    args = [
        "docker",
        "run",
        "--rm",
        "--runtime=nvidia",
        "-e",
        "NVIDIA_VISIBLE_DEVICES=all",
        probe_image,
        "nvidia-smi",
    ]

    failure = CheckStatus(
        name="nvidia-runtime",
        severity=CheckSeverity.ERROR,
        message="NVIDIA Docker runtime is not properly configured.",
        hint=f"Please install nvidia-container-toolkit: {CONTAINER_TOOLKIT_URL}",
    )

    try:
        result = run_command(args, timeout=timeout)
    except (CommandError, CommandNotFoundError) as e:
        failure.detail = str(e)
        return failure

    if not result.ok:
        failure.detail = result.stderr.strip() or None
        return failure

    return CheckStatus(
        name="nvidia-runtime",
        severity=CheckSeverity.OK,
        message="NVIDIA Docker runtime is configured",
    )


def query_driver_version() -> str:
    """
    Get the host NVIDIA driver version from nvidia-smi.

    Returns:
        Version string of the first GPU, e.g. "580.65.06"

    Raises:
        CommandNotFoundError: If nvidia-smi is not installed
        CommandError: If nvidia-smi fails or prints nothing
    """
    args = ["nvidia-smi", "--query-gpu=driver_version", "--format=csv,noheader"]
    result = run_command(args, timeout=30, check=True)
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if not lines:
        raise CommandError(args, result.returncode, message="nvidia-smi reported no driver version")
    return lines[0]


def parse_driver_major(version: str) -> int:
    """
    Extract the major number from a driver version string.

    Raises:
        ValueError: If the version does not start with an integer
    """
    return int(version.strip().split(".")[0])


def check_driver_version(min_major: int = 580, cuda_version: str = "13.0") -> CheckStatus:
    """Check that the host driver is new enough for the CUDA toolkit in the image."""
    try:
        version = query_driver_version()
        major = parse_driver_major(version)
    except CommandNotFoundError:
        return CheckStatus(
            name="driver",
            severity=CheckSeverity.ERROR,
            message="nvidia-smi not found. Is the NVIDIA driver installed?",
        )
    except CommandError as e:
        return CheckStatus(
            name="driver",
            severity=CheckSeverity.ERROR,
            message="Could not query the NVIDIA driver version",
            detail=str(e),
        )
    except ValueError:
        return CheckStatus(
            name="driver",
            severity=CheckSeverity.ERROR,
            message=f"Unrecognized NVIDIA driver version: {version!r}",
        )

    if major < min_major:
        return CheckStatus(
            name="driver",
            severity=CheckSeverity.ERROR,
            message=f"NVIDIA driver version {version} is too old for CUDA {cuda_version}",
            detail=version,
            hint=f"Please upgrade to driver version {min_major} or newer",
        )

    return CheckStatus(
        name="driver",
        severity=CheckSeverity.OK,
        message=f"NVIDIA driver version: {version} (compatible with CUDA {cuda_version})",
        detail=version,
    )


def get_free_disk_gb(path: Union[str, Path] = ".") -> int:
    """Free space on the filesystem holding path, in whole GB."""
    return shutil.disk_usage(str(path)).free // BYTES_PER_GB


def check_disk_space(path: Union[str, Path] = ".", min_gb: int = 20) -> CheckStatus:
    """Check free disk space where the build context lives."""
    try:
        free_gb = get_free_disk_gb(path)
    except OSError as e:
        return CheckStatus(
            name="disk",
            severity=CheckSeverity.WARNING,
            message=f"Could not determine free disk space for {path}",
            detail=str(e),
        )

    if free_gb < min_gb:
        return CheckStatus(
            name="disk",
            severity=CheckSeverity.WARNING,
            message=f"Low disk space: {free_gb}GB available",
            detail=str(free_gb),
            hint=f"At least {min_gb}GB recommended for build",
        )

    return CheckStatus(
        name="disk",
        severity=CheckSeverity.OK,
        message=f"Sufficient disk space: {free_gb}GB available",
        detail=str(free_gb),
    )


def get_total_ram_gb() -> int:
    """Total physical memory in whole GB."""
    pages = os.sysconf("SC_PHYS_PAGES")
    page_size = os.sysconf("SC_PAGE_SIZE")
    return (pages * page_size) // BYTES_PER_GB


def check_memory(min_gb: int = 16) -> CheckStatus:
    """Check total RAM; low memory only warrants a warning."""
    try:
        total_gb = get_total_ram_gb()
    except (AttributeError, ValueError, OSError) as e:
        return CheckStatus(
            name="memory",
            severity=CheckSeverity.WARNING,
            message="Could not determine total RAM",
            detail=str(e),
        )

    if total_gb < min_gb:
        return CheckStatus(
            name="memory",
            severity=CheckSeverity.WARNING,
            message=f"System has {total_gb}GB RAM. At least {min_gb}GB recommended.",
            detail=str(total_gb),
            hint="Consider reducing MAX_JOBS to avoid OOM errors.",
        )

    return CheckStatus(
        name="memory",
        severity=CheckSeverity.OK,
        message=f"Total RAM: {total_gb}GB",
        detail=str(total_gb),
    )


# =============================================================================
# GPU Detection
# =============================================================================


def parse_gpu_csv(text: str) -> List[GpuInfo]:
    """
    Parse `nvidia-smi --query-gpu=index,name,compute_cap --format=csv,noheader`.

    Malformed lines are skipped.
    """
    gpus = []
    for line in text.splitlines():
        if not line.strip():
            continue
        # GPU names may themselves contain commas
        index, _, rest = line.partition(",")
        name, sep, capability = rest.rpartition(",")
        if not sep:
            logger.debug(f"Skipping malformed nvidia-smi line: {line!r}")
            continue
        try:
            gpu_index = int(index.strip())
        except ValueError:
            logger.debug(f"Skipping malformed nvidia-smi line: {line!r}")
            continue
        gpus.append(GpuInfo(index=gpu_index, name=name.strip(), compute_capability=capability.strip()))
    return gpus


def detect_gpus() -> List[GpuInfo]:
    """List host GPUs; empty when nvidia-smi is unavailable."""
    args = ["nvidia-smi", "--query-gpu=index,name,compute_cap", "--format=csv,noheader"]
    try:
        result = run_command(args, timeout=30)
    except (CommandError, CommandNotFoundError) as e:
        logger.debug(f"GPU detection failed: {e}")
        return []
    if not result.ok:
        return []
    return parse_gpu_csv(result.stdout)


# =============================================================================
# Full Run
# =============================================================================


def run_preflight(
    config: Config,
    context_dir: Union[str, Path] = ".",
    skip_runtime: bool = False,
) -> PreflightOutcome:
    """
    Run every host check in order.

    Args:
        config: Loaded configuration (thresholds come from [preflight])
        context_dir: Build context directory used for the disk check
        skip_runtime: Skip the NVIDIA runtime probe container

    Returns:
        PreflightOutcome with all check results and detected GPUs
    """
    settings = config.preflight
    outcome = PreflightOutcome()

    outcome.checks.append(check_root())

    docker = check_docker()
    outcome.checks.append(docker)

    if not skip_runtime:
        if docker.ok:
            outcome.checks.append(
                check_nvidia_runtime(
                    settings.get("probe_image", "nvidia/cuda:13.0.0-base-ubuntu22.04"),
                    timeout=settings.get("timeout", 120),
                )
            )
        else:
            outcome.checks.append(
                CheckStatus(
                    name="nvidia-runtime",
                    severity=CheckSeverity.ERROR,
                    message="NVIDIA Docker runtime cannot be checked without Docker",
                )
            )

    outcome.checks.append(
        check_driver_version(
            settings.get("min_driver_major", 580),
            cuda_version=config.get("image", "cuda_version", "13.0"),
        )
    )
    outcome.checks.append(check_disk_space(context_dir, settings.get("min_disk_gb", 20)))
    outcome.checks.append(check_memory(settings.get("min_ram_gb", 16)))
    outcome.gpus = detect_gpus()

    logger.info(
        f"Pre-flight finished: {sum(1 for c in outcome.checks if c.ok)}/{len(outcome.checks)} checks ok"
    )
    return outcome
