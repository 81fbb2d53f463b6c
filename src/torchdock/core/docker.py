"""
Requests to the docker CLI.

This module only builds argv lists and runs them; image layering and GPU
passthrough are docker's and the NVIDIA container runtime's business.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from torchdock.core.config import Config
from torchdock.core.logger import get_logger
from torchdock.core.shell import CommandResult, format_command, run_command

logger = get_logger(__name__)

DOCKERENV_MARKER = Path("/.dockerenv")
CONTAINER_WORKSPACE = "/workspace"

BUILD_FAILURE_HINTS = [
    "Out of memory: Reduce MAX_JOBS (--max-jobs)",
    "Network errors: Check internet connection",
    "CUDA errors: Verify NVIDIA driver compatibility",
]


# =============================================================================
# Build
# =============================================================================


@dataclass
class BuildPlan:
    """Parameters for one `docker build`."""

    image_ref: str
    context: str = "."
    dockerfile: str = "Dockerfile"
    max_jobs: int = 8
    cuda_arch_list: str = "12.1"
    build_args: Dict[str, str] = field(default_factory=dict)
    no_cache: bool = False

    def validate(self) -> None:
        """
        Reject values docker build would accept but the PyTorch build cannot use.

        Raises:
            ValueError: On an invalid field
        """
        if int(self.max_jobs) < 1:
            raise ValueError(f"max_jobs must be at least 1, got {self.max_jobs}")
        if not str(self.cuda_arch_list).strip():
            raise ValueError("cuda_arch_list must not be empty")

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "BuildPlan":
        """
        Build a plan from [build], letting non-None overrides win.

        Raises:
            ValueError: If max_jobs is not a positive integer or the arch
                list is empty
        """
        build = config.build
        values = {
            "image_ref": config.image_ref,
            "context": build.get("context", "."),
            "dockerfile": build.get("dockerfile", "Dockerfile"),
            "max_jobs": int(build.get("max_jobs", 8)),
            "cuda_arch_list": str(build.get("cuda_arch_list", "12.1")),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        plan = cls(**values)
        plan.validate()
        return plan


def build_command(plan: BuildPlan) -> List[str]:
    """
    Argv for `docker build`.

    MAX_JOBS and TORCH_CUDA_ARCH_LIST are always passed; extra build args
    follow in key order and cannot override them.
    """
    args = [
        "docker",
        "build",
        "--build-arg",
        f"MAX_JOBS={plan.max_jobs}",
        "--build-arg",
        f"TORCH_CUDA_ARCH_LIST={plan.cuda_arch_list}",
    ]
    for key in sorted(plan.build_args):
        if key in ("MAX_JOBS", "TORCH_CUDA_ARCH_LIST"):
            logger.warning(f"Ignoring build arg {key}; use the dedicated option instead")
            continue
        args.extend(["--build-arg", f"{key}={plan.build_args[key]}"])
    if plan.no_cache:
        args.append("--no-cache")
    args.extend(["-f", str(plan.dockerfile), "-t", plan.image_ref, str(plan.context)])
    return args


def parse_build_args(values: Sequence[str]) -> Dict[str, str]:
    """
    Parse KEY=VALUE pairs from the command line.

    Raises:
        ValueError: If an item has no '=' or an empty key
    """
    result = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Build arg must be KEY=VALUE, got {item!r}")
        result[key.strip()] = value
    return result


# =============================================================================
# Run
# =============================================================================


@dataclass
class RunPlan:
    """Parameters for one `docker run`."""

    image_ref: str
    memory: Optional[str] = "123g"
    runtime: str = "nvidia"
    visible_devices: str = "all"
    workspace: Optional[str] = None
    interactive: bool = True
    remove: bool = True
    command: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "RunPlan":
        """Build a plan from [run], letting non-None overrides win."""
        run = config.run
        values = {
            "image_ref": config.image_ref,
            "memory": run.get("memory") or None,
            "runtime": run.get("runtime", "nvidia"),
            "visible_devices": run.get("visible_devices", "all"),
            "workspace": run.get("workspace") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def run_command_args(plan: RunPlan) -> List[str]:
    """Argv for `docker run` with GPU passthrough."""
    args = ["docker", "run"]
    if plan.memory:
        args.append(f"--memory={plan.memory}")
    args.extend(
        [
            f"--runtime={plan.runtime}",
            "-e",
            f"NVIDIA_VISIBLE_DEVICES={plan.visible_devices}",
        ]
    )
    if plan.interactive:
        args.append("-it")
    if plan.remove:
        args.append("--rm")
    if plan.workspace:
        host_dir = Path(plan.workspace).expanduser().resolve()
        args.extend(["-v", f"{host_dir}:{CONTAINER_WORKSPACE}"])
    args.append(plan.image_ref)
    args.extend(plan.command)
    return args


def run_hints(image_ref: str) -> Dict[str, str]:
    """Suggested follow-up commands after a successful build."""
    base = "docker run --runtime=nvidia -e NVIDIA_VISIBLE_DEVICES=all"
    return {
        "To run the container": f"{base} -it --rm {image_ref}",
        "To run with mounted workspace": f"{base} -it --rm -v $(pwd)/workspace:/workspace {image_ref}",
        "To verify installation": f"{base} --rm {image_ref} pytorch-info",
    }


# =============================================================================
# Container Lifecycle
# =============================================================================


def inside_container(marker: Union[str, Path] = DOCKERENV_MARKER) -> bool:
    """True when running inside a docker container."""
    return Path(marker).exists()


def list_containers(image_ref: str) -> List[str]:
    """
    IDs of running containers started from an image.

    Raises:
        CommandNotFoundError: If docker is not installed
        CommandError: If `docker ps` fails
    """
    result = run_command(
        ["docker", "ps", "-q", "--filter", f"ancestor={image_ref}"],
        timeout=30,
        check=True,
    )
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def stop_containers(container_ids: Sequence[str]) -> CommandResult:
    """
    Stop containers by ID.

    Raises:
        CommandError: If `docker stop` fails
    """
    args = ["docker", "stop", *container_ids]
    logger.info(f"Stopping containers: {format_command(args)}")
    return run_command(args, check=True)
