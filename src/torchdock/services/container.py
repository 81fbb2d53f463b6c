# services/container.py
"""
Service for running and stopping containers from the PyTorch image.
"""

from pathlib import Path
from typing import Optional, Union

from torchdock.core.docker import (
    DOCKERENV_MARKER,
    RunPlan,
    inside_container,
    list_containers,
    run_command_args,
    stop_containers,
)
from torchdock.core.exceptions import TorchdockError
from torchdock.core.logger import get_logger
from torchdock.core.shell import format_command, run_command
from torchdock.models.container import ContainerStopResult, RunResult

from .base import BaseService, ServiceResult

logger = get_logger(__name__)


class ContainerService(BaseService):
    """Service for container lifecycle operations."""

    def __init__(self, config=None, dockerenv: Union[str, Path] = DOCKERENV_MARKER) -> None:
        super().__init__(config)
        self.dockerenv = Path(dockerenv)

    def run_plan(self, **overrides) -> ServiceResult[RunPlan]:
        """
        RunPlan from configuration; None-valued overrides are ignored.

        Returns:
            ServiceResult containing the RunPlan; fails on bad [run] values
        """
        try:
            return ServiceResult.ok(data=RunPlan.from_config(self.config, **overrides))
        except (ValueError, TypeError) as e:
            return ServiceResult.fail(f"Invalid run configuration: {e}")

    def run(self, plan: RunPlan) -> ServiceResult[RunResult]:
        """
        Start a container with GPU passthrough and wait for it to exit.

        The container shares our terminal, so an interactive shell works.

        Args:
            plan: Run parameters

        Returns:
            ServiceResult containing RunResult; fails on non-zero exit
        """
        args = run_command_args(plan)
        logger.info(f"Starting container: {format_command(args)}")

        try:
            result = run_command(args, capture=False)
        except TorchdockError as e:
            return ServiceResult.fail(e.message)

        if not result.ok:
            return ServiceResult.fail(
                f"Container exited with status {result.returncode}",
                returncode=result.returncode,
            )

        run_result = RunResult(image_ref=plan.image_ref, command=args, returncode=result.returncode)
        return ServiceResult.ok(data=run_result, message="Container exited")

    def stop(self, image_ref: Optional[str] = None) -> ServiceResult[ContainerStopResult]:
        """
        Stop every running container started from an image.

        Inside a container there is nothing to stop from here; the result
        reports inside_container=True and the caller should just exit.

        Args:
            image_ref: Image to filter on (default: configured image)

        Returns:
            ServiceResult containing ContainerStopResult
        """
        image_ref = image_ref or self.config.image_ref

        if inside_container(self.dockerenv):
            return ServiceResult.ok(
                data=ContainerStopResult(image_ref=image_ref, inside_container=True),
                message="Exiting Docker container...",
            )

        try:
            ids = list_containers(image_ref)
            if not ids:
                return ServiceResult.ok(
                    data=ContainerStopResult(image_ref=image_ref),
                    message="No running PyTorch containers found.",
                )
            stop_containers(ids)
        except TorchdockError as e:
            return ServiceResult.fail(e.message)

        return ServiceResult.ok(
            data=ContainerStopResult(image_ref=image_ref, stopped=ids),
            message="Containers stopped.",
        )
