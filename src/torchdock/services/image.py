# services/image.py
"""
Service for rendering the Dockerfile and building the image.
"""

import time
from pathlib import Path
from typing import Optional

from torchdock.core.docker import BUILD_FAILURE_HINTS, BuildPlan, build_command, run_hints
from torchdock.core.dockerfile import ImageSpec, render_dockerfile, write_dockerfile
from torchdock.core.exceptions import CommandError, TorchdockError
from torchdock.core.logger import get_logger
from torchdock.core.shell import format_command, run_command
from torchdock.models.image import BuildResult

from .base import BaseService, ServiceResult

logger = get_logger(__name__)


class ImageService(BaseService):
    """Service for the PyTorch image: Dockerfile rendering and docker build."""

    def _spec_from_config(self, max_jobs: Optional[int] = None, cuda_arch_list: Optional[str] = None) -> ImageSpec:
        spec = ImageSpec.from_config(self.config)
        if max_jobs is not None:
            spec.max_jobs = max_jobs
        if cuda_arch_list is not None:
            spec.cuda_arch_list = cuda_arch_list
        return spec

    def image_spec(
        self,
        max_jobs: Optional[int] = None,
        cuda_arch_list: Optional[str] = None,
    ) -> ServiceResult[ImageSpec]:
        """
        ImageSpec from configuration, with optional overrides.

        Returns:
            ServiceResult containing the ImageSpec; fails on bad [image] or
            [build] values
        """
        try:
            spec = self._spec_from_config(max_jobs, cuda_arch_list)
            spec.validate()
            return ServiceResult.ok(data=spec)
        except (ValueError, TypeError) as e:
            return ServiceResult.fail(f"Invalid image configuration: {e}")

    def render_dockerfile(self, spec: Optional[ImageSpec] = None) -> ServiceResult[str]:
        """
        Render the Dockerfile text.

        Args:
            spec: Image specification (default: from configuration)

        Returns:
            ServiceResult containing the Dockerfile contents
        """
        try:
            content = render_dockerfile(spec or self._spec_from_config())
            return ServiceResult.ok(data=content, message="Rendered Dockerfile")
        except (ValueError, TypeError) as e:
            return ServiceResult.fail(f"Invalid image configuration: {e}")
        except Exception as e:
            return ServiceResult.fail(f"Failed to render Dockerfile: {e}")

    def write_dockerfile(
        self,
        output: Optional[str] = None,
        force: bool = False,
        spec: Optional[ImageSpec] = None,
        context: Optional[str] = None,
    ) -> ServiceResult[str]:
        """
        Render the Dockerfile and write it with its helper scripts.

        Args:
            output: Dockerfile path (default: [build].dockerfile)
            force: Overwrite an existing file
            spec: Image specification (default: from configuration)
            context: Directory for helper scripts (default: [build].context)

        Returns:
            ServiceResult containing the written path
        """
        try:
            path = output or self.config.get("build", "dockerfile", "Dockerfile")
            context_dir = context or self.config.get("build", "context", ".")
            written = write_dockerfile(spec or self._spec_from_config(), path, force=force, context=context_dir)
            return ServiceResult.ok(data=str(written), message=f"Wrote {written}")
        except (ValueError, TypeError) as e:
            return ServiceResult.fail(f"Invalid image configuration: {e}")
        except TorchdockError as e:
            return ServiceResult.fail(e.message)
        except Exception as e:
            return ServiceResult.fail(f"Failed to write Dockerfile: {e}")

    def build_plan(self, **overrides) -> ServiceResult[BuildPlan]:
        """
        BuildPlan from configuration; None-valued overrides are ignored.

        Returns:
            ServiceResult containing the BuildPlan; fails on bad [build] values
        """
        try:
            return ServiceResult.ok(data=BuildPlan.from_config(self.config, **overrides))
        except (ValueError, TypeError) as e:
            return ServiceResult.fail(f"Invalid build configuration: {e}")

    def build(self, plan: BuildPlan, render: bool = False) -> ServiceResult[BuildResult]:
        """
        Run `docker build` for a plan, streaming its output.

        Args:
            plan: Build parameters
            render: Regenerate the Dockerfile (overwriting it) before building

        Returns:
            ServiceResult containing a BuildResult. On failure the metadata
            carries "hints" with common causes.
        """
        dockerfile = None
        if render:
            spec = self.image_spec(max_jobs=plan.max_jobs, cuda_arch_list=plan.cuda_arch_list)
            if not spec.success:
                return ServiceResult.fail(spec.error)
            written = self.write_dockerfile(plan.dockerfile, force=True, spec=spec.data, context=plan.context)
            if not written.success:
                return ServiceResult.fail(written.error)
            dockerfile = written.data

        if not Path(plan.dockerfile).exists():
            return ServiceResult.fail(
                f"Dockerfile not found: {plan.dockerfile}. Run 'torchdock dockerfile' or pass --render."
            )

        args = build_command(plan)
        logger.info(f"Building image: {format_command(args)}")
        started = time.monotonic()

        try:
            result = run_command(args, capture=False)
        except CommandError as e:
            return ServiceResult.fail(e.message, hints=BUILD_FAILURE_HINTS)
        except TorchdockError as e:
            return ServiceResult.fail(e.message)

        build_result = BuildResult(
            image_ref=plan.image_ref,
            command=args,
            returncode=result.returncode,
            duration_seconds=time.monotonic() - started,
            dockerfile=dockerfile,
        )

        if not build_result.succeeded:
            return ServiceResult.fail(
                f"Build failed with exit status {result.returncode}",
                hints=BUILD_FAILURE_HINTS,
                build=build_result,
            )

        build_result.hints = run_hints(plan.image_ref)
        return ServiceResult.ok(
            data=build_result,
            message=f"Build completed successfully: {plan.image_ref}",
        )
