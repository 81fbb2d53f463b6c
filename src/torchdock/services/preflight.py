# services/preflight.py
"""
Service for host pre-flight checks.

Wraps torchdock.core.preflight and converts its results into the models the
CLI renders.
"""

from pathlib import Path
from typing import Union

from torchdock.core.logger import get_logger
from torchdock.core.preflight import CheckStatus, GpuInfo, run_preflight
from torchdock.models.preflight import CheckInfo, GpuDevice, PreflightReport

from .base import BaseService, ServiceResult

logger = get_logger(__name__)


def _to_check_info(status: CheckStatus) -> CheckInfo:
    return CheckInfo(
        name=status.name,
        severity=status.severity.value,
        message=status.message,
        detail=status.detail,
        hint=status.hint,
    )


def _to_gpu_device(gpu: GpuInfo) -> GpuDevice:
    return GpuDevice(index=gpu.index, name=gpu.name, compute_capability=gpu.compute_capability)


class PreflightService(BaseService):
    """
    Service for host pre-flight checks.

    A failed check is not a failed service call: run() succeeds whenever the
    checks could be executed, and the report says whether the host passed.
    """

    def run(
        self,
        context_dir: Union[str, Path] = ".",
        skip_runtime: bool = False,
    ) -> ServiceResult[PreflightReport]:
        """
        Run all host checks.

        Args:
            context_dir: Build context directory (disk space is measured here)
            skip_runtime: Skip the NVIDIA runtime probe container

        Returns:
            ServiceResult containing a PreflightReport
        """
        try:
            outcome = run_preflight(self.config, context_dir, skip_runtime=skip_runtime)

            report = PreflightReport(
                checks=[_to_check_info(c) for c in outcome.checks],
                gpus=[_to_gpu_device(g) for g in outcome.gpus],
                passed=outcome.passed,
                needs_confirmation=outcome.needs_confirmation,
            )

            if report.passed:
                message = f"All blocking checks passed ({len(report.warnings)} warnings)"
            else:
                failed = ", ".join(c.name for c in report.errors)
                message = f"Pre-flight failed: {failed}"

            return ServiceResult.ok(
                data=report,
                message=message,
                warnings=[c.message for c in report.warnings],
            )
        except Exception as e:
            logger.debug("Pre-flight run failed", exc_info=True)
            return ServiceResult.fail(f"Failed to run pre-flight checks: {e}")
