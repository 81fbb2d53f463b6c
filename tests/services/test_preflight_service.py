"""
Tests for PreflightService.
"""

import pytest

from torchdock.core.config import get_default_config
from torchdock.core.preflight import CheckSeverity, CheckStatus, GpuInfo, PreflightOutcome
from torchdock.models.preflight import PreflightReport
from torchdock.services.preflight import PreflightService


@pytest.fixture
def service():
    return PreflightService(config=get_default_config())


class TestPreflightService:
    """Tests for PreflightService.run."""

    def test_report_from_outcome(self, service, mocker):
        """Check results and GPUs are converted to report models."""
        outcome = PreflightOutcome(
            checks=[
                CheckStatus("docker", CheckSeverity.OK, "Docker is installed"),
                CheckStatus("disk", CheckSeverity.WARNING, "Low disk space: 5GB available"),
            ],
            gpus=[GpuInfo(0, "NVIDIA GB10", "12.1")],
        )
        mock_run = mocker.patch("torchdock.services.preflight.run_preflight", return_value=outcome)

        result = service.run("/ctx", skip_runtime=True)

        assert result.success
        report = result.data
        assert isinstance(report, PreflightReport)
        assert report.passed
        assert report.needs_confirmation
        assert report.checks[1].severity == "warning"
        assert report.gpus[0].name == "NVIDIA GB10"
        assert result.warnings == ["Low disk space: 5GB available"]
        mock_run.assert_called_once_with(service.config, "/ctx", skip_runtime=True)

    def test_failed_checks_are_still_a_successful_call(self, service, mocker):
        """Failing checks are reported, not turned into a failed result."""
        outcome = PreflightOutcome(checks=[CheckStatus("driver", CheckSeverity.ERROR, "too old")])
        mocker.patch("torchdock.services.preflight.run_preflight", return_value=outcome)

        result = service.run()

        assert result.success
        assert not result.data.passed
        assert "driver" in result.message
        assert result.data.to_dict()["error_count"] == 1

    def test_unexpected_exception(self, service, mocker):
        """Unexpected errors become a failed result."""
        mocker.patch("torchdock.services.preflight.run_preflight", side_effect=RuntimeError("boom"))

        result = service.run()

        assert not result.success
        assert "boom" in result.error

    def test_result_to_dict(self, service, mocker):
        """The whole result serializes, including the report counts."""
        outcome = PreflightOutcome(
            checks=[CheckStatus("memory", CheckSeverity.WARNING, "System has 8GB RAM. At least 16GB recommended.")]
        )
        mocker.patch("torchdock.services.preflight.run_preflight", return_value=outcome)

        data = service.run().to_dict()

        assert data["success"] is True
        assert data["data"]["warning_count"] == 1
        assert data["data"]["checks"][0]["severity"] == "warning"
