"""
Unit tests for host pre-flight checks.
"""

from collections import namedtuple
from unittest.mock import patch

import pytest

from torchdock.core.config import get_default_config
from torchdock.core.exceptions import CommandError, CommandNotFoundError
from torchdock.core.preflight import (
    BYTES_PER_GB,
    CheckSeverity,
    CheckStatus,
    PreflightOutcome,
    check_disk_space,
    check_docker,
    check_driver_version,
    check_memory,
    check_nvidia_runtime,
    check_root,
    detect_gpus,
    parse_driver_major,
    parse_gpu_csv,
    run_preflight,
)
from torchdock.core.shell import CommandResult

DiskUsage = namedtuple("DiskUsage", "total used free")


def _result(returncode=0, stdout="", stderr=""):
    return CommandResult(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestCheckRoot:
    """Tests for check_root."""

    @patch("torchdock.core.preflight.os.geteuid", return_value=0, create=True)
    def test_root_warns(self, mock_geteuid):
        """Running as root is a warning."""
        status = check_root()
        assert status.severity == CheckSeverity.WARNING
        assert "non-root" in status.message

    @patch("torchdock.core.preflight.os.geteuid", return_value=1000, create=True)
    def test_non_root_ok(self, mock_geteuid):
        """A regular user passes."""
        assert check_root().ok


class TestCheckDocker:
    """Tests for check_docker."""

    @patch("torchdock.core.preflight.which", return_value=None)
    def test_missing(self, mock_which):
        """Missing docker is an error."""
        status = check_docker()
        assert status.severity == CheckSeverity.ERROR
        assert status.message == "Docker is not installed. Please install Docker first."

    @patch("torchdock.core.preflight.run_command")
    @patch("torchdock.core.preflight.which", return_value="/usr/bin/docker")
    def test_installed_reports_version(self, mock_which, mock_run):
        """The docker version string is reported."""
        mock_run.return_value = _result(stdout="Docker version 27.1.1, build 6312585\n")

        status = check_docker()

        assert status.ok
        assert status.detail == "Docker version 27.1.1, build 6312585"

    @patch("torchdock.core.preflight.run_command", side_effect=CommandError(["docker"], -1, message="timed out"))
    @patch("torchdock.core.preflight.which", return_value="/usr/bin/docker")
    def test_version_failure_still_ok(self, mock_which, mock_run):
        """An unhelpful `docker --version` does not fail the check."""
        status = check_docker()
        assert status.ok
        assert status.detail is None


class TestCheckNvidiaRuntime:
    """Tests for check_nvidia_runtime."""

    @patch("torchdock.core.preflight.run_command")
    def test_probe_command(self, mock_run):
        """The probe runs nvidia-smi in a throwaway GPU container."""
        mock_run.return_value = _result()

        status = check_nvidia_runtime("nvidia/cuda:13.0.0-base-ubuntu22.04", timeout=60)

        assert status.ok
        args = mock_run.call_args.args[0]
        assert args == [
            "docker",
            "run",
            "--rm",
            "--runtime=nvidia",
            "-e",
            "NVIDIA_VISIBLE_DEVICES=all",
            "nvidia/cuda:13.0.0-base-ubuntu22.04",
            "nvidia-smi",
        ]
        assert mock_run.call_args.kwargs["timeout"] == 60

    @patch("torchdock.core.preflight.run_command")
    def test_probe_failure(self, mock_run):
        """A failing probe is an error pointing at the container toolkit."""
        mock_run.return_value = _result(returncode=125, stderr="unknown runtime specified nvidia\n")

        status = check_nvidia_runtime("probe")

        assert status.severity == CheckSeverity.ERROR
        assert "nvidia-container-toolkit" in status.hint
        assert status.detail == "unknown runtime specified nvidia"

    @patch("torchdock.core.preflight.run_command", side_effect=CommandNotFoundError("docker"))
    def test_probe_docker_missing(self, mock_run):
        """A missing docker binary during the probe is an error."""
        assert check_nvidia_runtime("probe").severity == CheckSeverity.ERROR


class TestDriverVersion:
    """Tests for the driver version check."""

    @pytest.mark.parametrize(
        "version,expected",
        [("580.65.06", 580), ("575.51.03", 575), (" 600.1 ", 600), ("590", 590)],
    )
    def test_parse_driver_major(self, version, expected):
        """The major number is the first dotted component."""
        assert parse_driver_major(version) == expected

    def test_parse_driver_major_invalid(self):
        """Garbage raises ValueError."""
        with pytest.raises(ValueError):
            parse_driver_major("N/A")

    @patch("torchdock.core.preflight.run_command")
    def test_new_enough(self, mock_run):
        """A 580 driver passes for CUDA 13.0."""
        mock_run.return_value = _result(stdout="580.65.06\n580.65.06\n")

        status = check_driver_version(580, cuda_version="13.0")

        assert status.ok
        assert status.message == "NVIDIA driver version: 580.65.06 (compatible with CUDA 13.0)"
        assert mock_run.call_args.args[0] == [
            "nvidia-smi",
            "--query-gpu=driver_version",
            "--format=csv,noheader",
        ]

    @patch("torchdock.core.preflight.run_command")
    def test_too_old(self, mock_run):
        """A 575 driver is rejected."""
        mock_run.return_value = _result(stdout="575.51.03\n")

        status = check_driver_version(580)

        assert status.severity == CheckSeverity.ERROR
        assert status.message == "NVIDIA driver version 575.51.03 is too old for CUDA 13.0"
        assert status.hint == "Please upgrade to driver version 580 or newer"

    @patch("torchdock.core.preflight.run_command", side_effect=CommandNotFoundError("nvidia-smi"))
    def test_nvidia_smi_missing(self, mock_run):
        """No nvidia-smi means no usable driver."""
        status = check_driver_version()
        assert status.severity == CheckSeverity.ERROR
        assert "nvidia-smi not found" in status.message

    @patch("torchdock.core.preflight.run_command")
    def test_nvidia_smi_fails(self, mock_run):
        """nvidia-smi exiting non-zero is an error."""
        mock_run.side_effect = CommandError(["nvidia-smi"], 9, "NVIDIA-SMI has failed")
        assert check_driver_version().severity == CheckSeverity.ERROR

    @patch("torchdock.core.preflight.run_command")
    def test_empty_output(self, mock_run):
        """nvidia-smi printing nothing is an error."""
        mock_run.return_value = _result(stdout="\n")
        assert check_driver_version().severity == CheckSeverity.ERROR

    @patch("torchdock.core.preflight.run_command")
    def test_unparseable_version(self, mock_run):
        """A version that is not numeric is an error."""
        mock_run.return_value = _result(stdout="[N/A]\n")

        status = check_driver_version()

        assert status.severity == CheckSeverity.ERROR
        assert "Unrecognized" in status.message


class TestDiskSpace:
    """Tests for check_disk_space."""

    @patch("torchdock.core.preflight.shutil.disk_usage")
    def test_low_disk_warns(self, mock_usage):
        """Below the threshold is a warning, not an error."""
        mock_usage.return_value = DiskUsage(100 * BYTES_PER_GB, 90 * BYTES_PER_GB, 10 * BYTES_PER_GB)

        status = check_disk_space(".", min_gb=20)

        assert status.severity == CheckSeverity.WARNING
        assert status.message == "Low disk space: 10GB available"
        assert status.hint == "At least 20GB recommended for build"

    @patch("torchdock.core.preflight.shutil.disk_usage")
    def test_exact_threshold_passes(self, mock_usage):
        """Exactly the minimum is enough."""
        mock_usage.return_value = DiskUsage(0, 0, 20 * BYTES_PER_GB)
        assert check_disk_space(".", min_gb=20).ok

    @patch("torchdock.core.preflight.shutil.disk_usage")
    def test_partial_gb_rounds_down(self, mock_usage):
        """Free space is counted in whole GB."""
        mock_usage.return_value = DiskUsage(0, 0, 20 * BYTES_PER_GB - 1)
        assert check_disk_space(".", min_gb=20).severity == CheckSeverity.WARNING

    @patch("torchdock.core.preflight.shutil.disk_usage", side_effect=FileNotFoundError("nope"))
    def test_unreadable_path(self, mock_usage):
        """An unreadable path is reported as a warning."""
        assert check_disk_space("/nope").severity == CheckSeverity.WARNING


class TestMemory:
    """Tests for check_memory."""

    @patch("torchdock.core.preflight.get_total_ram_gb", return_value=8)
    def test_low_memory_warns(self, mock_ram):
        """Little RAM is a warning suggesting fewer jobs."""
        status = check_memory(16)

        assert status.severity == CheckSeverity.WARNING
        assert status.message == "System has 8GB RAM. At least 16GB recommended."
        assert "MAX_JOBS" in status.hint

    @patch("torchdock.core.preflight.get_total_ram_gb", return_value=128)
    def test_enough_memory(self, mock_ram):
        """Plenty of RAM passes."""
        assert check_memory(16).message == "Total RAM: 128GB"

    @patch("torchdock.core.preflight.os.sysconf")
    def test_sysconf_math(self, mock_sysconf):
        """Total RAM is pages times page size."""
        mock_sysconf.side_effect = lambda name: {"SC_PHYS_PAGES": 4 * 1024**2, "SC_PAGE_SIZE": 4096}[name]
        assert check_memory(16).message == "Total RAM: 16GB"

    @patch("torchdock.core.preflight.os.sysconf", side_effect=ValueError("unsupported"))
    def test_sysconf_unavailable(self, mock_sysconf):
        """Platforms without sysconf get a warning."""
        assert check_memory(16).severity == CheckSeverity.WARNING


class TestGpuDetection:
    """Tests for GPU listing."""

    def test_parse_gpu_csv(self):
        """Each CSV line becomes a GpuInfo."""
        gpus = parse_gpu_csv("0, NVIDIA GB10, 12.1\n1, NVIDIA H100 80GB HBM3, 9.0\n")

        assert len(gpus) == 2
        assert gpus[0].index == 0
        assert gpus[0].name == "NVIDIA GB10"
        assert gpus[0].compute_capability == "12.1"
        assert gpus[1].compute_capability == "9.0"

    def test_parse_gpu_csv_skips_malformed(self):
        """Blank and malformed lines are ignored."""
        gpus = parse_gpu_csv("\nNo devices were found\nx, name, 9.0\n2, Tesla, 8.0\n")

        assert [g.index for g in gpus] == [2]

    def test_parse_gpu_csv_name_with_comma(self):
        """Commas inside the name are kept."""
        gpus = parse_gpu_csv("0, Weird, Name, 9.0\n")
        assert gpus[0].name == "Weird, Name"

    @patch("torchdock.core.preflight.run_command", side_effect=CommandNotFoundError("nvidia-smi"))
    def test_detect_gpus_without_nvidia_smi(self, mock_run):
        """Detection degrades to an empty list."""
        assert detect_gpus() == []

    @patch("torchdock.core.preflight.run_command")
    def test_detect_gpus_failure_exit(self, mock_run):
        """A failing nvidia-smi yields no GPUs."""
        mock_run.return_value = _result(returncode=9)
        assert detect_gpus() == []


class TestPreflightOutcome:
    """Tests for PreflightOutcome."""

    def test_warnings_do_not_fail(self):
        """Only errors fail the outcome."""
        outcome = PreflightOutcome(checks=[CheckStatus("memory", CheckSeverity.WARNING, "low")])
        assert outcome.passed
        assert not outcome.needs_confirmation

    def test_disk_warning_needs_confirmation(self):
        """Low disk is the one warning that asks the user."""
        outcome = PreflightOutcome(checks=[CheckStatus("disk", CheckSeverity.WARNING, "low")])
        assert outcome.needs_confirmation

    def test_error_fails(self):
        """Any error fails the outcome."""
        outcome = PreflightOutcome(checks=[CheckStatus("driver", CheckSeverity.ERROR, "old")])
        assert not outcome.passed


class TestRunPreflight:
    """Tests for the full check sequence."""

    @pytest.fixture
    def patched_checks(self, mocker):
        def ok(name):
            return CheckStatus(name, CheckSeverity.OK, f"{name} ok")

        return {
            "root": mocker.patch("torchdock.core.preflight.check_root", return_value=ok("root")),
            "docker": mocker.patch("torchdock.core.preflight.check_docker", return_value=ok("docker")),
            "runtime": mocker.patch(
                "torchdock.core.preflight.check_nvidia_runtime", return_value=ok("nvidia-runtime")
            ),
            "driver": mocker.patch("torchdock.core.preflight.check_driver_version", return_value=ok("driver")),
            "disk": mocker.patch("torchdock.core.preflight.check_disk_space", return_value=ok("disk")),
            "memory": mocker.patch("torchdock.core.preflight.check_memory", return_value=ok("memory")),
            "gpus": mocker.patch("torchdock.core.preflight.detect_gpus", return_value=[]),
        }

    def test_order_and_thresholds(self, patched_checks):
        """Checks run in order with thresholds from [preflight]."""
        config = get_default_config()
        config.set("preflight", "min_disk_gb", 50)

        outcome = run_preflight(config, "/ctx")

        assert [c.name for c in outcome.checks] == [
            "root",
            "docker",
            "nvidia-runtime",
            "driver",
            "disk",
            "memory",
        ]
        patched_checks["disk"].assert_called_once_with("/ctx", 50)
        patched_checks["driver"].assert_called_once_with(580, cuda_version="13.0")
        assert outcome.passed

    def test_skip_runtime(self, patched_checks):
        """skip_runtime leaves out the probe container."""
        outcome = run_preflight(get_default_config(), skip_runtime=True)

        patched_checks["runtime"].assert_not_called()
        assert "nvidia-runtime" not in [c.name for c in outcome.checks]

    def test_runtime_not_probed_without_docker(self, patched_checks):
        """Without docker the runtime check fails without running anything."""
        patched_checks["docker"].return_value = CheckStatus("docker", CheckSeverity.ERROR, "missing")

        outcome = run_preflight(get_default_config())

        patched_checks["runtime"].assert_not_called()
        runtime = [c for c in outcome.checks if c.name == "nvidia-runtime"][0]
        assert runtime.severity == CheckSeverity.ERROR
        assert not outcome.passed
