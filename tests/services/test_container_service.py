"""
Tests for ContainerService.
"""

import pytest

from torchdock.core.config import get_default_config
from torchdock.core.exceptions import CommandError
from torchdock.core.shell import CommandResult
from torchdock.services.container import ContainerService


@pytest.fixture
def marker(tmp_path):
    """A /.dockerenv stand-in that does not exist yet."""
    return tmp_path / ".dockerenv"


@pytest.fixture
def service(marker):
    return ContainerService(config=get_default_config(), dockerenv=marker)


class TestRun:
    """Tests for ContainerService.run."""

    def test_run_plan_overrides(self, service):
        """None overrides keep configured values."""
        plan = service.run_plan(image_ref=None, memory="64g", command=["bash"]).data

        assert plan.image_ref == "pytorch-cuda13.0-dgx:latest"
        assert plan.memory == "64g"
        assert plan.command == ["bash"]

    def test_run_success(self, service, mocker):
        """The container runs attached to the terminal."""
        mock_run = mocker.patch(
            "torchdock.services.container.run_command",
            return_value=CommandResult(args=[], returncode=0),
        )

        result = service.run(service.run_plan().data)

        assert result.success
        assert result.data.command[:2] == ["docker", "run"]
        assert mock_run.call_args.kwargs["capture"] is False

    def test_run_nonzero_exit(self, service, mocker):
        """A non-zero container exit is a failed result with the status."""
        mocker.patch(
            "torchdock.services.container.run_command",
            return_value=CommandResult(args=[], returncode=125),
        )

        result = service.run(service.run_plan().data)

        assert not result.success
        assert result.error == "Container exited with status 125"
        assert result.metadata["returncode"] == 125
        assert result.data is None

    def test_run_plan_invalid_config(self, service, mocker):
        """A bad [run] value is a failed result, not an exception."""
        mocker.patch(
            "torchdock.services.container.RunPlan.from_config",
            side_effect=ValueError("invalid literal for int() with base 10: 'lots'"),
        )

        result = service.run_plan()

        assert not result.success
        assert "Invalid run configuration" in result.error


class TestStop:
    """Tests for ContainerService.stop."""

    def test_inside_container(self, service, marker, mocker):
        """Inside a container nothing is stopped."""
        marker.touch()
        mock_list = mocker.patch("torchdock.services.container.list_containers")

        result = service.stop()

        assert result.success
        assert result.data.inside_container
        assert result.message == "Exiting Docker container..."
        mock_list.assert_not_called()

    def test_nothing_running(self, service, mocker):
        """No containers is still a success."""
        mocker.patch("torchdock.services.container.list_containers", return_value=[])
        mock_stop = mocker.patch("torchdock.services.container.stop_containers")

        result = service.stop()

        assert result.success
        assert result.data.stopped == []
        assert result.message == "No running PyTorch containers found."
        mock_stop.assert_not_called()

    def test_stops_running(self, service, mocker):
        """Running containers of the image are stopped."""
        mock_list = mocker.patch("torchdock.services.container.list_containers", return_value=["abc", "def"])
        mock_stop = mocker.patch("torchdock.services.container.stop_containers")

        result = service.stop("custom:tag")

        assert result.data.stopped == ["abc", "def"]
        assert result.message == "Containers stopped."
        mock_list.assert_called_once_with("custom:tag")
        mock_stop.assert_called_once_with(["abc", "def"])

    def test_docker_error(self, service, mocker):
        """docker ps failing is a failed result."""
        mocker.patch(
            "torchdock.services.container.list_containers",
            side_effect=CommandError(["docker", "ps"], 1, "daemon not running"),
        )

        result = service.stop()

        assert not result.success
        assert "daemon not running" in result.error
