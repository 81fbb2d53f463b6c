"""
Unit tests for external command execution.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from torchdock.core.exceptions import CommandError, CommandNotFoundError
from torchdock.core.shell import CommandResult, format_command, run_command


class TestFormatCommand:
    """Tests for format_command."""

    def test_quotes_arguments_with_spaces(self):
        """Arguments with spaces are quoted."""
        assert format_command(["echo", "a b"]) == "echo 'a b'"

    def test_semicolon_is_quoted(self):
        """Arch lists like 9.0;12.1 are quoted."""
        assert format_command(["x", "TORCH_CUDA_ARCH_LIST=9.0;12.1"]) == "x 'TORCH_CUDA_ARCH_LIST=9.0;12.1'"


class TestRunCommand:
    """Tests for run_command."""

    @patch("torchdock.core.shell.subprocess.run")
    def test_success(self, mock_run):
        """Captured output is returned."""
        mock_run.return_value = MagicMock(returncode=0, stdout="hello\n", stderr="")

        result = run_command(["echo", "hello"])

        assert isinstance(result, CommandResult)
        assert result.ok
        assert result.stdout == "hello\n"
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == ["echo", "hello"]
        assert mock_run.call_args.kwargs["capture_output"] is True

    @patch("torchdock.core.shell.subprocess.run")
    def test_no_capture_streams(self, mock_run):
        """capture=False lets output go straight to the terminal."""
        mock_run.return_value = MagicMock(returncode=0, stdout=None, stderr=None)

        result = run_command(["docker", "build", "."], capture=False)

        assert mock_run.call_args.kwargs["capture_output"] is False
        assert result.stdout == ""
        assert result.stderr == ""

    @patch("torchdock.core.shell.subprocess.run")
    def test_arguments_are_stringified(self, mock_run, tmp_path):
        """Path arguments are passed as strings."""
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

        run_command(["ls", tmp_path], cwd=tmp_path)

        assert mock_run.call_args.args[0] == ["ls", str(tmp_path)]
        assert mock_run.call_args.kwargs["cwd"] == str(tmp_path)

    @patch("torchdock.core.shell.subprocess.run")
    def test_nonzero_without_check(self, mock_run):
        """A failing command is reported, not raised, by default."""
        mock_run.return_value = MagicMock(returncode=2, stdout="", stderr="boom")

        result = run_command(["false"])

        assert not result.ok
        assert result.returncode == 2

    @patch("torchdock.core.shell.subprocess.run")
    def test_nonzero_with_check_raises(self, mock_run):
        """check=True raises CommandError carrying the details."""
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="permission denied\n")

        with pytest.raises(CommandError) as exc_info:
            run_command(["docker", "ps"], check=True)

        assert exc_info.value.returncode == 1
        assert exc_info.value.command == ["docker", "ps"]
        assert "permission denied" in exc_info.value.message

    @patch("torchdock.core.shell.subprocess.run")
    def test_missing_executable(self, mock_run):
        """FileNotFoundError becomes CommandNotFoundError."""
        mock_run.side_effect = FileNotFoundError()

        with pytest.raises(CommandNotFoundError) as exc_info:
            run_command(["nvidia-smi"])

        assert exc_info.value.executable == "nvidia-smi"

    @patch("torchdock.core.shell.subprocess.run")
    def test_timeout(self, mock_run):
        """A timeout becomes CommandError with returncode -1."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd=["docker"], timeout=5)

        with pytest.raises(CommandError) as exc_info:
            run_command(["docker", "run", "x"], timeout=5)

        assert exc_info.value.returncode == -1
        assert "timed out" in exc_info.value.message
