"""
Global pytest fixtures for torchdock tests.
"""

import pytest

from torchdock.cli.service_helpers import reset_factory
from torchdock.core.config import get_default_config, reset_config, set_config
from torchdock.core.shell import CommandResult


@pytest.fixture(autouse=True)
def isolated_globals():
    """Never let one test's configuration or factory leak into the next."""
    reset_config()
    reset_factory()
    yield
    reset_config()
    reset_factory()


@pytest.fixture
def default_config():
    """Built-in defaults, installed as the global configuration."""
    config = get_default_config()
    set_config(config)
    return config


@pytest.fixture
def completed():
    """Build a CommandResult for mocked run_command calls."""

    def _completed(args=None, returncode=0, stdout="", stderr=""):
        return CommandResult(args=list(args or []), returncode=returncode, stdout=stdout, stderr=stderr)

    return _completed
